from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from pipeline_designer.config import settings
from pipeline_designer.db.database import get_db
from pipeline_designer.db.repositories.projects import ProjectRepository
from pipeline_designer.services.element_catalog import ElementCatalog, load_catalog
from pipeline_designer.application.project_service import ProjectService
from pipeline_designer.application.project_validation_service import ProjectValidationService


def get_project_repository(db: Session = Depends(get_db)) -> ProjectRepository:
    return ProjectRepository(db)


def get_project_service(repository: ProjectRepository = Depends(get_project_repository)) -> ProjectService:
    return ProjectService(repository=repository, list_limit=settings.PROJECT_LIST_LIMIT)


def get_element_catalog() -> ElementCatalog:
    return load_catalog(settings.ELEMENT_CATALOG_PATH)


def get_project_validation_service(
    catalog: ElementCatalog = Depends(get_element_catalog),
) -> ProjectValidationService:
    return ProjectValidationService(catalog=catalog)
