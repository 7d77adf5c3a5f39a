"""
Health check endpoints for the API.
"""
from fastapi import APIRouter, Depends
from typing import Dict, Any
from datetime import datetime, timezone

from pipeline_designer.config import settings
from pipeline_designer.dependencies import get_project_service, get_element_catalog
from pipeline_designer.application.project_service import ProjectService
from pipeline_designer.services.element_catalog import ElementCatalog

router = APIRouter()

@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.
    Returns API status and version information.
    """
    return {
        "status": "Healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }

@router.get("/db-health")
def db_health(service: ProjectService = Depends(get_project_service)) -> Dict[str, Any]:
    """
    Check database connectivity and report the number of stored projects.
    """
    try:
        project_count = service.count_projects()
        return {
            "status": "Healthy",
            "database": "Connected",
            "projectsCount": project_count,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    except Exception as e:
        return {
            "status": "Unhealthy",
            "error": str(e),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

@router.get("/health/catalog")
def catalog_health(catalog: ElementCatalog = Depends(get_element_catalog)) -> Dict[str, Any]:
    """
    Report the loaded element catalog.
    """
    return {
        "status": "Healthy",
        "version": catalog.version,
        "elementTypes": sorted(catalog.all_elements()),
        "projectTypes": sorted(catalog.project_types()),
    }
