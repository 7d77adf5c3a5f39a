from fastapi import APIRouter, Path, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from pipeline_designer.schemas.api_schemas import PipelineProject, ProjectSummary, ProjectDeleteResponse
from pipeline_designer.dependencies import get_project_service
from pipeline_designer.application.project_service import ProjectService
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/projects", response_model=List[ProjectSummary])
def get_projects(service: ProjectService = Depends(get_project_service)):
    """
    List the most recently updated projects (newest first).
    """
    try:
        return service.list_summaries()
    except SQLAlchemyError:
        logger.exception("Error getting projects")
        return []

@router.get("/projects/{project_id}", response_model=PipelineProject)
def get_project(
    project_id: str = Path(..., title="The ID of the project to retrieve"),
    service: ProjectService = Depends(get_project_service)
):
    """
    Get a project with its nodes and connections.
    """
    return service.get_project(project_id)

@router.post("/projects", response_model=PipelineProject, status_code=201)
def create_project(
    project: PipelineProject,
    service: ProjectService = Depends(get_project_service)
):
    """
    Create a project. The server assigns ids and timestamps that are missing.
    """
    return service.create_project(project)

@router.put("/projects/{project_id}", response_model=PipelineProject)
def update_project(
    project: PipelineProject,
    project_id: str = Path(..., title="The ID of the project to replace"),
    service: ProjectService = Depends(get_project_service)
):
    """
    Replace a project snapshot, creating the project if it does not exist.
    """
    logger.info(
        f"Updating project {project_id}: {len(project.nodes)} nodes, {len(project.connections)} connections"
    )
    return service.upsert_project(project_id, project)

@router.delete("/projects/{project_id}", response_model=ProjectDeleteResponse)
def delete_project(
    project_id: str = Path(..., title="The ID of the project to delete"),
    service: ProjectService = Depends(get_project_service)
):
    """
    Delete a project and all its nodes and connections.
    """
    service.delete_project(project_id)
    return ProjectDeleteResponse(message="Project deleted successfully")

@router.post("/projects/import", response_model=PipelineProject)
async def import_project(
    file: UploadFile = File(...),
    service: ProjectService = Depends(get_project_service)
):
    """
    Import an exported project file. The project and its elements get fresh ids.
    """
    content = await file.read()
    return service.import_project(content, file.filename or "")

@router.post("/projects/{project_id}/export")
def export_project(
    project_id: str = Path(..., title="The ID of the project to export"),
    service: ProjectService = Depends(get_project_service)
):
    """
    Download a project as a JSON file.
    """
    filename, content = service.export_project(project_id)
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
