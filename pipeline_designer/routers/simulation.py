from fastapi import APIRouter, Depends
from pipeline_designer.schemas.api_schemas import PipelineProject, SimulationRequest, SimulationResult, ValidationResult
from pipeline_designer.dependencies import get_project_validation_service
from pipeline_designer.application.project_validation_service import ProjectValidationService
from pipeline_designer.application.simulation_service import run_simulation_rest
from pipeline_designer.config import settings

router = APIRouter()

@router.post("/validate", response_model=ValidationResult)
def validate_project(
    project: PipelineProject,
    validator: ProjectValidationService = Depends(get_project_validation_service)
):
    """
    Check a project against the element catalog. Findings are reported as warnings.
    """
    return validator.validate(project)

@router.post("/simulate", response_model=SimulationResult)
async def simulate_project(request: SimulationRequest):
    """
    Run a simulation synchronously and return its result.
    """
    return await run_simulation_rest(request.project_id, settings.SIMULATION_REST_DELAY)
