"""
Persistence gateway - HTTP client for the pipeline project REST API.

Every call except list_projects raises a DomainError subclass on failure, so the
editor handles the same error hierarchy the server raises.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from pipeline_designer.config import settings
from pipeline_designer.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from pipeline_designer.schemas.api_schemas import (
    PipelineProject,
    ProjectSummary,
    SimulationResult,
    ValidationResult,
)

logger = logging.getLogger(__name__)

_FILENAME_PATTERN = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


class ExportedSnapshot(BaseModel):
    """A downloaded project file."""
    filename: str
    content: bytes


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    detail = _error_detail(response)
    message = f"{action} failed: {response.status_code} - {detail}"
    if response.status_code == 404:
        raise NotFoundError(message)
    if response.status_code == 409:
        raise ConflictError(message)
    if response.status_code in (400, 422):
        raise ValidationError(message)
    raise TransportError(message)


class ProjectGateway:
    """Client for the /pipeline REST surface.

    Usable as an async context manager; when no client is injected it owns an
    httpx.AsyncClient pointed at base_url, sending through transport if one is given.
    base_url and timeout default to settings.API_BASE_URL and settings.CLIENT_TIMEOUT.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=settings.CLIENT_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ProjectGateway:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, action: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{action} failed: {e}") from e
        _raise_for_status(response, action)
        return response

    async def list_projects(self) -> List[ProjectSummary]:
        """
        Fetch project summaries, newest first.

        Returns:
            The summaries, or an empty list if the request failed for any reason
        """
        try:
            response = await self._request("List projects", "GET", "/pipeline/projects")
            return [ProjectSummary.model_validate(item) for item in response.json()]
        except (DomainError, ValueError):
            logger.exception("API error fetching projects")
            return []

    async def get_project(self, project_id: str) -> PipelineProject:
        response = await self._request("Fetch project", "GET", f"/pipeline/projects/{project_id}")
        return PipelineProject.model_validate(response.json())

    async def save_project(self, project: PipelineProject) -> PipelineProject:
        """
        Create (no id) or replace (with id) a project and return the server's snapshot.

        Raises:
            ConflictError: if the server holds a newer revision
        """
        payload = project.model_dump(mode="json", by_alias=True)
        if project.id:
            method, url = "PUT", f"/pipeline/projects/{project.id}"
        else:
            method, url = "POST", "/pipeline/projects"

        logger.debug(f"Saving project with {method} to {url}")
        response = await self._request("Save project", method, url, json=payload)
        saved = PipelineProject.model_validate(response.json())
        logger.info(f"Project saved successfully: {saved.id} (revision {saved.revision})")
        return saved

    async def delete_project(self, project_id: str) -> None:
        await self._request("Delete project", "DELETE", f"/pipeline/projects/{project_id}")

    async def validate_project(self, project: PipelineProject) -> ValidationResult:
        response = await self._request(
            "Validation", "POST", "/pipeline/validate",
            json=project.model_dump(mode="json", by_alias=True),
        )
        return ValidationResult.model_validate(response.json())

    async def simulate(self, project_id: str, parameters: Dict[str, Any] | None = None) -> SimulationResult:
        response = await self._request(
            "Simulation", "POST", "/pipeline/simulate",
            json={"projectId": project_id, "parameters": parameters or {}},
        )
        return SimulationResult.model_validate(response.json())

    async def export_project(self, project_id: str) -> ExportedSnapshot:
        response = await self._request("Export", "POST", f"/pipeline/projects/{project_id}/export")
        match = _FILENAME_PATTERN.search(response.headers.get("content-disposition", ""))
        if match:
            filename = match.group(1)
        else:
            filename = f"project_{project_id}_{datetime.now(timezone.utc).date().isoformat()}.json"
        return ExportedSnapshot(filename=filename, content=response.content)

    async def import_project(self, content: bytes, filename: str = "project.json") -> PipelineProject:
        response = await self._request(
            "Import", "POST", "/pipeline/projects/import",
            files={"file": (filename, content, "application/json")},
        )
        return PipelineProject.model_validate(response.json())
