"""Service for storing, replacing and exchanging pipeline project snapshots."""
from __future__ import annotations

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from pipeline_designer.db.models import Project as ProjectRow
from pipeline_designer.db.repositories.projects import ProjectRepository
from pipeline_designer.domain.errors import ConflictError, NotFoundError, ValidationError
from pipeline_designer.domain.events import (
    DomainEventPublisher,
    ProjectCreated,
    ProjectDeleted,
    ProjectImported,
    ProjectUpdated,
    event_publisher,
)
from pipeline_designer.schemas.api_schemas import (
    PipelineConnection,
    PipelineNode,
    PipelineProject,
    Position,
    ProjectSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_POSITION = {"x": 100.0, "y": 100.0}
# Ids the browser editor used to send for unsaved elements
PLACEHOLDER_IDS = {"", "undefined", "null"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _is_placeholder(value: str | None) -> bool:
    return value is None or value.strip() in PLACEHOLDER_IDS


def to_schema(row: ProjectRow) -> PipelineProject:
    """Convert a stored project with its children into the wire model."""
    return PipelineProject(
        id=row.id,
        name=row.name,
        type=row.type,
        nodes=[
            PipelineNode(
                id=node.id,
                type=node.type,
                position=Position(**node.position),
                properties=dict(node.properties or {}),
            )
            for node in row.nodes
        ],
        connections=[
            PipelineConnection(
                id=connection.id,
                source_id=connection.source_id,
                target_id=connection.target_id,
                properties=dict(connection.properties or {}),
            )
            for connection in row.connections
        ],
        created_at=row.created_at,
        updated_at=row.updated_at,
        revision=row.revision,
    )


def to_summary(row: ProjectRow) -> ProjectSummary:
    return ProjectSummary(
        id=row.id,
        name=row.name,
        type=row.type,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def normalize_children(project: PipelineProject) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Fill server-side defaults for a snapshot's nodes and connections.

    Missing or placeholder ids get a fresh uuid, missing positions become (100, 100)
    and missing property maps become empty.

    Raises:
        ValidationError: if two nodes or two connections share an id
    """
    nodes = []
    for node in project.nodes:
        nodes.append({
            "id": _new_id() if _is_placeholder(node.id) else node.id,
            "type": node.type,
            "position": node.position.model_dump() if node.position else dict(DEFAULT_POSITION),
            "properties": dict(node.properties or {}),
        })

    connections = []
    for connection in project.connections:
        connections.append({
            "id": _new_id() if _is_placeholder(connection.id) else connection.id,
            "source_id": connection.source_id,
            "target_id": connection.target_id,
            "properties": dict(connection.properties or {}),
        })

    for label, rows in (("node", nodes), ("connection", connections)):
        seen = set()
        for row in rows:
            if row["id"] in seen:
                raise ValidationError(f"Duplicate {label} id in project payload: {row['id']}")
            seen.add(row["id"])

    return nodes, connections


def export_filename(name: str, moment: datetime) -> str:
    safe_name = re.sub(r"[^\w\-]+", "_", name, flags=re.ASCII).strip("_") or "project"
    return f"{safe_name}_{moment.strftime('%Y%m%d%H%M%S')}.json"


class ProjectService:
    """Use cases behind the project REST surface."""

    def __init__(
        self,
        repository: ProjectRepository,
        list_limit: int = 50,
        publisher: DomainEventPublisher = event_publisher,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._list_limit = list_limit
        self._publisher = publisher
        self._clock = clock

    def list_summaries(self) -> List[ProjectSummary]:
        """Most recently updated projects first, at most list_limit of them."""
        return [to_summary(row) for row in self._repository.get_recent_projects(self._list_limit)]

    def count_projects(self) -> int:
        return self._repository.count_projects()

    def get_project(self, project_id: str) -> PipelineProject:
        return to_schema(self._require(project_id))

    def create_project(self, payload: PipelineProject) -> PipelineProject:
        """
        Store a new project, assigning an id when none (or a placeholder) was supplied.

        Raises:
            ConflictError: if a project with the supplied id already exists
        """
        project_id = _new_id() if _is_placeholder(payload.id) else payload.id
        if self._repository.get_project(project_id):
            raise ConflictError(f"Project already exists: {project_id}")
        return self._insert(project_id, payload)

    def upsert_project(self, project_id: str, payload: PipelineProject) -> PipelineProject:
        """
        Replace the stored snapshot addressed by project_id, creating it if absent.

        All existing nodes and connections are dropped and the payload's children inserted
        inside one transaction.

        Raises:
            ConflictError: if the payload carries a revision other than the stored one
        """
        existing = self._repository.get_project(project_id)
        if existing is None:
            logger.info(f"Project {project_id} not found, creating new one")
            return self._insert(project_id, payload)

        nodes, connections = normalize_children(payload)
        try:
            row = self._repository.replace_project(
                project_id,
                name=payload.name,
                project_type=payload.type.value,
                nodes=nodes,
                connections=connections,
                timestamp=self._clock(),
                expected_revision=payload.revision,
            )
        except StaleDataError:
            raise ConflictError(
                f"Project {project_id} was modified concurrently "
                f"(expected revision {payload.revision})"
            )
        logger.info(f"Project {project_id} updated: {len(nodes)} nodes, {len(connections)} connections")
        self._publisher.publish(ProjectUpdated(
            aggregate_id=row.id,
            name=row.name,
            node_count=len(nodes),
            connection_count=len(connections),
            revision=row.revision,
        ))
        return to_schema(row)

    def delete_project(self, project_id: str) -> None:
        row = self._require(project_id)
        name = row.name
        self._repository.delete_project(project_id)
        logger.info(f"Project deleted: {project_id}")
        self._publisher.publish(ProjectDeleted(aggregate_id=project_id, name=name))

    def export_project(self, project_id: str) -> Tuple[str, bytes]:
        """
        Serialize a stored project to an indented JSON document.

        Returns:
            (download filename, file content)
        """
        project = self.get_project(project_id)
        document = project.model_dump(mode="json", by_alias=True, exclude={"revision"})
        content = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        return export_filename(project.name, self._clock()), content

    def import_project(self, content: bytes, filename: str = "") -> PipelineProject:
        """
        Create a project from an exported document.

        The project and every node and connection receive fresh ids; connections are
        re-pointed at the renamed nodes.

        Raises:
            ValidationError: if the upload is empty or not a project document
        """
        if not content:
            raise ValidationError("No file uploaded")
        try:
            snapshot = PipelineProject.model_validate_json(content)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid project file: {e.error_count()} problem(s)") from e

        id_map: Dict[str, str] = {}
        for node in snapshot.nodes:
            new_id = _new_id()
            if node.id:
                id_map[node.id] = new_id
            node.id = new_id
        for connection in snapshot.connections:
            connection.id = _new_id()
            connection.source_id = id_map.get(connection.source_id, connection.source_id)
            connection.target_id = id_map.get(connection.target_id, connection.target_id)

        project = self._insert(_new_id(), snapshot, publish=False)
        self._publisher.publish(ProjectImported(
            aggregate_id=project.id,
            name=project.name,
            source_filename=filename,
        ))
        return project

    def _insert(self, project_id: str, payload: PipelineProject, publish: bool = True) -> PipelineProject:
        nodes, connections = normalize_children(payload)
        try:
            row = self._repository.create_project(
                project_id=project_id,
                name=payload.name,
                project_type=payload.type.value,
                nodes=nodes,
                connections=connections,
                timestamp=self._clock(),
            )
        except IntegrityError:
            raise ConflictError(f"Project already exists: {project_id}")
        logger.info(f"Project created successfully: {row.id}, {row.name}")
        if publish:
            self._publisher.publish(ProjectCreated(
                aggregate_id=row.id,
                name=row.name,
                project_type=row.type,
            ))
        return to_schema(row)

    def _require(self, project_id: str) -> ProjectRow:
        row = self._repository.get_project(project_id)
        if not row:
            raise NotFoundError(f"Project not found: {project_id}")
        return row
