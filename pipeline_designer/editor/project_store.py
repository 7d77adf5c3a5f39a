"""
Project store - the editor's single owner of the open project.

The UI calls only these methods. Every change to project content is followed by a
full-snapshot save and a refresh of the project list, in that order; the server's
answer replaces the local project.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pipeline_designer.domain.errors import DomainError
from pipeline_designer.domain.events import (
    SimulationCompleted,
    SimulationError,
    SimulationProgress,
    SimulationQueued,
    SimulationStopped,
)
from pipeline_designer.editor.connection_draft import ConnectionDraft, ConnectionKind, DraftState
from pipeline_designer.editor.graph_model import GraphModel, PositionLike
from pipeline_designer.infrastructure.api_gateway import ExportedSnapshot, ProjectGateway
from pipeline_designer.infrastructure.progress_channel import ProgressChannel
from pipeline_designer.schemas.api_schemas import (
    PipelineConnection,
    PipelineNode,
    PipelineProject,
    ProjectSummary,
    ProjectType,
    SimulationResult,
    ValidationResult,
)
from pipeline_designer.services.element_catalog import ElementCatalog

logger = logging.getLogger(__name__)

Element = Union[PipelineNode, PipelineConnection]


class ProjectStore:
    """Coordinates the graph model, the persistence gateway and the progress channel."""

    def __init__(
        self,
        gateway: ProjectGateway,
        channel: ProgressChannel,
        catalog: ElementCatalog | None = None,
    ) -> None:
        self._gateway = gateway
        self._channel = channel
        self._catalog = catalog

        self.current_project: Optional[PipelineProject] = None
        self.selected_element_id: Optional[str] = None
        self.available_projects: List[ProjectSummary] = []
        self.is_simulation_running = False
        self.simulation_progress = 0
        self.last_task_id: Optional[str] = None
        self.last_simulation_result: Optional[SimulationResult] = None
        self.last_simulation_error: Optional[str] = None
        self._draft = ConnectionDraft()

        self._unsubscribers: List[Callable[[], None]] = [
            channel.subscribe(SimulationQueued, self._on_simulation_queued),
            channel.subscribe(SimulationProgress, self._on_simulation_progress),
            channel.subscribe(SimulationCompleted, self._on_simulation_completed),
            channel.subscribe(SimulationError, self._on_simulation_error),
            channel.subscribe(SimulationStopped, self._on_simulation_stopped),
        ]

    # Observable state

    @property
    def graph(self) -> Optional[GraphModel]:
        if self.current_project is None:
            return None
        return GraphModel(self.current_project, self._catalog)

    @property
    def selected_element(self) -> Optional[Element]:
        graph = self.graph
        if graph is None or self.selected_element_id is None:
            return None
        return graph.find_element(self.selected_element_id)

    @property
    def connection_mode(self) -> DraftState:
        return self._draft.state

    # Project lifecycle

    async def create_project(
        self,
        name: str = "New Project",
        project_type: ProjectType | str = ProjectType.GAS,
        nodes: List[PipelineNode] | None = None,
        connections: List[PipelineConnection] | None = None,
    ) -> PipelineProject:
        now = datetime.now(timezone.utc)
        project = PipelineProject(
            id=str(uuid.uuid4()),
            name=name or "New Project",
            type=ProjectType(project_type),
            nodes=list(nodes or []),
            connections=list(connections or []),
            created_at=now,
            updated_at=now,
        )
        try:
            saved = await self._gateway.save_project(project)
        except DomainError:
            logger.exception("Failed to create project")
            raise
        self._open(saved)
        await self.load_projects()
        return saved

    async def load_project(self, project_id: str) -> PipelineProject:
        try:
            project = await self._gateway.get_project(project_id)
        except DomainError:
            logger.exception(f"Failed to load project {project_id}")
            raise
        self._open(project)
        return project

    async def load_projects(self) -> List[ProjectSummary]:
        try:
            self.available_projects = await self._gateway.list_projects()
        except DomainError:
            logger.exception("Failed to load projects list")
            self.available_projects = []
        return self.available_projects

    async def save_project(self) -> Optional[PipelineProject]:
        if self.current_project is None:
            return None
        try:
            saved = await self._gateway.save_project(self.current_project)
        except DomainError:
            logger.exception("Failed to save project")
            raise
        self.current_project = saved
        await self.load_projects()
        return saved

    async def delete_project(self, project_id: str) -> None:
        try:
            await self._gateway.delete_project(project_id)
        except DomainError:
            logger.exception(f"Failed to delete project {project_id}")
            raise
        if self.current_project is not None and self.current_project.id == project_id:
            self.current_project = None
            self.selected_element_id = None
            self._draft.cancel()
        await self.load_projects()

    async def validate_project(self) -> Optional[ValidationResult]:
        if self.current_project is None:
            return None
        try:
            return await self._gateway.validate_project(self.current_project)
        except DomainError:
            logger.exception("Validation failed")
            return ValidationResult(is_valid=False, errors=["Validation error"], warnings=[])

    async def export_project(self) -> Optional[ExportedSnapshot]:
        if self.current_project is None:
            return None
        try:
            return await self._gateway.export_project(self.current_project.id)
        except DomainError:
            logger.exception("Failed to export project")
            raise

    async def import_project(self, content: bytes, filename: str = "project.json") -> PipelineProject:
        try:
            project = await self._gateway.import_project(content, filename)
        except DomainError:
            logger.exception("Failed to import project")
            raise
        self._open(project)
        await self.load_projects()
        logger.info(f"Project imported successfully: {project.id}")
        return project

    # Selection

    def select_element(self, element: Element | str | None) -> None:
        if element is None or isinstance(element, str):
            self.selected_element_id = element
        else:
            self.selected_element_id = element.id

    # Graph edits

    async def add_node(
        self,
        node_type: str,
        position: PositionLike | None = None,
        properties: Dict[str, Any] | None = None,
    ) -> Optional[PipelineNode]:
        graph = self.graph
        if graph is None:
            return None
        node = graph.add_node(node_type, position, properties)
        await self.save_project()
        return node

    async def update_node_position(self, node_id: str, position: PositionLike) -> bool:
        graph = self.graph
        if graph is None or not graph.update_node_position(node_id, position):
            return False
        await self.save_project()
        return True

    async def update_node_properties(self, node_id: str, properties: Dict[str, Any]) -> bool:
        graph = self.graph
        if graph is None or not graph.update_node_properties(node_id, properties):
            return False
        await self.save_project()
        return True

    async def add_connection(self, source_id: str, target_id: str) -> Optional[PipelineConnection]:
        graph = self.graph
        if graph is None:
            return None
        connection = graph.add_connection(source_id, target_id)
        if connection is None:
            return None
        await self.save_project()
        return connection

    async def delete_element(self, element_id: str) -> bool:
        graph = self.graph
        if graph is None:
            return False
        removed = graph.delete_element(element_id)
        if self.selected_element_id == element_id:
            self.selected_element_id = None
        await self.save_project()
        return removed

    # Connection drawing

    def start_connection(self, node_id: str, kind: ConnectionKind | str = ConnectionKind.REGULAR) -> None:
        self._draft.start(node_id, kind)

    def move_connection_tail(self, x: float, y: float) -> None:
        self._draft.move_tail(x, y)

    async def finish_connection(self, target_node_id: str) -> Optional[PipelineConnection]:
        pair = self._draft.finish(target_node_id)
        if pair is None:
            return None
        return await self.add_connection(*pair)

    def cancel_connection(self) -> None:
        self._draft.cancel()

    # Simulation

    async def start_simulation(self) -> bool:
        """
        Ask the hub to simulate the open project; progress arrives through channel events.

        Returns:
            True if the request reached the hub
        """
        if self.current_project is None:
            return False
        self.is_simulation_running = True
        self.simulation_progress = 0
        self.last_simulation_result = None
        self.last_simulation_error = None

        sent = False
        if await self._channel.connect():
            sent = await self._channel.start_simulation(self.current_project.id, self.current_project)
        if not sent:
            logger.error("Failed to start simulation: progress channel is not connected")
            self.is_simulation_running = False
        return sent

    async def stop_simulation(self) -> None:
        if self.current_project is None:
            return
        await self._channel.stop_simulation(self.current_project.id)
        self.is_simulation_running = False

    async def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self._channel.disconnect()
        await self._gateway.aclose()

    def _open(self, project: PipelineProject) -> None:
        self.current_project = project
        self.selected_element_id = None
        self._draft.cancel()

    # Channel event handlers

    def _on_simulation_queued(self, event: SimulationQueued) -> None:
        self.last_task_id = event.task_id
        logger.info(f"Simulation queued with task ID: {event.task_id}")

    def _on_simulation_progress(self, event: SimulationProgress) -> None:
        self.simulation_progress = event.percent

    def _on_simulation_completed(self, event: SimulationCompleted) -> None:
        self.is_simulation_running = False
        self.simulation_progress = 100
        self.last_simulation_result = event.result
        if event.result.is_successful:
            logger.info(f"Simulation completed successfully for project {event.result.project_id}")
        else:
            logger.error(f"Simulation failed: {event.result.error_message}")

    def _on_simulation_error(self, event: SimulationError) -> None:
        logger.error(f"Simulation error: {event.message}")
        self.last_simulation_error = event.message
        self.is_simulation_running = False

    def _on_simulation_stopped(self, event: SimulationStopped) -> None:
        logger.info(f"Simulation stopped for project: {event.project_id}")
        self.is_simulation_running = False
