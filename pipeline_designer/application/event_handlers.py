"""Event handlers for domain events."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pipeline_designer.domain.events import (
        ProjectCreated,
        ProjectUpdated,
        ProjectDeleted,
        ProjectImported,
        SimulationStarted,
        SimulationFinished,
    )

logger = logging.getLogger(__name__)


class AuditLogHandler:
    """Logs all domain events for audit trail."""
    
    def handle_project_created(self, event: ProjectCreated) -> None:
        logger.info(f"[AUDIT] Project created: {event.aggregate_id} - {event.name} ({event.project_type})")
    
    def handle_project_updated(self, event: ProjectUpdated) -> None:
        logger.info(
            f"[AUDIT] Project updated: {event.aggregate_id} rev {event.revision} "
            f"({event.node_count} nodes, {event.connection_count} connections)"
        )
    
    def handle_project_deleted(self, event: ProjectDeleted) -> None:
        logger.info(f"[AUDIT] Project deleted: {event.aggregate_id} - {event.name}")
    
    def handle_project_imported(self, event: ProjectImported) -> None:
        logger.info(f"[AUDIT] Project imported: {event.aggregate_id} - {event.name} from {event.source_filename or '<upload>'}")
    
    def handle_simulation_started(self, event: SimulationStarted) -> None:
        logger.info(f"[AUDIT] Simulation started: {event.task_id} for project {event.aggregate_id}")
    
    def handle_simulation_finished(self, event: SimulationFinished) -> None:
        logger.info(f"[AUDIT] Simulation {event.outcome}: {event.task_id} for project {event.aggregate_id}")


def register_event_handlers():
    """Register all event handlers with the publisher."""
    from pipeline_designer.domain.events import (
        event_publisher,
        ProjectCreated,
        ProjectUpdated,
        ProjectDeleted,
        ProjectImported,
        SimulationStarted,
        SimulationFinished,
    )
    
    audit = AuditLogHandler()
    
    # Audit handlers (all events)
    event_publisher.subscribe(ProjectCreated, audit.handle_project_created)
    event_publisher.subscribe(ProjectUpdated, audit.handle_project_updated)
    event_publisher.subscribe(ProjectDeleted, audit.handle_project_deleted)
    event_publisher.subscribe(ProjectImported, audit.handle_project_imported)
    event_publisher.subscribe(SimulationStarted, audit.handle_simulation_started)
    event_publisher.subscribe(SimulationFinished, audit.handle_simulation_finished)
