"""Domain events for decoupled side effects and integrations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
from uuid import uuid4

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(kw_only=True)
class DomainEvent:
    """Base class for all domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)
    aggregate_id: str = ""


# Project lifecycle (published by the server)

@dataclass(kw_only=True)
class ProjectCreated(DomainEvent):
    """Raised when a project is stored for the first time."""
    name: str
    project_type: str


@dataclass(kw_only=True)
class ProjectUpdated(DomainEvent):
    """Raised when a project snapshot replaces the stored one."""
    name: str
    node_count: int
    connection_count: int
    revision: int


@dataclass(kw_only=True)
class ProjectDeleted(DomainEvent):
    """Raised when a project is deleted."""
    name: str


@dataclass(kw_only=True)
class ProjectImported(DomainEvent):
    """Raised when a project is created from an exported snapshot."""
    name: str
    source_filename: str


@dataclass(kw_only=True)
class SimulationStarted(DomainEvent):
    """Raised when the hub schedules a simulation task."""
    task_id: str


@dataclass(kw_only=True)
class SimulationFinished(DomainEvent):
    """Raised when a simulation task ends, normally or by cancellation."""
    task_id: str
    outcome: str


# Simulation lifecycle (pushed to the editor over the progress channel)

@dataclass(kw_only=True)
class HubConnected(DomainEvent):
    message: str = ""


@dataclass(kw_only=True)
class SimulationQueued(DomainEvent):
    task_id: str


@dataclass(kw_only=True)
class SimulationProgress(DomainEvent):
    percent: int


@dataclass(kw_only=True)
class SimulationCompleted(DomainEvent):
    result: Any


@dataclass(kw_only=True)
class SimulationError(DomainEvent):
    message: str


@dataclass(kw_only=True)
class SimulationStopped(DomainEvent):
    project_id: str


class DomainEventPublisher:
    """Subscriber registry keyed by event type; any number of handlers per type."""
    
    def __init__(self) -> None:
        self._subscribers: Dict[type, List[Callable[[DomainEvent], None]]] = {}
    
    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]) -> Callable[[], None]:
        """Subscribe a handler to an event type. Returns a callable that unsubscribes it."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        
        def unsubscribe() -> None:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
        
        return unsubscribe
    
    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers."""
        event_type = type(event)
        for handler in list(self._subscribers.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                # Log error but don't fail the main operation
                logger.exception(f"Event handler error for {event_type.__name__}")
    
    def subscriber_count(self, event_type: type[DomainEvent]) -> int:
        return len(self._subscribers.get(event_type, []))
    
    def clear_subscribers(self) -> None:
        """Clear all subscribers (useful for testing)."""
        self._subscribers = {}


# Server-wide publisher instance
event_publisher = DomainEventPublisher()
