"""State of the "drawing a connection" gesture in the editor."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ConnectionKind(str, Enum):
    START = "start"
    END = "end"
    REGULAR = "regular"


@dataclass(frozen=True)
class DraftState:
    active: bool = False
    source_node_id: Optional[str] = None
    kind: Optional[ConnectionKind] = None
    # Where the dangling end of the rubber band currently is
    tail: Optional[Tuple[float, float]] = None


IDLE = DraftState()


class ConnectionDraft:
    """Two states: idle, or drawing from a source node. Lives as long as the editor."""

    def __init__(self) -> None:
        self._state = IDLE

    @property
    def state(self) -> DraftState:
        return self._state

    @property
    def is_drawing(self) -> bool:
        return self._state.active

    def start(self, node_id: str, kind: ConnectionKind | str = ConnectionKind.REGULAR) -> None:
        # A new gesture replaces whatever was being drawn
        self._state = DraftState(active=True, source_node_id=node_id, kind=ConnectionKind(kind))

    def move_tail(self, x: float, y: float) -> None:
        if self._state.active:
            self._state = DraftState(
                active=True,
                source_node_id=self._state.source_node_id,
                kind=self._state.kind,
                tail=(x, y),
            )

    def finish(self, target_node_id: str) -> Optional[Tuple[str, str]]:
        """
        End the gesture on a target node.

        Returns:
            (source_node_id, target_node_id) to connect, or None if nothing was being drawn
        """
        if not self._state.active or not self._state.source_node_id:
            return None
        pair = (self._state.source_node_id, target_node_id)
        self._state = IDLE
        return pair

    def cancel(self) -> None:
        self._state = IDLE
