"""
Progress channel - WebSocket client for the simulation hub.

Frames are JSON objects {"target": <name>, "arguments": [...]}. Incoming frames are
turned into simulation domain events and published to every subscriber of that
event type. The channel reconnects on its own after a transport drop.
"""
from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Protocol

import websockets
from websockets.exceptions import WebSocketException

from pipeline_designer.config import settings
from pipeline_designer.domain.events import (
    DomainEvent,
    DomainEventPublisher,
    HubConnected,
    SimulationCompleted,
    SimulationError,
    SimulationProgress,
    SimulationQueued,
    SimulationStopped,
)
from pipeline_designer.schemas.api_schemas import PipelineProject, SimulationResult

logger = logging.getLogger(__name__)

# Delays before each reconnect attempt; the channel gives up after the last one
RECONNECT_DELAYS = (0.0, 2.0, 10.0, 30.0)

CONNECT_ERRORS = (OSError, WebSocketException, asyncio.TimeoutError)


class HubTransport(Protocol):
    async def send(self, message: str) -> None: ...
    async def recv(self) -> str | bytes: ...
    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[HubTransport]]


async def websocket_connector(url: str) -> HubTransport:
    return await websockets.connect(url, open_timeout=settings.CLIENT_TIMEOUT)


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


def parse_frame(raw: str | bytes) -> Optional[DomainEvent]:
    """
    Turn one hub frame into a simulation event.

    Returns:
        The event, or None for frames this client does not understand
    """
    frame = json.loads(raw)
    target = frame["target"]
    arguments: List[Any] = frame.get("arguments") or []
    argument = arguments[0] if arguments else None

    if target == "Connected":
        return HubConnected(message=str(argument or ""))
    if target == "SimulationQueued":
        payload = argument or {}
        return SimulationQueued(task_id=payload.get("taskId", ""), aggregate_id=payload.get("projectId", ""))
    if target == "SimulationProgress":
        return SimulationProgress(percent=int(argument))
    if target == "SimulationCompleted":
        result = SimulationResult.model_validate(argument)
        return SimulationCompleted(result=result, aggregate_id=result.project_id)
    if target == "SimulationError":
        return SimulationError(message=str(argument))
    if target == "SimulationStopped":
        return SimulationStopped(project_id=str(argument), aggregate_id=str(argument))
    return None


class ProgressChannel:
    """Lazily connected, self-reconnecting client of the simulation hub."""

    def __init__(
        self,
        url: str | None = None,
        connector: Connector | None = None,
        publisher: DomainEventPublisher | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.url = url or settings.HUB_URL
        self._connector = connector or websocket_connector
        self._publisher = publisher or DomainEventPublisher()
        self._sleep = sleep
        self._state = ChannelState.DISCONNECTED
        self._transport: HubTransport | None = None
        self._receiver: asyncio.Task | None = None
        self._closing = False

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ChannelState.CONNECTED

    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[Any], None]) -> Callable[[], None]:
        """Add a handler for one event type. Returns a callable that removes it."""
        return self._publisher.subscribe(event_type, handler)

    async def connect(self) -> bool:
        """
        Open the connection if it is not open yet.

        Returns:
            True if the channel is connected afterwards
        """
        if self._state != ChannelState.DISCONNECTED:
            return self.is_connected

        self._closing = False
        self._state = ChannelState.CONNECTING
        try:
            self._transport = await self._connector(self.url)
        except CONNECT_ERRORS:
            logger.exception(f"Progress channel connection error: {self.url}")
            self._state = ChannelState.DISCONNECTED
            return False

        self._state = ChannelState.CONNECTED
        self._receiver = asyncio.create_task(self._receive_loop())
        logger.info(f"Progress channel connected to {self.url}")
        return True

    async def disconnect(self) -> None:
        self._closing = True
        receiver, self._receiver = self._receiver, None
        if receiver is not None and receiver is not asyncio.current_task():
            receiver.cancel()
            await asyncio.wait([receiver])
        await self._close_transport()
        self._state = ChannelState.DISCONNECTED
        logger.info("Progress channel disconnected")

    async def start_simulation(self, project_id: str, project: PipelineProject | dict | None = None) -> bool:
        """
        Ask the hub to start a simulation. Dropped silently unless connected.

        Returns:
            True if the request was sent
        """
        if isinstance(project, PipelineProject):
            project = project.model_dump(mode="json", by_alias=True)
        return await self._invoke("StartSimulation", project_id, project)

    async def stop_simulation(self, project_id: str) -> bool:
        return await self._invoke("StopSimulation", project_id)

    async def _invoke(self, target: str, *arguments: Any) -> bool:
        if not self.is_connected or self._transport is None:
            logger.debug(f"Progress channel not connected, dropping {target}")
            return False
        try:
            await self._transport.send(json.dumps({"target": target, "arguments": list(arguments)}))
        except (WebSocketException, OSError):
            logger.warning(f"Progress channel dropped while sending {target}")
            return False
        return True

    async def _receive_loop(self) -> None:
        try:
            while not self._closing:
                try:
                    raw = await self._transport.recv()
                except (WebSocketException, OSError) as e:
                    if self._closing:
                        return
                    logger.warning(f"Progress channel connection lost ({e!r}), reconnecting")
                    if not await self._reconnect():
                        return
                    continue
                self._dispatch(raw)
        finally:
            if not self._closing and self._state != ChannelState.DISCONNECTED:
                logger.error("Progress channel receive loop stopped unexpectedly")
                self._state = ChannelState.DISCONNECTED
                await self._close_transport()

    async def _reconnect(self) -> bool:
        self._state = ChannelState.RECONNECTING
        await self._close_transport()
        for attempt, delay in enumerate(RECONNECT_DELAYS, start=1):
            await self._sleep(delay)
            if self._closing:
                return False
            try:
                self._transport = await self._connector(self.url)
            except CONNECT_ERRORS as e:
                logger.warning(f"Progress channel reconnect attempt {attempt} failed: {e}")
                continue
            self._state = ChannelState.CONNECTED
            logger.info(f"Progress channel reconnected after {attempt} attempt(s)")
            return True

        logger.error(f"Progress channel gave up reconnecting to {self.url}")
        self._state = ChannelState.DISCONNECTED
        return False

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            event = parse_frame(raw)
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.warning(f"Ignoring malformed hub frame: {raw!r}")
            return
        if event is None:
            logger.debug(f"Ignoring unhandled hub frame: {raw!r}")
            return
        self._publisher.publish(event)

    async def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await transport.close()
        except (WebSocketException, OSError):
            logger.debug("Progress channel transport already closed")
