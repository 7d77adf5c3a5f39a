"""Simulation hub: runs placeholder simulations and pushes their lifecycle events to one connection."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List

from pipeline_designer.domain.events import (
    DomainEventPublisher,
    SimulationFinished,
    SimulationStarted,
    event_publisher,
)
from pipeline_designer.schemas.api_schemas import SimulationResult

logger = logging.getLogger(__name__)

# Sends one hub frame: (target, arguments)
SendFrame = Callable[[str, List[Any]], Awaitable[None]]


def build_simulation_result(project_id: str, task_id: str = "", user_id: str = "") -> SimulationResult:
    """The simulator does not solve flows yet; every run succeeds with empty result maps."""
    return SimulationResult(
        project_id=project_id,
        task_id=task_id,
        user_id=user_id,
        node_results={},
        connection_results={},
        is_successful=True,
        error_message="",
        simulation_time=datetime.now(timezone.utc),
    )


def progress_steps(steps: int) -> List[int]:
    """Percentages reported for a run: 0 to 100 inclusive in `steps` increments."""
    steps = max(1, steps)
    return [round(step * 100 / steps) for step in range(steps + 1)]


async def run_simulation_rest(project_id: str, delay: float) -> SimulationResult:
    await asyncio.sleep(delay)
    return build_simulation_result(project_id)


class SimulationHubSession:
    """Per-connection simulation state: at most one running task per project id."""

    def __init__(
        self,
        send: SendFrame,
        steps: int = 10,
        step_delay: float = 0.2,
        publisher: DomainEventPublisher = event_publisher,
        user_id: str = "",
    ) -> None:
        self._send_frame = send
        self._steps = steps
        self._step_delay = step_delay
        self._publisher = publisher
        self._user_id = user_id
        self._tasks: Dict[str, asyncio.Task] = {}
        self._send_lock = asyncio.Lock()

    @property
    def running_projects(self) -> List[str]:
        return [project_id for project_id, task in self._tasks.items() if not task.done()]

    async def send(self, target: str, arguments: List[Any]) -> None:
        async with self._send_lock:
            await self._send_frame(target, arguments)

    async def dispatch(self, target: str, arguments: List[Any]) -> None:
        """Route one client invocation."""
        if target == "StartSimulation" and len(arguments) >= 1:
            project = arguments[1] if len(arguments) > 1 else None
            await self.start_simulation(str(arguments[0]), project)
        elif target == "StopSimulation" and len(arguments) >= 1:
            await self.stop_simulation(str(arguments[0]))
        else:
            logger.warning(f"Unknown hub invocation: {target} ({len(arguments)} arguments)")
            await self.send("SimulationError", [f"Unknown invocation: {target}"])

    async def start_simulation(self, project_id: str, project: Any = None) -> str:
        """
        Queue a run for project_id, replacing any run already in flight for it.

        Returns:
            The new task id
        """
        await self._cancel(project_id)

        task_id = str(uuid.uuid4())
        await self.send("SimulationQueued", [{"taskId": task_id, "projectId": project_id}])
        self._tasks[project_id] = asyncio.create_task(self._run(project_id, task_id))
        logger.info(f"Simulation {task_id} queued for project {project_id}")
        self._publisher.publish(SimulationStarted(aggregate_id=project_id, task_id=task_id))
        return task_id

    async def stop_simulation(self, project_id: str) -> None:
        stopped = await self._cancel(project_id)
        if stopped:
            logger.info(f"Simulation for project {project_id} cancelled")
        await self.send("SimulationStopped", [project_id])

    async def close(self) -> None:
        """Cancel every run of this connection."""
        for project_id in list(self._tasks):
            await self._cancel(project_id)

    async def _cancel(self, project_id: str) -> bool:
        task = self._tasks.pop(project_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        await asyncio.wait([task])
        return True

    async def _run(self, project_id: str, task_id: str) -> None:
        outcome = "failed"
        try:
            for percent in progress_steps(self._steps):
                # Cancellation lands on this await, so a stopped run emits nothing further
                await asyncio.sleep(self._step_delay)
                await self.send("SimulationProgress", [percent])

            result = build_simulation_result(project_id, task_id, self._user_id)
            await self.send("SimulationCompleted", [result.model_dump(mode="json", by_alias=True)])
            outcome = "completed"
        except asyncio.CancelledError:
            outcome = "stopped"
            raise
        except Exception as e:
            logger.exception(f"Simulation {task_id} for project {project_id} failed")
            try:
                await self.send("SimulationError", [str(e)])
            except Exception:
                logger.warning(f"Could not report failure of simulation {task_id}: connection gone")
        finally:
            if self._tasks.get(project_id) is asyncio.current_task():
                del self._tasks[project_id]
            self._publisher.publish(SimulationFinished(aggregate_id=project_id, task_id=task_id, outcome=outcome))
