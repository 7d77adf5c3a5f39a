"""Tests for the simulation hub session and its websocket endpoint."""
from __future__ import annotations

import asyncio

import pytest

from pipeline_designer.application.simulation_service import (
    SimulationHubSession,
    build_simulation_result,
    progress_steps,
)
from pipeline_designer.domain.events import SimulationFinished, SimulationStarted


def collect_until(websocket, *targets):
    frames = []
    while True:
        frame = websocket.receive_json()
        frames.append(frame)
        if frame["target"] in targets:
            return frames


class TestProgressSteps:
    """Test the reported percentages."""

    def test_ten_steps(self):
        assert progress_steps(10) == [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]

    def test_at_least_one_step(self):
        assert progress_steps(0) == [0, 100]

    def test_result_is_successful_and_empty(self):
        result = build_simulation_result("p1", "t1", "u1")
        assert result.project_id == "p1"
        assert result.task_id == "t1"
        assert result.is_successful is True
        assert result.node_results == {}
        assert result.simulation_time is not None


class TestSimulationHubSession:
    """Test per-connection simulation tasks."""

    @staticmethod
    def make_session(publisher, step_delay=0.0):
        frames = []

        async def send(target, arguments):
            frames.append((target, arguments))

        session = SimulationHubSession(send=send, steps=10, step_delay=step_delay, publisher=publisher)
        return session, frames

    def test_run_to_completion(self, publisher):
        """Test queued, progress 0..100, then completed."""
        finished = []
        publisher.subscribe(SimulationFinished, finished.append)

        async def scenario():
            session, frames = self.make_session(publisher)
            task_id = await session.start_simulation("p1")
            while session.running_projects:
                await asyncio.sleep(0)
            return task_id, frames

        task_id, frames = asyncio.run(scenario())

        assert frames[0] == ("SimulationQueued", [{"taskId": task_id, "projectId": "p1"}])
        progress = [arguments[0] for target, arguments in frames if target == "SimulationProgress"]
        assert progress == progress_steps(10)
        target, arguments = frames[-1]
        assert target == "SimulationCompleted"
        assert arguments[0]["projectId"] == "p1"
        assert arguments[0]["taskId"] == task_id
        assert arguments[0]["isSuccessful"] is True
        assert [event.outcome for event in finished] == ["completed"]

    def test_stop_cancels_running_task(self, publisher):
        """Test that a stopped run sends nothing after SimulationStopped."""
        finished = []
        publisher.subscribe(SimulationFinished, finished.append)

        async def scenario():
            session, frames = self.make_session(publisher, step_delay=0.01)
            await session.start_simulation("p1")
            await asyncio.sleep(0.03)
            await session.stop_simulation("p1")
            count = len(frames)
            await asyncio.sleep(0.05)
            return session, frames, count

        session, frames, count = asyncio.run(scenario())

        assert len(frames) == count
        assert frames[-1] == ("SimulationStopped", ["p1"])
        assert "SimulationCompleted" not in [target for target, _ in frames]
        assert session.running_projects == []
        assert [event.outcome for event in finished] == ["stopped"]

    def test_stop_without_running_task(self, publisher):
        async def scenario():
            session, frames = self.make_session(publisher)
            await session.stop_simulation("p1")
            return frames

        assert asyncio.run(scenario()) == [("SimulationStopped", ["p1"])]

    def test_restart_replaces_running_task(self, publisher):
        """Test that a second start for the same project cancels the first run."""
        started = []
        publisher.subscribe(SimulationStarted, started.append)

        async def scenario():
            session, frames = self.make_session(publisher, step_delay=0.01)
            first = await session.start_simulation("p1")
            await asyncio.sleep(0.02)
            second = await session.start_simulation("p1")
            while session.running_projects:
                await asyncio.sleep(0.01)
            return first, second, frames

        first, second, frames = asyncio.run(scenario())

        completed = [arguments[0] for target, arguments in frames if target == "SimulationCompleted"]
        assert [result["taskId"] for result in completed] == [second]
        assert [event.task_id for event in started] == [first, second]

    def test_projects_run_independently(self, publisher):
        async def scenario():
            session, frames = self.make_session(publisher)
            await session.start_simulation("p1")
            await session.start_simulation("p2")
            assert sorted(session.running_projects) == ["p1", "p2"]
            while session.running_projects:
                await asyncio.sleep(0)
            return frames

        frames = asyncio.run(scenario())
        completed = [arguments[0]["projectId"] for target, arguments in frames if target == "SimulationCompleted"]
        assert sorted(completed) == ["p1", "p2"]

    def test_close_cancels_everything(self, publisher):
        async def scenario():
            session, frames = self.make_session(publisher, step_delay=0.01)
            await session.start_simulation("p1")
            await session.start_simulation("p2")
            await session.close()
            return session

        assert asyncio.run(scenario()).running_projects == []

    def test_dispatch_unknown_target(self, publisher):
        async def scenario():
            session, frames = self.make_session(publisher)
            await session.dispatch("Ping", [])
            return frames

        assert asyncio.run(scenario()) == [("SimulationError", ["Unknown invocation: Ping"])]


class TestSimulationHubEndpoint:
    """Test the websocket surface."""

    def test_welcome_frame(self, client):
        with client.websocket_connect("/simulationHub") as websocket:
            assert websocket.receive_json() == {
                "target": "Connected",
                "arguments": ["Welcome to Simulation Hub"],
            }

    def test_progress_is_monotonic_and_reaches_100_before_completion(self, client):
        with client.websocket_connect("/simulationHub") as websocket:
            websocket.receive_json()
            websocket.send_json({"target": "StartSimulation", "arguments": ["p1", {"name": "Line A"}]})

            frames = collect_until(websocket, "SimulationCompleted", "SimulationError")

        assert frames[0]["target"] == "SimulationQueued"
        assert frames[0]["arguments"][0]["projectId"] == "p1"
        progress = [frame["arguments"][0] for frame in frames if frame["target"] == "SimulationProgress"]
        assert progress == sorted(progress)
        assert progress[-1] == 100
        assert frames[-1]["target"] == "SimulationCompleted"
        assert frames[-1]["arguments"][0]["projectId"] == "p1"
        assert frames[-1]["arguments"][0]["taskId"] == frames[0]["arguments"][0]["taskId"]

    def test_stop_simulation(self, client, monkeypatch, test_settings):
        """Test that nothing of a stopped run arrives after SimulationStopped."""
        monkeypatch.setattr(test_settings, "SIMULATION_STEP_DELAY", 0.05)
        with client.websocket_connect("/simulationHub") as websocket:
            websocket.receive_json()
            websocket.send_json({"target": "StartSimulation", "arguments": ["p1"]})
            assert websocket.receive_json()["target"] == "SimulationQueued"

            websocket.send_json({"target": "StopSimulation", "arguments": ["p1"]})
            frames = collect_until(websocket, "SimulationStopped")
            assert frames[-1]["arguments"] == ["p1"]

            # The next frame answers this probe, so no progress was queued in between
            websocket.send_json({"target": "Ping", "arguments": []})
            assert websocket.receive_json() == {
                "target": "SimulationError",
                "arguments": ["Unknown invocation: Ping"],
            }

        assert "SimulationCompleted" not in [frame["target"] for frame in frames]

    def test_malformed_frame(self, client):
        with client.websocket_connect("/simulationHub") as websocket:
            websocket.receive_json()
            websocket.send_text("not json")
            assert websocket.receive_json() == {
                "target": "SimulationError",
                "arguments": ["Malformed hub frame"],
            }
