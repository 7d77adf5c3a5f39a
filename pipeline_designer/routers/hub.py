"""
Simulation hub: a WebSocket carrying JSON frames {"target": ..., "arguments": [...]}.
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import json
import logging

from pipeline_designer.application.simulation_service import SimulationHubSession
from pipeline_designer.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/simulationHub")
async def simulation_hub(websocket: WebSocket):
    await websocket.accept()

    async def send(target, arguments):
        await websocket.send_text(json.dumps({"target": target, "arguments": arguments}))

    session = SimulationHubSession(
        send=send,
        steps=settings.SIMULATION_STEPS,
        step_delay=settings.SIMULATION_STEP_DELAY,
    )
    await session.send("Connected", ["Welcome to Simulation Hub"])
    logger.info("Simulation hub client connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
                target = frame["target"]
                arguments = frame.get("arguments", [])
            except (ValueError, KeyError, TypeError, AttributeError):
                await session.send("SimulationError", ["Malformed hub frame"])
                continue
            await session.dispatch(target, arguments if isinstance(arguments, list) else [arguments])
    except WebSocketDisconnect:
        logger.info("Simulation hub client disconnected")
    finally:
        await session.close()
