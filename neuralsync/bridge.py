"""
FastAPI bridge simulator for the NeuralSync client.

This module stands in for the signal-processing bridge during development. It
serves the same WebSocket protocol: it accepts start/stop command frames and,
while a session runs, streams random mood and prediction frames.
"""

import asyncio
import contextlib
import json
import random
from datetime import datetime

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from .config import BRIDGE_EMIT_INTERVAL_SECONDS, BRIDGE_HOST, BRIDGE_PORT
from .models import Emotion


def _parse_command(message: str) -> str | None:
    """Extract the command name from a command frame, if it is one."""
    try:
        payload = json.loads(message)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    command = payload.get("command")
    return command if isinstance(command, str) else None


async def _emit_predictions(
    websocket: WebSocket, interval: float, rng: random.Random
) -> None:
    """Send a mood frame and a prediction frame every interval."""
    while True:
        await asyncio.sleep(interval)
        emotion = rng.choice(list(Emotion))
        await websocket.send_json({"type": "mood", "data": emotion.value})
        await websocket.send_json(
            {
                "type": "prediction_list",
                "data": {
                    "time": datetime.now().strftime("%H:%M:%S"),
                    "emotion": emotion.value,
                },
            }
        )


def create_app(
    interval: float = BRIDGE_EMIT_INTERVAL_SECONDS, rng: random.Random | None = None
) -> FastAPI:
    """
    Create a bridge simulator application.

    Args:
        interval: Seconds between predictions while a session runs
        rng: Random source for the emitted emotions

    Returns:
        Configured FastAPI application
    """
    rng = rng or random.Random()

    app = FastAPI(
        title="NeuralSync Bridge Simulator",
        description="Emits fake emotion predictions over WebSocket",
        version="0.1.0",
    )

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "neuralsync-bridge"}

    @app.websocket("/ws")
    async def bridge(websocket: WebSocket) -> None:
        """
        Serve one client connection.

        Sends a "Ready" status on accept. A start command begins emitting
        predictions, a stop command halts them. Anything else is ignored.
        """
        await websocket.accept()
        await websocket.send_json({"type": "status", "data": "Ready"})

        emitter: asyncio.Task[None] | None = None
        try:
            while True:
                command = _parse_command(await websocket.receive_text())

                if command == "start" and (emitter is None or emitter.done()):
                    await websocket.send_json({"type": "status", "data": "Collecting"})
                    emitter = asyncio.create_task(
                        _emit_predictions(websocket, interval, rng)
                    )
                elif command == "stop":
                    if emitter is not None:
                        emitter.cancel()
                        with contextlib.suppress(asyncio.CancelledError):
                            await emitter
                        emitter = None
                    await websocket.send_json({"type": "status", "data": "Ready"})
        except WebSocketDisconnect:
            # Client disconnected
            pass
        finally:
            if emitter is not None:
                emitter.cancel()

    return app


app = create_app()


def main() -> None:
    """Main entry point for the bridge simulator."""
    import uvicorn

    uvicorn.run(
        "neuralsync.bridge:app",
        host=BRIDGE_HOST,
        port=BRIDGE_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    main()
