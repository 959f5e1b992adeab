"""
WebSocket Handler

Live preview via WebSocket connection.
Pushes the rendered frame (with skeleton overlay) to the frontend and
accepts capture requests on the same channel.
"""

import json
import time
import base64
import asyncio
import contextlib
import logging
from fastapi import WebSocket, WebSocketDisconnect

from .schemas import (
    WebSocketMessageType,
    PreviewMessage,
    PoseLabelEnum,
)
from ..config import Settings
from ..core.domain import InvalidCapture, UnknownPoseLabel
from ..core.services import CollectorSession

# Configure logging
logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages WebSocket connections.

    Every connection previews the same collection session.
    """

    def __init__(self):
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        """Accept new WebSocket connection."""
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"New WebSocket connection. Total: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket) -> None:
        """Handle WebSocket disconnection."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Remaining: {len(self.active_connections)}")

    async def send_json(self, websocket: WebSocket, data: dict) -> None:
        """Send JSON data to a specific connection."""
        try:
            await websocket.send_json(data)
        except Exception as e:
            logger.error(f"Failed to send WebSocket message: {e}")


# Global connection manager
manager = ConnectionManager()


def make_message(msg_type: WebSocketMessageType, data: dict) -> dict:
    """Wrap a payload in the standard message envelope."""
    return {
        "type": msg_type.value,
        "data": data,
        "timestamp": int(time.time() * 1000)
    }


def build_preview(session: CollectorSession, jpeg_quality: int = 80) -> dict:
    """Current rendered frame and collection status as a preview payload."""
    surface = session.surface
    jpeg = surface.to_jpeg(jpeg_quality)
    preview = PreviewMessage(
        frame_base64=base64.b64encode(jpeg).decode("ascii") if jpeg else None,
        width=surface.width,
        height=surface.height,
        mirrored=surface.mirrored,
        has_pose=session.slot.has_pose,
        counts={label.value: count for label, count in session.counts().items()},
    )
    return preview.model_dump()


async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for live preview and capture.

    Protocol:
    1. Client connects
    2. Server pushes preview messages at the configured rate
    3. Client sends capture requests whenever the pose looks right
    4. Client sends end_session (or disconnects) when done

    Message format (client -> server):
    {
        "type": "capture",
        "data": {"pose": "Tree"},
        "timestamp": 1704067200000
    }

    Message format (server -> client):
    {
        "type": "preview",
        "data": {
            "frame_base64": "...",
            "width": 640,
            "height": 480,
            "mirrored": true,
            "has_pose": true,
            "counts": {"Tree": 3, ...}
        },
        "timestamp": 1704067200025
    }
    """
    session: CollectorSession = websocket.app.state.session
    settings: Settings = websocket.app.state.settings

    await manager.connect(websocket)
    sender = None

    try:
        # Send session started message
        await manager.send_json(websocket, make_message(
            WebSocketMessageType.SESSION_STARTED,
            {"message": "Connected to yoga pose collector", "poses": [p.value for p in PoseLabelEnum]},
        ))

        sender = asyncio.create_task(stream_previews(websocket, session, settings))

        # Main message loop
        while True:
            try:
                data = await websocket.receive_json()
            except json.JSONDecodeError:
                await manager.send_json(websocket, make_message(
                    WebSocketMessageType.ERROR, {"error": "Invalid JSON"}
                ))
                continue

            msg_type = data.get("type") if isinstance(data, dict) else None

            if msg_type == WebSocketMessageType.CAPTURE.value:
                await handle_capture(websocket, session, data)

            elif msg_type == WebSocketMessageType.END_SESSION.value:
                await manager.send_json(websocket, make_message(
                    WebSocketMessageType.SESSION_ENDED, {"message": "Session ended"}
                ))
                break

            else:
                await manager.send_json(websocket, make_message(
                    WebSocketMessageType.ERROR, {"error": f"Unknown message type: {msg_type}"}
                ))

    except WebSocketDisconnect:
        logger.info("Client disconnected")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        if sender is not None:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender
        manager.disconnect(websocket)


async def stream_previews(websocket: WebSocket, session: CollectorSession, settings: Settings) -> None:
    """Push a preview message every preview interval until cancelled."""
    while True:
        await manager.send_json(websocket, make_message(
            WebSocketMessageType.PREVIEW, build_preview(session, settings.jpeg_quality)
        ))
        await asyncio.sleep(settings.preview_interval)


async def handle_capture(websocket: WebSocket, session: CollectorSession, message: dict) -> None:
    """
    Capture the latest keypoints under the requested pose.
    """
    payload = message.get("data") or {}
    if not isinstance(payload, dict):
        await manager.send_json(websocket, make_message(
            WebSocketMessageType.ERROR, {"error": "Capture data must be an object with a 'pose' field"}
        ))
        return
    pose = payload.get("pose", "")

    try:
        samples = session.capture(pose)
    except (InvalidCapture, UnknownPoseLabel) as e:
        logger.warning(f"Capture rejected: {e}")
        await manager.send_json(websocket, make_message(
            WebSocketMessageType.ERROR, {"error": str(e)}
        ))
        return

    await manager.send_json(websocket, make_message(
        WebSocketMessageType.CAPTURE_RESULT,
        {
            "pose": pose,
            "samples": samples,
            "total_samples": session.dataset.total_samples,
        },
    ))
