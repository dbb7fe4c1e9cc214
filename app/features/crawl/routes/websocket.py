"""
WebSocket Route for Crawl Progress

A single shared channel: every connected client receives every progress
event of whichever crawl is running, and any client may cancel it.
"""
import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.features.crawl.services.session_manager import SessionManager, get_session_manager
from app.platform.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["WebSocket Progress"])


@router.websocket("/ws/progress")
async def websocket_progress_endpoint(
    websocket: WebSocket,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    WebSocket endpoint for real-time crawl progress.

    Usage:
        ws://localhost:8000/api/v1/ws/progress

    Server messages carry a ``type``: analysis_started, processing_url,
    url_completed, analysis_cancelled, analysis_failed.

    Client messages:
        {"type": "cancel"}  -> cancels the active crawl, answered with
        {"type": "cancel_ack", "cancelled": bool, "sessionId": ...}

    A frame that is not JSON is answered with {"type": "error", ...} and
    the connection stays open.
    """
    broadcaster = manager.broadcaster
    await broadcaster.connect(websocket)

    try:
        await websocket.send_json({"type": "connected", "message": "Connected to crawl progress stream"})

        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))

            try:
                message = json.loads(frame.get("text") or frame.get("bytes") or "")
            except ValueError as e:
                logger.warning(f"Malformed WebSocket message: {e}")
                await websocket.send_json({"type": "error", "message": "Malformed message"})
                continue

            if not isinstance(message, dict):
                continue

            if message.get("type") == "cancel":
                session_id = await manager.cancel_active()
                logger.info(f"Cancellation requested over WebSocket for session {session_id}")
                await websocket.send_json(
                    {"type": "cancel_ack", "cancelled": session_id is not None, "sessionId": session_id}
                )
            else:
                logger.debug(f"Ignoring WebSocket message of type {message.get('type')}")

    except WebSocketDisconnect:
        logger.info("Progress WebSocket disconnected")
    finally:
        await broadcaster.disconnect(websocket)
