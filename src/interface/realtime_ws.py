"""WebSocket endpoint for project channels and editing presence.

Client messages are JSON objects with an ``action`` and a ``projectId``:

    {"action": "join", "projectId": "3"}
    {"action": "leave", "projectId": "3"}
    {"action": "editing:start", "projectId": "3"}
    {"action": "editing:stop", "projectId": "3"}

The server pushes event envelopes ``{event, channel, payload, emitted_at}``.
"""

import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from src.services.presence_service import presence_tracker
from src.services.realtime_service import ChannelMember, channel_for_project, realtime_hub


router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)


async def handle_client_message(member: ChannelMember, message: dict[str, Any]) -> str | None:
    """Apply one client message; return an error text for malformed input."""
    action = message.get("action")
    project_id = message.get("projectId")
    if not isinstance(project_id, str | int) or isinstance(project_id, bool):
        return "projectId is required"
    project_id = str(project_id)

    if action == "join":
        realtime_hub.join(channel_for_project(project_id), member)
    elif action == "leave":
        realtime_hub.leave(channel_for_project(project_id), member.client_id)
    elif action == "editing:start":
        await presence_tracker.start_editing(
            project_id=project_id,
            user_id=member.user_id,
            user_name=member.user_name,
            client_id=member.client_id,
        )
    elif action == "editing:stop":
        await presence_tracker.stop_editing(project_id=project_id, user_id=member.user_id, client_id=member.client_id)
    else:
        return f"Unknown action: {action}"
    return None


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    user_id: str = Query(...),
    user_name: str = Query(default=""),
) -> None:
    """Serve one client connection until it disconnects."""
    await websocket.accept()
    member = ChannelMember(
        client_id=uuid.uuid4().hex,
        user_id=user_id,
        user_name=user_name or user_id,
        send=websocket.send_json,
    )
    logger.info("WebSocket connected", extra={"client_id": member.client_id, "user_id": user_id})

    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except ValueError:
                message = None
            if not isinstance(message, dict):
                await websocket.send_json({"error": "Message must be a JSON object"})
                continue
            error = await handle_client_message(member, message)
            if error:
                await websocket.send_json({"error": error})
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected", extra={"client_id": member.client_id})
    finally:
        realtime_hub.leave_all(member.client_id)
        await presence_tracker.disconnect(member.client_id)
