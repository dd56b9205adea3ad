# chatrelay/api/websocket.py

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from chatrelay.core.state import RelayState, get_ws_relay_state
from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.outbox import QueueOutbox

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# INBOUND FRAME DISPATCH
# ============================================================================

def _field(data: Any, key: str) -> Any:
    """Payloads may be sent bare ("hi") or wrapped ({"text": "hi"})."""
    if isinstance(data, dict):
        return data.get(key)
    return data


def handle_frame(manager: ConnectionManager, connection_id: str, raw: str) -> bool:
    """
    Decode one inbound text frame and apply it.

    Returns:
        True if the frame named a known action, False if it was dropped.
    """
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Dropped invalid JSON from %s", connection_id)
        return False

    if not isinstance(frame, dict):
        logger.warning("Dropped non-object frame from %s", connection_id)
        return False

    action = frame.get("action")
    data = frame.get("data")
    logger.debug("Websocket input: %s action=%s", connection_id, action)

    if action == "join":
        payload = data if isinstance(data, dict) else {}
        manager.join(
            connection_id,
            name=payload.get("name"),
            room=payload.get("room"),
            avatar=payload.get("avatar"),
        )

    elif action == "message":
        manager.send_message(connection_id, _field(data, "text"))

    elif action == "typing":
        manager.set_typing(connection_id, _field(data, "isTyping"))

    elif action == "switchRoom":
        manager.switch_room(connection_id, _field(data, "room"))

    elif action == "setProfilePic":
        manager.set_profile(connection_id, _field(data, "avatar"))

    else:
        logger.warning("Dropped unknown action %r from %s", action, connection_id)
        return False

    return True


async def _read_frames(websocket: WebSocket, manager: ConnectionManager, connection_id: str) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))

        text = message.get("text")
        if text is None:
            logger.warning("Dropped binary frame from %s", connection_id)
            continue
        handle_frame(manager, connection_id, text)


# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, relay: RelayState = Depends(get_ws_relay_state)):
    """
    WebSocket endpoint for real-time chat.

    Protocol:
    =========

    Client -> Server Actions ({"action": ..., "data": ...}):
    --------------------------------------------------------
    Join Room:
        {"action": "join", "data": {"name": "Alice", "room": "general", "avatar": "<ref>"}}
    Send Message:
        {"action": "message", "data": "hello"}
    Typing Indicator:
        {"action": "typing", "data": true}
    Switch Room:
        {"action": "switchRoom", "data": "dev"}
    Set Avatar:
        {"action": "setProfilePic", "data": "<ref>"}

    Server -> Client Events ({"event": ..., "data": ...}):
    ------------------------------------------------------
    history   [{"name", "text", "time", "avatar"}, ...]   on join / switch
    message   {"name", "text", "time", "avatar"}
    system    {"type": "joined" | "left", "text", "online", "time"}
    typing    {"name", "isTyping"}
    roomList  {"general": 2, "dev": 1}

    Lifecycle:
    ==========
    1. Connection accepted, a session and an outbox are created
    2. A reader loop applies inbound actions; a writer task drains the outbox
    3. When either side ends (client left, send failed, outbox overflowed)
       the session is disconnected and the socket closed

    Malformed frames and unknown actions are logged and dropped; nothing is
    sent back to the client.
    """
    await websocket.accept()

    manager = relay.connection_manager
    outbox = QueueOutbox(maxsize=relay.settings.OUTBOX_MAX_SIZE)
    session = manager.connect(outbox)
    connection_id = session.connection_id
    outbox.label = connection_id

    reader = asyncio.create_task(_read_frames(websocket, manager, connection_id))
    writer = asyncio.create_task(outbox.drain(websocket.send_json))

    try:
        done, _ = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("WebSocket error on %s: %s", connection_id, exc, exc_info=exc)
    finally:
        manager.disconnect(connection_id)
        outbox.close()
        for task in (reader, writer):
            if not task.done():
                task.cancel()
        await asyncio.gather(reader, writer, return_exceptions=True)

        if (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        ):
            try:
                await websocket.close(code=1008 if outbox.overflowed else 1000)
            except RuntimeError:
                # Client closed its side first
                pass
