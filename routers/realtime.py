"""routers/realtime.py - WebSocket endpoint for push notifications."""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from auth import is_banned, load_user
from config import WS_HEARTBEAT_SECONDS
from dependencies import get_registry
from services.notification_registry import ConnectionRegistry, heartbeat

logger = logging.getLogger(__name__)

router = APIRouter()

UNAUTHORIZED_CLOSE_CODE = 4001


def _resolve_user_id(websocket: WebSocket) -> Optional[str]:
    return websocket.headers.get("x-user-id") or websocket.query_params.get("user_id")


@router.websocket("/ws")
async def notifications_socket(
    websocket: WebSocket,
    registry: ConnectionRegistry = Depends(get_registry),
):
    user_id = _resolve_user_id(websocket)
    user = await run_in_threadpool(load_user, user_id)

    # a close code only reaches the client after accept
    await websocket.accept()
    if user is None or is_banned(user):
        logger.info(f"[ws] rejected user_id={user_id}")
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Unauthorized")
        return

    registry.register(user.id, websocket)
    heartbeat_task = asyncio.create_task(heartbeat(websocket, WS_HEARTBEAT_SECONDS))

    try:
        await websocket.send_text(json.dumps({
            "type": "connected",
            "message": "Connected to notification service",
        }))

        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                logger.warning(f"[ws] malformed message user_id={user.id}")
                continue

            msg_type = data.get("type") if isinstance(data, dict) else None
            if msg_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            else:
                logger.info(f"[ws] unknown message type={msg_type} user_id={user.id}")
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"[ws] connection error user_id={user.id} error={e}")
    finally:
        heartbeat_task.cancel()
        registry.unregister(user.id, websocket)
