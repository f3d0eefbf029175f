"""
services/notification_registry.py

In-process directory of live real-time connections, keyed by user id.

A user may hold several connections at once (tabs, devices). The registry
keeps the invariant that a user id is present only while it has at least
one open connection.

Delivery is best-effort:
  - no queueing for offline users, nothing is persisted here
  - a failed write to one stale connection is logged and skipped,
    the user's other connections still receive the payload

All methods run on the single asyncio event loop; sends iterate a snapshot
of the connection set taken when the send starts.

Connections only need an async `send_text(str)` method (Starlette's
WebSocket, or a fake in tests).
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Set

logger = logging.getLogger(__name__)


def _serialize(payload: Any) -> str:
    return json.dumps(payload, default=str)


class ConnectionRegistry:
    def __init__(self):
        self._clients: Dict[str, Set[Any]] = {}

    # =================================================================
    # SECTION: LIFECYCLE
    # =================================================================

    def register(self, user_id: str, connection: Any) -> None:
        conns = self._clients.setdefault(user_id, set())
        conns.add(connection)
        logger.info(f"[ws] user_id={user_id} connected connections={len(conns)}")

    def unregister(self, user_id: str, connection: Any) -> None:
        conns = self._clients.get(user_id)
        if not conns:
            return
        conns.discard(connection)
        if not conns:
            del self._clients[user_id]
        logger.info(f"[ws] user_id={user_id} disconnected connections={len(conns)}")

    # =================================================================
    # SECTION: DELIVERY
    # =================================================================

    async def _write(self, user_id: str, connection: Any, message: str) -> bool:
        try:
            await connection.send_text(message)
            return True
        except Exception as e:
            logger.warning(f"[ws] write failed user_id={user_id} error={e}")
            return False

    async def send_to_user(self, user_id: str, payload: Any) -> bool:
        """Write payload to every open connection of user_id. True if any write landed."""
        conns = self._clients.get(user_id)
        if not conns:
            logger.info(f"[ws] user_id={user_id} not connected")
            return False

        message = _serialize(payload)
        sent = 0
        for connection in list(conns):
            if await self._write(user_id, connection, message):
                sent += 1

        logger.info(f"[ws] sent user_id={user_id} connections={sent}")
        return sent > 0

    async def send_to_users(self, user_ids: Iterable[str], payload: Any) -> Dict[str, int]:
        sent = 0
        offline = 0
        for user_id in user_ids:
            if await self.send_to_user(user_id, payload):
                sent += 1
            else:
                offline += 1

        logger.info(f"[ws] fanout online={sent} offline={offline}")
        return {"sent": sent, "offline": offline}

    async def broadcast(self, payload: Any) -> int:
        message = _serialize(payload)
        count = 0
        snapshot = [(user_id, list(conns)) for user_id, conns in self._clients.items()]
        for user_id, conns in snapshot:
            for connection in conns:
                if await self._write(user_id, connection, message):
                    count += 1

        logger.info(f"[ws] broadcast connections={count}")
        return count

    # =================================================================
    # SECTION: QUERIES
    # =================================================================

    def is_online(self, user_id: str) -> bool:
        return bool(self._clients.get(user_id))

    def online_user_count(self) -> int:
        return len(self._clients)

    def total_connection_count(self) -> int:
        return sum(len(conns) for conns in self._clients.values())

    def snapshot(self) -> Dict[str, int]:
        return {"onlineUsers": self.online_user_count(), "connections": self.total_connection_count()}


async def heartbeat(connection: Any, interval: float) -> None:
    """
    Probe a connection every `interval` seconds until a write fails or the
    task is cancelled. A failed probe only stops the loop; eviction happens
    through the connection's own close/error path.
    """
    if interval <= 0:
        return
    message = _serialize({"type": "heartbeat"})
    while True:
        await asyncio.sleep(interval)
        try:
            await connection.send_text(message)
        except Exception as e:
            logger.info(f"[ws] heartbeat stopped error={e}")
            return
