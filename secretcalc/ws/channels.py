"""Named broadcast channels over live WebSocket connections."""

import asyncio
import logging
import secrets
from typing import Any, Dict

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


def device_channel(device_id: str) -> str:
    return f"device:{device_id}"


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


class Connection:
    """One accepted WebSocket. Sends are serialized with a per-connection lock."""

    def __init__(self, ws: WebSocket):
        self.ws = ws
        self.id = f"conn_{secrets.token_hex(6)}"
        self.closed = False
        self._send_lock = asyncio.Lock()

    async def send(self, message: dict) -> bool:
        """Send a JSON frame. Returns False (and marks the connection closed) on failure."""
        if self.closed or self.ws.application_state != WebSocketState.CONNECTED:
            return False
        try:
            async with self._send_lock:
                await self.ws.send_json(message)
            return True
        except Exception as e:
            logger.debug("Send to %s failed: %s", self.id, e)
            self.closed = True
            return False

    def __repr__(self) -> str:
        return f"<Connection {self.id}>"


class ChannelHub:
    """Channel name -> member connections. A connection may sit in several channels."""

    def __init__(self):
        self._channels: Dict[str, list[Any]] = {}

    def join(self, channel: str, conn: Any) -> None:
        members = self._channels.setdefault(channel, [])
        if conn not in members:
            members.append(conn)

    def leave(self, channel: str, conn: Any) -> None:
        members = self._channels.get(channel, [])
        if conn in members:
            members.remove(conn)
        if not members:
            self._channels.pop(channel, None)

    def leave_all(self, conn: Any) -> list[str]:
        """Drop a connection from every channel. Returns the channels it left."""
        left = [name for name, members in self._channels.items() if conn in members]
        for name in left:
            self.leave(name, conn)
        return left

    def members(self, channel: str) -> list[Any]:
        return list(self._channels.get(channel, []))

    async def broadcast(self, channel: str, message: dict, exclude: Any = None) -> int:
        """Send to every member of a channel except ``exclude``. Returns the delivery count."""
        delivered = 0
        dead = []
        for conn in self.members(channel):
            if conn is exclude:
                continue
            if await conn.send(message):
                delivered += 1
            else:
                dead.append(conn)
        for conn in dead:
            self.leave_all(conn)
        return delivered

    @property
    def connection_count(self) -> int:
        return len({id(c) for members in self._channels.values() for c in members})
