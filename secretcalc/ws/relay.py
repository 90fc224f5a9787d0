"""Real-time relay between the two devices of a room.

Client sends (JSON frames, ``type`` names the event):
  {"type": "register_device", "deviceId": "..."}
  {"type": "join_room", "roomId": "...", "token": "..."}
  {"type": "send_message", "content": "hi", "kind": "text", "ackId": 1,
   "replyTo": {...}, "voiceUrl": "...", "voiceDuration": 3.2}
  {"type": "message_read", "messageId": "..."}
  {"type": "call_offer", "offer": {...}}    also call_answer, ice_candidate
  {"type": "call_end"}
  {"type": "ping"}

Server pushes:
  paired, peer_online, new_message, message_read, chat_cleared, unpaired,
  call_offer, call_answer, ice_candidate, call_ended, peer_offline,
  error, ack, pong

Events that need a joined room are dropped without a reply when the
connection has no session: there is no room to answer into.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from secretcalc.database import new_session
from secretcalc.errors import AuthError, RelayError
from secretcalc.schemas.message import message_payload
from secretcalc.services import message_service
from secretcalc.utils.security import verify_claim
from secretcalc.ws.channels import ChannelHub, Connection, device_channel, room_channel
from secretcalc.ws.sessions import RoomSession, SessionTable

logger = logging.getLogger(__name__)

# inbound signaling type -> (outbound type, payload field)
SIGNALS = {
    "call_offer": ("call_offer", "offer"),
    "call_answer": ("call_answer", "answer"),
    "ice_candidate": ("ice_candidate", "candidate"),
    "call_end": ("call_ended", None),
}


def _reply_to(value: Any) -> dict | None:
    if not isinstance(value, dict):
        return None
    reply = {k: value.get(k) for k in ("messageId", "content", "senderId")}
    reply = {k: v for k, v in reply.items() if isinstance(v, str)}
    return reply or None


def _duration(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return float(value)


class RelayEngine:
    """Routes room events between connections.

    The session table is injected so it can be inspected and swapped in
    tests; storage calls run in the thread pool with a fresh DB session.
    """

    def __init__(
        self,
        sessions: SessionTable,
        hub: ChannelHub | None = None,
        session_factory: Callable = new_session,
    ):
        self.sessions = sessions
        self.hub = hub or ChannelHub()
        self._session_factory = session_factory
        self._room_locks: Dict[str, asyncio.Lock] = {}
        self._handlers = {
            "register_device": self.register_device,
            "join_room": self.join_room,
            "send_message": self.send_message,
            "message_read": self.mark_read,
            "ping": self.ping,
            **{name: self.relay_signal for name in SIGNALS},
        }

    # --- Dispatch ---

    async def handle(self, conn: Any, msg: dict) -> None:
        msg_type = msg.get("type", "")
        if not isinstance(msg_type, str):
            await conn.send({"type": "error", "reason": "Unknown type"})
            return
        handler = self._handlers.get(msg_type)
        if handler is None:
            await conn.send({"type": "error", "reason": f"Unknown type: {msg_type}"})
            return
        try:
            await handler(conn, msg)
        except Exception:
            logger.exception("Relay handler %s failed for %s", msg_type, conn)

    async def _storage(self, fn: Callable, *args, **kwargs):
        def call():
            with self._session_factory() as session:
                return fn(*args, session=session, **kwargs)
        return await run_in_threadpool(call)

    def _room_lock(self, room_id: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_id)
        if lock is None:
            lock = self._room_locks[room_id] = asyncio.Lock()
        return lock

    def _release_room_lock(self, room_id: str) -> None:
        # A held lock stays so a send in flight keeps ordering with the next one
        lock = self._room_locks.get(room_id)
        if lock is not None and not lock.locked():
            del self._room_locks[room_id]

    # --- Connection lifecycle ---

    async def ping(self, conn: Any, msg: dict) -> None:
        await conn.send({"type": "pong"})

    async def register_device(self, conn: Any, msg: dict) -> None:
        """Join the device's private channel so pairing success can reach it."""
        device_id = msg.get("deviceId")
        if not isinstance(device_id, str) or not device_id:
            await conn.send({"type": "error", "reason": "deviceId required"})
            return
        self.hub.join(device_channel(device_id), conn)
        logger.debug("%s registered as device %s", conn, device_id)

    async def join_room(self, conn: Any, msg: dict) -> RoomSession | None:
        room_id = msg.get("roomId")
        token = msg.get("token") or msg.get("claim")
        try:
            claim = verify_claim(token)
        except AuthError:
            await conn.send({"type": "error", "reason": "Auth failed"})
            return None
        if claim.room_id != room_id:
            await conn.send({"type": "error", "reason": "Invalid room"})
            return None

        previous = self.sessions.lookup(conn)
        if previous is not None and previous.room_id != room_id:
            self.hub.leave(room_channel(previous.room_id), conn)
            if not self.hub.members(room_channel(previous.room_id)):
                self._release_room_lock(previous.room_id)

        self.hub.join(room_channel(room_id), conn)
        session = self.sessions.bind(conn, claim.device_id, room_id)
        logger.info("Device %s joined room %s", claim.device_id, room_id)

        await self.hub.broadcast(
            room_channel(room_id),
            {"type": "peer_online", "deviceId": claim.device_id},
            exclude=conn,
        )
        return session

    async def disconnect(self, conn: Any) -> None:
        """Forget the connection. Peers hear ``peer_offline`` only if it had joined a room."""
        self.hub.leave_all(conn)
        session = self.sessions.unbind(conn)
        if session is None:
            return
        logger.info("Device %s left room %s", session.device_id, session.room_id)
        await self.hub.broadcast(
            room_channel(session.room_id),
            {"type": "peer_offline", "deviceId": session.device_id},
            exclude=conn,
        )
        if not self.hub.members(room_channel(session.room_id)):
            self._release_room_lock(session.room_id)

    # --- Room events ---

    async def send_message(self, conn: Any, msg: dict) -> dict | None:
        """Persist and fan out a chat message, then ack the sender.

        ``new_message`` reaches the sender too: it carries the server id and
        timestamp. Returns the ack, or None when the caller has no session.
        """
        session = self.sessions.lookup(conn)
        if session is None:
            return None

        ack: dict = {"type": "ack", "ackId": msg.get("ackId"), "success": False}
        async with self._room_lock(session.room_id):
            try:
                message = await self._storage(
                    message_service.create_message,
                    session.room_id,
                    session.device_id,
                    msg.get("content"),
                    kind=msg.get("kind") or "text",
                    voice_url=msg.get("voiceUrl") if isinstance(msg.get("voiceUrl"), str) else None,
                    voice_duration=_duration(msg.get("voiceDuration")),
                    reply_to=_reply_to(msg.get("replyTo")),
                )
            except RelayError as e:
                logger.info("Rejected message from %s: %s", session.device_id, e.message)
            except Exception:
                logger.exception("Failed to store message in room %s", session.room_id)
            else:
                await self.hub.broadcast(
                    room_channel(session.room_id),
                    {"type": "new_message", **message_payload(message)},
                )
                ack.update(success=True, messageId=message.id)

        await conn.send(ack)
        return ack

    async def mark_read(self, conn: Any, msg: dict) -> None:
        session = self.sessions.lookup(conn)
        if session is None:
            return
        message_id = msg.get("messageId")
        if not isinstance(message_id, str) or not message_id:
            return
        try:
            found = await self._storage(message_service.mark_read, message_id, session.room_id)
        except Exception:
            logger.exception("Failed to mark message %s read", message_id)
            return
        if not found:
            return
        await self.hub.broadcast(
            room_channel(session.room_id),
            {"type": "message_read", "messageId": message_id},
            exclude=conn,
        )

    async def relay_signal(self, conn: Any, msg: dict) -> None:
        """Forward call signaling to the peer untouched."""
        session = self.sessions.lookup(conn)
        if session is None:
            return
        out_type, field = SIGNALS[msg["type"]]
        payload: dict = {"type": out_type}
        if field is not None:
            payload[field] = msg.get(field)
        if out_type == "call_offer":
            payload["fromDevice"] = session.device_id
        await self.hub.broadcast(room_channel(session.room_id), payload, exclude=conn)

    # --- Pushes triggered by REST calls ---

    async def notify_paired(self, device_id: str, room_id: str, token: str) -> int:
        return await self.hub.broadcast(
            device_channel(device_id),
            {"type": "paired", "roomId": room_id, "token": token},
        )

    async def notify_chat_cleared(self, room_id: str) -> int:
        return await self.hub.broadcast(room_channel(room_id), {"type": "chat_cleared"})

    async def notify_unpaired(self, room_id: str) -> int:
        # Sockets stay joined; clients react to the event and disconnect themselves
        self._release_room_lock(room_id)
        return await self.hub.broadcast(room_channel(room_id), {"type": "unpaired"})


relay = RelayEngine(SessionTable())


async def websocket_relay(ws: WebSocket, engine: RelayEngine = relay):
    """WebSocket endpoint loop: one frame at a time per connection."""
    await ws.accept()
    conn = Connection(ws)
    logger.debug("%s connected", conn)

    try:
        while True:
            frame = await ws.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            data = frame.get("text")
            if data is None:
                await conn.send({"type": "error", "reason": "Expected a text frame"})
                continue
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                await conn.send({"type": "error", "reason": "Invalid JSON"})
                continue
            if not isinstance(msg, dict):
                await conn.send({"type": "error", "reason": "Expected a JSON object"})
                continue
            await engine.handle(conn, msg)
    except WebSocketDisconnect:
        pass
    finally:
        conn.closed = True
        # Teardown must finish even when the handler task itself is being cancelled
        await asyncio.shield(engine.disconnect(conn))
        logger.debug("%s disconnected", conn)
