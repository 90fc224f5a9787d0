"""Chat history persistence: append, list, read receipts, clear."""

import json
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, update
from sqlmodel import Session, func, select

from secretcalc.config import settings
from secretcalc.errors import ValidationError
from secretcalc.models.message import Message
from secretcalc.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

MESSAGE_KINDS = {"text", "voice"}


def _next_timestamp(room_id: str, session: Session):
    """Server time, bumped past the room's newest message if the clock lags."""
    now = utcnow()
    latest = session.exec(
        select(func.max(Message.timestamp)).where(Message.room_id == room_id)
    ).one()
    if latest is not None and as_utc(latest) >= now:
        return as_utc(latest) + timedelta(microseconds=1)
    return now


def create_message(
    room_id: str,
    sender_id: str,
    content: str,
    session: Session,
    kind: str = "text",
    voice_url: Optional[str] = None,
    voice_duration: Optional[float] = None,
    reply_to: Optional[dict] = None,
) -> Message:
    """Append a message to the room's history."""
    if not isinstance(content, str) or not content:
        raise ValidationError("content required")
    if kind not in MESSAGE_KINDS:
        raise ValidationError(f"Unknown message kind: {kind}")

    message = Message(
        room_id=room_id,
        sender_id=sender_id,
        content=content,
        kind=kind,
        voice_url=voice_url or None,
        voice_duration=voice_duration or 0,
        reply_to=json.dumps(reply_to) if reply_to else None,
        timestamp=_next_timestamp(room_id, session),
    )
    session.add(message)
    session.commit()
    session.refresh(message)
    return message


def list_messages(room_id: str, session: Session, limit: int | None = None) -> list[Message]:
    """Oldest-first history for a room, capped at the history limit."""
    limit = limit or settings.message_history_limit
    return list(session.exec(
        select(Message)
        .where(Message.room_id == room_id)
        .order_by(Message.timestamp)
        .limit(limit)
    ).all())


def mark_read(message_id: str, room_id: str, session: Session) -> bool:
    """Set the read flag. Re-marking a read message matches again and changes nothing.

    Returns False if the room has no such message.
    """
    result = session.exec(
        update(Message)
        .where(Message.id == message_id, Message.room_id == room_id)
        .values(read=True)
    )
    session.commit()
    return result.rowcount > 0


def clear_messages(room_id: str, session: Session) -> int:
    result = session.exec(delete(Message).where(Message.room_id == room_id))
    session.commit()
    logger.info("Cleared %d message(s) from room %s", result.rowcount, room_id)
    return result.rowcount


def decode_reply_to(message: Message) -> dict | None:
    if not message.reply_to:
        return None
    try:
        return json.loads(message.reply_to)
    except json.JSONDecodeError:
        logger.warning("Message %s has unreadable reply_to", message.id)
        return None
