"""Message schemas."""

from datetime import datetime
from typing import Optional

from secretcalc.models.message import Message
from secretcalc.schemas.base import CamelModel
from secretcalc.services.message_service import decode_reply_to
from secretcalc.utils.clock import as_utc


class ReplyTo(CamelModel):
    message_id: Optional[str] = None
    content: Optional[str] = None
    sender_id: Optional[str] = None


class MessageResponse(CamelModel):
    id: str
    room_id: str
    sender_id: str
    content: str
    kind: str
    voice_url: Optional[str] = None
    voice_duration: float = 0
    reply_to: Optional[ReplyTo] = None
    read: bool
    timestamp: datetime


def to_message_response(m: Message) -> MessageResponse:
    reply = decode_reply_to(m)
    return MessageResponse(
        id=m.id,
        room_id=m.room_id,
        sender_id=m.sender_id,
        content=m.content,
        kind=m.kind,
        voice_url=m.voice_url,
        voice_duration=m.voice_duration or 0,
        reply_to=ReplyTo.model_validate(reply) if reply else None,
        read=bool(m.read),
        timestamp=as_utc(m.timestamp),
    )


def message_payload(m: Message) -> dict:
    """Wire form of a message record, as pushed in ``new_message``."""
    return to_message_response(m).model_dump(by_alias=True, mode="json")
