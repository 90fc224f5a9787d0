"""Chat message model."""

import secrets
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from secretcalc.utils.clock import utcnow


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: str = Field(default_factory=lambda: f"msg_{secrets.token_hex(8)}", primary_key=True)
    room_id: str = Field(index=True)
    sender_id: str
    content: str
    kind: str = Field(default="text")  # 'text' | 'voice'
    voice_url: Optional[str] = None
    voice_duration: float = Field(default=0)  # seconds
    reply_to: Optional[str] = None  # JSON {messageId, content, senderId}
    read: bool = Field(default=False)
    timestamp: datetime = Field(default_factory=utcnow, index=True)
