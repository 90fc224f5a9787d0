"""Pairing code model."""

import secrets
from datetime import datetime

from sqlmodel import Field, SQLModel

from secretcalc.utils.clock import utcnow


class PairingCode(SQLModel, table=True):
    __tablename__ = "pairing_codes"

    id: str = Field(default_factory=lambda: f"pc_{secrets.token_hex(6)}", primary_key=True)
    code: str = Field(unique=True, index=True)  # 6-digit
    device_id: str = Field(index=True)  # the generating device
    room_id: str = Field(index=True)
    paired: bool = Field(default=False)
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
