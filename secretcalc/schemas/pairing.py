"""Pairing and claim request/response schemas."""

from datetime import datetime
from typing import Optional

from secretcalc.schemas.base import CamelModel


# --- Pairing ---

class GenerateRequest(CamelModel):
    device_id: Optional[str] = None


class GenerateResponse(CamelModel):
    code: str
    expires_at: datetime
    room_id: str


class EnterRequest(CamelModel):
    code: Optional[str] = None
    device_id: Optional[str] = None


class EnterResponse(CamelModel):
    room_id: str
    token: str


class SuccessResponse(CamelModel):
    success: bool = True


# --- Auth ---

class VerifyResponse(CamelModel):
    valid: bool
    room_id: str
    device_id: str


# --- Voice ---

class VoiceUploadResponse(CamelModel):
    url: str
