"""Security utilities: signed room claims, pairing code and room id generation."""

import secrets
from dataclasses import dataclass
from datetime import timedelta

import jwt

from secretcalc.config import settings
from secretcalc.errors import AuthError
from secretcalc.utils.clock import utcnow


@dataclass(frozen=True)
class Claim:
    device_id: str
    room_id: str


# --- Claims ---

def issue_claim(device_id: str, room_id: str) -> str:
    """Sign a ``{deviceId, roomId}`` claim.

    Without a configured TTL the token carries no ``iat``/``exp`` and the
    same inputs always produce the same token.
    """
    payload = {"deviceId": device_id, "roomId": room_id}
    if settings.claim_ttl_seconds > 0:
        now = utcnow()
        payload["iat"] = now
        payload["exp"] = now + timedelta(seconds=settings.claim_ttl_seconds)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_claim(token: str | None) -> Claim:
    """Check the signature and payload shape. Raises AuthError on any failure."""
    if not token or not isinstance(token, str):
        raise AuthError("Missing token")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        raise AuthError("Invalid token")

    device_id = payload.get("deviceId")
    room_id = payload.get("roomId")
    if not isinstance(device_id, str) or not isinstance(room_id, str) or not device_id or not room_id:
        raise AuthError("Malformed token")
    return Claim(device_id=device_id, room_id=room_id)


# --- Pairing code ---

def random_code() -> str:
    """Generate a random 6-digit pairing code."""
    num = secrets.randbelow(900000) + 100000
    return str(num)


def new_room_id() -> str:
    return f"room_{secrets.token_hex(12)}"
