"""Pairing code business logic.

A code moves PENDING -> PAIRED exactly once, or is deleted when found
expired at consumption time, superseded by a newer code from the same
device, swept long after expiry, or removed with its room on unpair.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from secretcalc.config import settings
from secretcalc.errors import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    SelfPairingError,
    ValidationError,
)
from secretcalc.models.pairing import PairingCode
from secretcalc.services.room_service import create_room, destroy_room
from secretcalc.utils.clock import as_utc, utcnow
from secretcalc.utils.security import new_room_id, random_code

logger = logging.getLogger(__name__)


@dataclass
class PairingResult:
    room_id: str
    device_id: str  # the device that entered the code
    peer_device_id: str  # the device that generated it


def generate_pairing(device_id: str, session: Session) -> PairingCode:
    """Issue a fresh code for ``device_id``, replacing its other pending codes.

    A collision with an existing code surfaces as ConflictError; callers
    retry with a new draw.
    """
    if not device_id:
        raise ValidationError("deviceId required")

    session.exec(
        delete(PairingCode).where(
            PairingCode.device_id == device_id,
            PairingCode.paired == False,  # noqa: E712
        )
    )
    pairing = PairingCode(
        code=random_code(),
        device_id=device_id,
        room_id=new_room_id(),
        expires_at=utcnow() + timedelta(seconds=settings.code_expire_seconds),
    )
    session.add(pairing)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Pairing code collision")
    session.refresh(pairing)

    logger.info("Generated pairing code for device %s (room %s)", device_id, pairing.room_id)
    return pairing


def consume_pairing(code: str, device_id: str, session: Session) -> PairingResult:
    """Redeem a pending code and create the room.

    The PENDING -> PAIRED transition is a conditional UPDATE, so of two
    devices racing on one code only one sees a row change; the other gets
    NotFoundError.
    """
    if not code or not device_id:
        raise ValidationError("code and deviceId required")

    pairing = session.exec(
        select(PairingCode).where(
            PairingCode.code == code,
            PairingCode.paired == False,  # noqa: E712
        )
    ).first()
    if pairing is None:
        raise NotFoundError("Code not found or already used")

    if pairing.device_id == device_id:
        raise SelfPairingError("Cannot pair with yourself")

    if utcnow() > as_utc(pairing.expires_at):
        session.exec(delete(PairingCode).where(PairingCode.id == pairing.id))
        session.commit()
        logger.info("Pairing code for device %s expired", pairing.device_id)
        raise ExpiredError("Code expired")

    claimed = session.exec(
        update(PairingCode)
        .where(PairingCode.id == pairing.id, PairingCode.paired == False)  # noqa: E712
        .values(paired=True)
    )
    if claimed.rowcount != 1:
        session.rollback()
        raise NotFoundError("Code not found or already used")

    try:
        create_room(pairing.room_id, pairing.device_id, device_id, session)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Paired %s with %s in room %s", pairing.device_id, device_id, pairing.room_id)
    return PairingResult(
        room_id=pairing.room_id,
        device_id=device_id,
        peer_device_id=pairing.device_id,
    )


def pending_codes_for(device_id: str, session: Session) -> list[PairingCode]:
    return list(session.exec(
        select(PairingCode).where(
            PairingCode.device_id == device_id,
            PairingCode.paired == False,  # noqa: E712
        )
    ).all())


def sweep_expired_codes(session: Session, older_than_seconds: int = 0) -> int:
    """Delete pending codes whose expiry passed more than ``older_than_seconds`` ago."""
    cutoff = utcnow() - timedelta(seconds=older_than_seconds)
    result = session.exec(
        delete(PairingCode).where(
            PairingCode.paired == False,  # noqa: E712
            PairingCode.expires_at < cutoff,
        )
    )
    session.commit()
    return result.rowcount


def unpair_room(room_id: str, session: Session) -> None:
    """Remove the room, its history and any code rows tied to it, in one commit."""
    destroy_room(room_id, session, commit=False)
    session.exec(delete(PairingCode).where(PairingCode.room_id == room_id))
    session.commit()
    logger.info("Unpaired room %s", room_id)
