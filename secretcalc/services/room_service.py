"""Room directory: durable two-member membership records."""

import logging

from sqlalchemy import delete
from sqlmodel import Session

from secretcalc.errors import ConflictError, ValidationError
from secretcalc.models.message import Message
from secretcalc.models.room import Room

logger = logging.getLogger(__name__)


def create_room(room_id: str, device_a: str, device_b: str, session: Session) -> Room:
    """Stage a new room. The caller owns the transaction and commits."""
    if not room_id or not device_a or not device_b:
        raise ValidationError("room_id and both device ids are required")
    if device_a == device_b:
        raise ValidationError("A room needs two distinct devices")
    if session.get(Room, room_id) is not None:
        raise ConflictError(f"Room {room_id} already exists")

    room = Room(room_id=room_id, device_a=device_a, device_b=device_b)
    session.add(room)
    session.flush()
    return room


def destroy_room(room_id: str, session: Session, commit: bool = True) -> bool:
    """Delete a room and its message history. Missing rooms are a no-op.

    Returns True if a room row existed.
    """
    session.exec(delete(Message).where(Message.room_id == room_id))
    room = session.get(Room, room_id)
    if room is not None:
        session.delete(room)
    if commit:
        session.commit()
    logger.info("Destroyed room %s (existed=%s)", room_id, room is not None)
    return room is not None
