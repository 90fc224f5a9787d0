"""SecretCalc Database Models."""

from secretcalc.models.pairing import PairingCode
from secretcalc.models.room import Room
from secretcalc.models.message import Message

__all__ = [
    "PairingCode",
    "Room",
    "Message",
]
