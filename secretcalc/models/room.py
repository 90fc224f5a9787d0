"""Room model."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from secretcalc.utils.clock import utcnow


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    room_id: str = Field(primary_key=True)
    device_a: str  # code generator
    device_b: str  # code enterer
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def devices(self) -> tuple[str, str]:
        return (self.device_a, self.device_b)
