"""In-memory session table: which device and room each live connection speaks for."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class RoomSession:
    device_id: str
    room_id: str


class SessionTable:
    """Maps a live connection handle to its RoomSession.

    Only the event loop touches this table, so plain dict operations are
    enough. Entries are never persisted: a reconnect has to present its
    claim again.
    """

    def __init__(self):
        self._sessions: Dict[Any, RoomSession] = {}

    def bind(self, conn: Any, device_id: str, room_id: str) -> RoomSession:
        session = RoomSession(device_id=device_id, room_id=room_id)
        self._sessions[conn] = session
        return session

    def lookup(self, conn: Any) -> RoomSession | None:
        return self._sessions.get(conn)

    def unbind(self, conn: Any) -> RoomSession | None:
        return self._sessions.pop(conn, None)

    def __contains__(self, conn: Any) -> bool:
        return conn in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
