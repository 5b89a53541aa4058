import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .events import PRESENTER, VIEWER


@dataclass(eq=False)
class Connection:
    """One client channel. Identity is the transport's session id."""
    sid: str
    namespace: str = '/ws'
    role: str = VIEWER

    @property
    def is_presenter(self) -> bool:
        return self.role == PRESENTER

    def __hash__(self):
        return hash((self.sid, self.namespace))

    def __eq__(self, other):
        return isinstance(other, Connection) and (self.sid, self.namespace) == (other.sid, other.namespace)


class RoomRegistry:
    """Session code -> connected members, with fan-out primitives.

    ``transport`` needs ``send(connection, event_name, payload)``. A member
    belongs to at most one room; joining another room leaves the first.
    """

    def __init__(self, transport, logger: Optional[logging.Logger] = None):
        self.transport = transport
        self.logger = logger or logging.getLogger('lessonsync')
        self._lock = threading.RLock()
        self._rooms: Dict[str, Set[Connection]] = {}
        self._room_of: Dict[Connection, str] = {}

    def join(self, session_code: str, connection: Connection) -> int:
        with self._lock:
            current = self._room_of.get(connection)
            if current is not None and current != session_code:
                self._remove(connection, current)
                self.logger.info(f"[room-switch] sid={connection.sid} from={current} to={session_code}")
            self._rooms.setdefault(session_code, set()).add(connection)
            self._room_of[connection] = session_code
            return len(self._rooms[session_code])

    def leave(self, connection: Connection) -> Optional[str]:
        with self._lock:
            code = self._room_of.get(connection)
            if code is None:
                return None
            self._remove(connection, code)
            return code

    def _remove(self, connection: Connection, code: str) -> None:
        members = self._rooms.get(code)
        if members is not None:
            members.discard(connection)
            if not members:
                # Empty rooms hold no state
                del self._rooms[code]
        self._room_of.pop(connection, None)

    def room_of(self, connection: Connection) -> Optional[str]:
        with self._lock:
            return self._room_of.get(connection)

    def members(self, session_code: str) -> List[Connection]:
        with self._lock:
            return list(self._rooms.get(session_code, ()))

    def count(self, session_code: str) -> int:
        with self._lock:
            return len(self._rooms.get(session_code, ()))

    def broadcast(self, session_code: str, event) -> int:
        """Send ``event`` to every member of the room; returns deliveries."""
        payload = event.to_payload()
        delivered = 0
        for member in self.members(session_code):
            if self._send(member, event.name, payload):
                delivered += 1
        return delivered

    def unicast(self, connection: Connection, event) -> bool:
        return self._send(connection, event.name, event.to_payload())

    def _send(self, connection: Connection, name: str, payload) -> bool:
        try:
            self.transport.send(connection, name, payload)
            return True
        except Exception:
            # One dead member must not starve the rest of the room
            self.logger.exception(f"[send-fail] sid={connection.sid} event={name}")
            return False
