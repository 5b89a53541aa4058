import logging
import threading
from typing import Optional

from .events import ObjectiveUpdate


class ObjectiveBoard:
    """The lesson objective for one session. No history is kept."""

    def __init__(self, session_code: str, rooms, lock=None, logger: Optional[logging.Logger] = None):
        self.session_code = session_code
        self.rooms = rooms
        self.logger = logger or logging.getLogger('lessonsync')
        self._lock = lock or threading.RLock()
        self._text = ''

    def set(self, text: str) -> ObjectiveUpdate:
        with self._lock:
            self._text = text
            self.logger.info(f"[objective-set] session={self.session_code} length={len(text)}")
            update = ObjectiveUpdate(text)
            self.rooms.broadcast(self.session_code, update)
            return update

    def resync_snapshot(self) -> ObjectiveUpdate:
        with self._lock:
            return ObjectiveUpdate(self._text)
