import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from .objective import ObjectiveBoard
from .timer import SessionTimer


class SessionState:
    """Timer and objective of one session, sharing one lock."""

    def __init__(self, code: str, timer: SessionTimer, objective: ObjectiveBoard, lock, now: float):
        self.code = code
        self.timer = timer
        self.objective = objective
        self.lock = lock
        self.last_activity = now


class SessionRegistry:
    """Sessions are created on first touch and evicted once idle."""

    def __init__(
        self,
        rooms,
        spawn: Optional[Callable] = None,
        sleep: Optional[Callable[[float], None]] = None,
        tick_interval: float = 1.0,
        idle_ttl: float = 6 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        if tick_interval <= 0:
            # Fail at boot rather than on the first join
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")
        self.rooms = rooms
        self.tick_interval = tick_interval
        self.idle_ttl = idle_ttl
        self.logger = logger or logging.getLogger('lessonsync')
        self._spawn = spawn
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionState] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: str) -> bool:
        return code in self._sessions

    def get(self, code: str) -> SessionState:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(code)
            if session is None:
                lock = threading.RLock()
                session = SessionState(
                    code,
                    timer=SessionTimer(
                        code,
                        self.rooms,
                        lock=lock,
                        spawn=self._spawn,
                        sleep=self._sleep,
                        tick_interval=self.tick_interval,
                        logger=self.logger,
                    ),
                    objective=ObjectiveBoard(code, self.rooms, lock=lock, logger=self.logger),
                    lock=lock,
                    now=now,
                )
                self._sessions[code] = session
                self.logger.info(f"[session-create] session={code}")
            session.last_activity = now
            return session

    def peek(self, code: str) -> Optional[SessionState]:
        with self._lock:
            return self._sessions.get(code)

    def sweep(self, busy: Iterable[str] = (), now: Optional[float] = None) -> List[str]:
        """Evict idle sessions; ``busy`` codes are always kept."""
        now = self._clock() if now is None else now
        busy = set(busy)
        evicted = []
        with self._lock:
            for code, session in list(self._sessions.items()):
                if code in busy or self.rooms.count(code) > 0:
                    continue
                if session.timer.ticking:
                    continue
                if now - session.last_activity < self.idle_ttl:
                    continue
                del self._sessions[code]
                evicted.append(code)
        if evicted:
            self.logger.info(f"[session-evict] count={len(evicted)} sessions={','.join(evicted)}")
        return evicted
