"""Authoritative per-session countdown.

The presenter's commands and the background tick loop are the only writers.
Every command bumps ``_generation`` under the session lock; a tick loop that
wakes up holding an older generation exits without touching state, so a
superseded loop can never decrement a freshly started timer.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .events import TimerReset, TimerUpdate


def epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TimerState:
    seconds_remaining: int = 0
    running: bool = False
    last_sync_epoch_millis: int = 0


class SessionTimer:
    def __init__(
        self,
        session_code: str,
        rooms,
        lock=None,
        spawn: Optional[Callable] = None,
        sleep: Optional[Callable[[float], None]] = None,
        tick_interval: float = 1.0,
        clock: Callable[[], int] = epoch_millis,
        logger: Optional[logging.Logger] = None,
    ):
        self.session_code = session_code
        self.rooms = rooms
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")
        self.tick_interval = float(tick_interval)
        self.logger = logger or logging.getLogger('lessonsync')
        self._lock = lock or threading.RLock()
        self._spawn = spawn or _spawn_thread
        self._sleep = sleep or time.sleep
        self._clock = clock
        self._generation = 0
        self._active: Optional[int] = None
        self.state = TimerState(last_sync_epoch_millis=clock())

    @property
    def ticking(self) -> bool:
        """True while a tick loop is armed for this session."""
        return self._active is not None

    def _live_remaining(self, now: int) -> int:
        state = self.state
        if not state.running:
            return state.seconds_remaining
        elapsed_ms = max(0, now - state.last_sync_epoch_millis)
        elapsed_ticks = int(elapsed_ms // (self.tick_interval * 1000))
        return max(0, state.seconds_remaining - elapsed_ticks)

    def _cancel(self) -> None:
        self._generation += 1
        self._active = None

    def start(self, requested_seconds: int) -> TimerUpdate:
        with self._lock:
            self._cancel()
            now = self._clock()
            if requested_seconds <= 0:
                # Preset without starting behaves like stop-at-value
                self.state = TimerState(0, False, now)
                self.logger.info(f"[timer-preset] session={self.session_code} seconds=0")
                update = TimerUpdate(0, False)
                self.rooms.broadcast(self.session_code, update)
                return update

            self.state = TimerState(int(requested_seconds), True, now)
            generation = self._generation
            self._active = generation
            self.logger.info(f"[timer-start] session={self.session_code} seconds={requested_seconds}")
            update = TimerUpdate(self.state.seconds_remaining, True)
            self.rooms.broadcast(self.session_code, update)
            self._spawn(self._run, generation)
            return update

    def stop(self, reported_time_left: Optional[int] = None) -> TimerUpdate:
        with self._lock:
            self._cancel()
            now = self._clock()
            remaining = self._live_remaining(now)
            if reported_time_left is not None and reported_time_left != remaining:
                self.logger.debug(
                    f"[timer-stop] session={self.session_code} ignoring reported={reported_time_left} server={remaining}"
                )
            self.state = TimerState(remaining, False, now)
            self.logger.info(f"[timer-stop] session={self.session_code} remaining={remaining}")
            update = TimerUpdate(remaining, False)
            self.rooms.broadcast(self.session_code, update)
            return update

    def reset(self) -> TimerReset:
        with self._lock:
            self._cancel()
            self.state = TimerState(0, False, self._clock())
            self.logger.info(f"[timer-reset] session={self.session_code}")
            event = TimerReset()
            self.rooms.broadcast(self.session_code, event)
            return event

    def resync_snapshot(self) -> TimerUpdate:
        with self._lock:
            return TimerUpdate(self._live_remaining(self._clock()), self.state.running)

    def tick(self, generation: int) -> bool:
        """Apply one decrement for ``generation``; False ends the loop."""
        with self._lock:
            if generation != self._active:
                self.logger.debug(f"[timer-abort] session={self.session_code} stale generation={generation}")
                return False
            now = self._clock()
            remaining = self.state.seconds_remaining - 1
            if remaining <= 0:
                self.state = TimerState(0, False, now)
                self._active = None
                self.logger.info(f"[timer-finish] session={self.session_code}")
                self.rooms.broadcast(self.session_code, TimerUpdate(0, False))
                return False
            self.state = replace(self.state, seconds_remaining=remaining, last_sync_epoch_millis=now)
            self.logger.debug(f"[timer-tick] session={self.session_code} remaining={remaining}")
            self.rooms.broadcast(self.session_code, TimerUpdate(remaining, True))
            return True

    def _run(self, generation: int) -> None:
        while True:
            self._sleep(self.tick_interval)
            if not self.tick(generation):
                return


def _spawn_thread(target, *args):
    worker = threading.Thread(target=target, args=args, daemon=True)
    worker.start()
    return worker
