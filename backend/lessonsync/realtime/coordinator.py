import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from lessonsync.errors import ProtocolViolation

from . import events
from .captions import CaptionPipeline
from .rooms import Connection, RoomRegistry
from .sessions import SessionRegistry, SessionState


class SessionCoordinator:
    """Entry point for every client event.

    ``transport`` must provide ``send(connection, event_name, payload)`` and
    ``disconnect(connection)``. Handlers never raise for malformed input or
    rejected commands; they log and return ``None``/``False`` instead.
    """

    def __init__(
        self,
        transport,
        recognizer,
        translator,
        spawn: Optional[Callable] = None,
        sleep: Optional[Callable[[float], None]] = None,
        tick_interval: float = 1.0,
        idle_ttl: float = 6 * 60 * 60,
        objective_max_length: int = 0,
        default_language: str = 'en-US',
        encoding: str = 'LINEAR16',
        sample_rate_hz: int = 16000,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.logger = logger or logging.getLogger('lessonsync')
        self.objective_max_length = objective_max_length
        self._sleep = sleep or time.sleep
        self.rooms = RoomRegistry(transport, logger=self.logger)
        self.sessions = SessionRegistry(
            self.rooms,
            spawn=spawn,
            sleep=sleep,
            tick_interval=tick_interval,
            idle_ttl=idle_ttl,
            logger=self.logger,
        )
        self.captions = CaptionPipeline(
            self.rooms,
            recognizer,
            translator,
            default_language=default_language,
            encoding=encoding,
            sample_rate_hz=sample_rate_hz,
            logger=self.logger,
        )
        self._connections: Dict[Tuple[str, str], Connection] = {}

    # ---- connection lifecycle ----

    def connect(self, sid: str, namespace: str = '/ws') -> Connection:
        connection = Connection(sid=sid, namespace=namespace)
        self._connections[(sid, namespace)] = connection
        return connection

    def connection(self, sid: str, namespace: str = '/ws') -> Connection:
        """Tracked connection for ``sid``; handlers may race connect."""
        connection = self._connections.get((sid, namespace))
        if connection is None:
            connection = self.connect(sid, namespace)
        return connection

    def join(self, connection: Connection, payload: Any) -> bool:
        try:
            command = events.parse_join(payload)
        except ProtocolViolation as exc:
            self.logger.warning(f"[join-reject] sid={connection.sid} reason={exc.message}")
            self._release(connection)
            self.transport.disconnect(connection)
            return False

        previous = self.rooms.room_of(connection)
        if previous is not None and (previous != command.code or command.role != events.PRESENTER):
            # Streams belong to a presenter in one room only
            self.captions.stop_stream(connection)
        connection.role = command.role

        session = self.sessions.get(command.code)
        # Resync and subscription happen atomically with respect to mutations
        with session.lock:
            members = self.rooms.join(command.code, connection)
            self.rooms.unicast(connection, events.Joined(command.code, members, command.role))
            self.rooms.unicast(connection, session.timer.resync_snapshot())
            self.rooms.unicast(connection, session.objective.resync_snapshot())
        self.logger.info(
            f"[join] sid={connection.sid} session={command.code} role={command.role} members={members}"
        )
        return True

    def leave(self, connection: Connection) -> Optional[str]:
        code = self._release(connection)
        if code is not None:
            self.logger.info(f"[leave] sid={connection.sid} session={code}")
        return code

    def disconnect(self, sid: str, namespace: str = '/ws') -> Optional[str]:
        connection = self._connections.pop((sid, namespace), None)
        if connection is None:
            return None
        code = self._release(connection)
        self.logger.info(f"[disconnect] sid={sid} session={code}")
        return code

    def _release(self, connection: Connection) -> Optional[str]:
        # Cleanup is unconditional and never touches timer or objective state
        self.captions.stop_stream(connection)
        return self.rooms.leave(connection)

    # ---- command helpers ----

    def _parse(self, connection: Connection, parser, payload: Any, **kwargs):
        try:
            return parser(payload, **kwargs)
        except ProtocolViolation as exc:
            self.logger.warning(f"[command-reject] sid={connection.sid} event={exc.event} reason={exc.message}")
            self.rooms.unicast(connection, events.SessionError(exc.message))
            return None

    def _presenter_session(
        self, connection: Connection, claimed_code: Optional[str], action: str
    ) -> Optional[SessionState]:
        joined = self.rooms.room_of(connection)
        if joined is None:
            reason = 'not-joined'
        elif not connection.is_presenter:
            reason = 'not-presenter'
        elif claimed_code is not None and claimed_code != joined:
            reason = f"session-mismatch claimed={claimed_code}"
        else:
            return self.sessions.get(joined)
        self.logger.warning(
            f"[mutation-reject] sid={connection.sid} action={action} joined={joined} reason={reason}"
        )
        return None

    # ---- timer ----

    def start_timer(self, connection: Connection, payload: Any):
        command = self._parse(connection, events.parse_start_timer, payload)
        if command is None:
            return None
        session = self._presenter_session(connection, command.session_code, 'startTimer')
        if session is None:
            return None
        return session.timer.start(command.seconds_remaining)

    def stop_timer(self, connection: Connection, payload: Any):
        command = self._parse(connection, events.parse_stop_timer, payload)
        if command is None:
            return None
        session = self._presenter_session(connection, command.session_code, 'stopTimer')
        if session is None:
            return None
        return session.timer.stop(command.reported_time_left)

    def reset_timer(self, connection: Connection, payload: Any):
        command = self._parse(connection, events.parse_reset_timer, payload)
        if command is None:
            return None
        session = self._presenter_session(connection, command.session_code, 'resetTimer')
        if session is None:
            return None
        return session.timer.reset()

    # ---- objective ----

    def set_objective(self, connection: Connection, payload: Any):
        command = self._parse(
            connection, events.parse_set_objective, payload, max_length=self.objective_max_length
        )
        if command is None:
            return None
        session = self._presenter_session(connection, command.session_code, 'setObjective')
        if session is None:
            return None
        return session.objective.set(command.text)

    # ---- captions ----

    def start_captions(self, connection: Connection, payload: Any) -> bool:
        command = self._parse(connection, events.parse_start_captions, payload)
        if command is None:
            return False
        session = self._presenter_session(connection, command.session_code, 'startCaptions')
        if session is None:
            return False
        return self.captions.start_stream(connection, session.code, command.source_language)

    def audio_chunk(self, connection: Connection, payload: Any) -> bool:
        try:
            chunk = events.parse_audio_chunk(payload)
        except ProtocolViolation as exc:
            self.logger.warning(f"[command-reject] sid={connection.sid} event={exc.event} reason={exc.message}")
            return False
        return self.captions.push_audio(connection, chunk)

    def stop_captions(self, connection: Connection, payload: Any = None) -> bool:
        command = self._parse(connection, events.parse_stop_captions, payload)
        if command is None:
            return False
        joined = self.rooms.room_of(connection)
        if command.session_code is not None and command.session_code != joined:
            self.logger.warning(
                f"[mutation-reject] sid={connection.sid} action=stopCaptions joined={joined} "
                f"reason=session-mismatch claimed={command.session_code}"
            )
            return False
        return self.captions.stop_stream(connection)

    def request_translation(self, connection: Connection, payload: Any):
        command = self._parse(connection, events.parse_request_translation, payload)
        if command is None:
            return None
        joined = self.rooms.room_of(connection)
        if joined is None:
            self.logger.warning(f"[translate-reject] sid={connection.sid} reason=not-joined")
            return None
        return self.captions.request_translation(
            connection,
            joined,
            command.text,
            command.target_language,
            source_language=command.source_language,
        )

    # ---- reads and housekeeping ----

    def snapshot(self, session_code: str) -> Dict[str, Any]:
        """Live state for HTTP callers; does not create the session."""
        session = self.sessions.peek(session_code)
        if session is None:
            timer = events.TimerUpdate(0, False)
            objective = events.ObjectiveUpdate('')
        else:
            timer = session.timer.resync_snapshot()
            objective = session.objective.resync_snapshot()
        return {
            'sessionCode': session_code,
            'timer': timer.to_payload(),
            'objective': objective.text,
            'members': self.rooms.count(session_code),
            'captioning': self.captions.language_for(session_code) is not None,
        }

    def sweep(self):
        return self.sessions.sweep(busy=self.captions.active_sessions())

    def sweep_forever(self, interval: float) -> None:
        while True:
            self._sleep(interval)
            try:
                self.sweep()
            except Exception:
                self.logger.exception('[session-sweep] failed')
