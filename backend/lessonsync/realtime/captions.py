import logging
import threading
from functools import partial
from typing import Dict, Optional, Set

from .events import Caption, PipelineError, TranslationResult
from .speech import RecognitionResult, StreamConfig


class _ActiveStream:
    __slots__ = ('connection', 'session_code', 'language', 'upstream')

    def __init__(self, connection, session_code: str, language: str):
        self.connection = connection
        self.session_code = session_code
        self.language = language
        self.upstream = None


class CaptionPipeline:
    """Speech-to-caption streams, one per presenter connection.

    Recognition results are broadcast to the presenter's room as soon as they
    arrive. Translations are requested per viewer and answered only to that
    viewer. Upstream failures are reported to the one connection that
    triggered them and leave the pipeline idle for that connection.
    """

    RECOGNITION_ERROR = 'Speech recognition error.'
    TRANSLATION_ERROR = 'Translation service error.'

    def __init__(
        self,
        rooms,
        recognizer,
        translator,
        default_language: str = 'en-US',
        encoding: str = 'LINEAR16',
        sample_rate_hz: int = 16000,
        logger: Optional[logging.Logger] = None,
    ):
        self.rooms = rooms
        self.recognizer = recognizer
        self.translator = translator
        self.default_language = default_language
        self.encoding = encoding
        self.sample_rate_hz = sample_rate_hz
        self.logger = logger or logging.getLogger('lessonsync')
        self._lock = threading.RLock()
        self._streams: Dict[object, _ActiveStream] = {}

    def is_streaming(self, connection) -> bool:
        with self._lock:
            return connection in self._streams

    def active_sessions(self) -> Set[str]:
        with self._lock:
            return {s.session_code for s in self._streams.values()}

    def language_for(self, session_code: str) -> Optional[str]:
        with self._lock:
            for stream in self._streams.values():
                if stream.session_code == session_code:
                    return stream.language
        return None

    def start_stream(self, connection, session_code: str, source_language: Optional[str] = None) -> bool:
        language = source_language or self.default_language
        config = StreamConfig(
            language=language,
            encoding=self.encoding,
            sample_rate_hz=self.sample_rate_hz,
        )
        with self._lock:
            self._teardown(connection, reason='restart')
            handle = _ActiveStream(connection, session_code, language)
            self._streams[connection] = handle
            try:
                handle.upstream = self.recognizer.open_stream(
                    config,
                    on_result=partial(self._on_result, handle),
                    on_error=partial(self._on_error, handle),
                )
            except Exception:
                self._streams.pop(connection, None)
                self.logger.exception(f"[captions-open-fail] sid={connection.sid} session={session_code}")
                self.rooms.unicast(connection, PipelineError(self.RECOGNITION_ERROR))
                return False
            self.logger.info(f"[captions-start] sid={connection.sid} session={session_code} language={language}")
            return True

    def push_audio(self, connection, chunk: bytes) -> bool:
        with self._lock:
            handle = self._streams.get(connection)
            if handle is None or handle.upstream is None:
                # Chunks can race a stream that is not started yet or just stopped
                self.logger.warning(f"[audio-drop] sid={connection.sid} bytes={len(chunk)} no active stream")
                return False
            try:
                handle.upstream.write(chunk)
            except Exception as exc:
                self._fail(handle, exc)
                return False
            return True

    def stop_stream(self, connection) -> bool:
        with self._lock:
            return self._teardown(connection, reason='stop')

    def request_translation(
        self,
        connection,
        session_code: Optional[str],
        text: str,
        target_language: str,
        source_language: Optional[str] = None,
    ) -> Optional[TranslationResult]:
        if not source_language:
            source_language = (session_code and self.language_for(session_code)) or self.default_language
        try:
            translated = self.translator.translate(text, source_language, target_language)
        except Exception:
            self.logger.exception(
                f"[translate-fail] sid={connection.sid} source={source_language} target={target_language}"
            )
            self.rooms.unicast(connection, PipelineError(self.TRANSLATION_ERROR))
            return None
        result = TranslationResult(
            text=translated,
            original=text,
            source_language=source_language,
            target_language=target_language,
        )
        self.rooms.unicast(connection, result)
        return result

    def _on_result(self, handle: _ActiveStream, result: RecognitionResult) -> None:
        with self._lock:
            if self._streams.get(handle.connection) is not handle:
                self.logger.debug(f"[captions-stale] sid={handle.connection.sid} dropped result")
                return
            caption = Caption(text=result.transcript, source_language=handle.language, is_final=result.is_final)
            self.rooms.broadcast(handle.session_code, caption)

    def _on_error(self, handle: _ActiveStream, exc: Exception) -> None:
        with self._lock:
            if self._streams.get(handle.connection) is not handle:
                return
            self._fail(handle, exc)

    def _fail(self, handle: _ActiveStream, exc: Exception) -> None:
        self.logger.error(f"[captions-error] sid={handle.connection.sid} session={handle.session_code} error={exc}")
        self._teardown(handle.connection, reason='error')
        self.rooms.unicast(handle.connection, PipelineError(self.RECOGNITION_ERROR))

    def _teardown(self, connection, reason: str) -> bool:
        handle = self._streams.pop(connection, None)
        if handle is None:
            return False
        if handle.upstream is not None:
            try:
                handle.upstream.close()
            except Exception:
                self.logger.exception(f"[captions-close-fail] sid={connection.sid}")
        self.logger.info(f"[captions-stop] sid={connection.sid} session={handle.session_code} reason={reason}")
        return True
