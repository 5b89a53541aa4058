"""Google Cloud speech services used by the caption pipeline.

The pipeline only relies on two small interfaces:

- a recognizer with ``open_stream(config, on_result, on_error)`` returning an
  object with ``write(chunk)`` and ``close()``;
- a translator with ``translate(text, source_language, target_language)``
  returning the translated string or raising ``UpstreamServiceError``.

Clients are created lazily so the app can boot without credentials.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import speech
from google.cloud import translate_v3

from lessonsync.errors import UpstreamServiceError


@dataclass(frozen=True)
class StreamConfig:
    language: str
    encoding: str = 'LINEAR16'
    sample_rate_hz: int = 16000
    interim_results: bool = True


@dataclass(frozen=True)
class RecognitionResult:
    transcript: str
    is_final: bool


class GoogleRecognitionStream:
    """One streaming_recognize call fed from an in-memory chunk queue."""

    def __init__(self, client, config: StreamConfig, on_result, on_error, logger=None):
        self.client = client
        self.config = config
        self.on_result = on_result
        self.on_error = on_error
        self.logger = logger or logging.getLogger('lessonsync')
        self._chunks: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    def write(self, chunk: bytes) -> None:
        if self._closed.is_set():
            return
        self._chunks.put(chunk)

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._chunks.put(None)

    def _requests(self):
        while True:
            chunk = self._chunks.get()
            if chunk is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _streaming_config(self):
        return speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding[self.config.encoding],
                sample_rate_hertz=self.config.sample_rate_hz,
                language_code=self.config.language,
            ),
            interim_results=self.config.interim_results,
        )

    def run(self) -> None:
        try:
            responses = self.client.streaming_recognize(
                config=self._streaming_config(),
                requests=self._requests(),
            )
            for response in responses:
                if not response.results:
                    continue
                result = response.results[0]
                if not result.alternatives:
                    continue
                self.on_result(RecognitionResult(result.alternatives[0].transcript, bool(result.is_final)))
        except google_exceptions.GoogleAPIError as exc:
            if not self._closed.is_set():
                self.on_error(UpstreamServiceError('speech', str(exc)))
            return
        except Exception as exc:
            self.logger.exception('[speech-crash] recognition worker failed')
            if not self._closed.is_set():
                self.on_error(UpstreamServiceError('speech', str(exc)))
            return
        if not self._closed.is_set():
            # Google ends long-running streams on its own
            self.on_error(UpstreamServiceError('speech', 'recognition stream ended'))


class GoogleSpeechRecognizer:
    def __init__(self, spawn: Optional[Callable] = None, client_factory=None, logger=None):
        self._spawn = spawn
        self._client_factory = client_factory or speech.SpeechClient
        self._client = None
        self.logger = logger or logging.getLogger('lessonsync')

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def open_stream(self, config: StreamConfig, on_result, on_error) -> GoogleRecognitionStream:
        stream = GoogleRecognitionStream(self.client, config, on_result, on_error, logger=self.logger)
        if self._spawn is not None:
            self._spawn(stream.run)
        else:
            threading.Thread(target=stream.run, daemon=True).start()
        return stream


class GoogleTranslator:
    def __init__(self, project_id: Optional[str], location: str = 'global', client_factory=None):
        self.project_id = project_id
        self.location = location
        self._client_factory = client_factory or translate_v3.TranslationServiceClient
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def translate(self, text: str, source_language: str, target_language: str) -> str:
        if not self.project_id:
            raise UpstreamServiceError('translate', 'GOOGLE_CLOUD_PROJECT_ID is not configured')
        try:
            response = self.client.translate_text(
                request={
                    'parent': f"projects/{self.project_id}/locations/{self.location}",
                    'contents': [text],
                    'mime_type': 'text/plain',
                    'source_language_code': source_language,
                    'target_language_code': target_language,
                }
            )
        except google_exceptions.GoogleAPIError as exc:
            raise UpstreamServiceError('translate', str(exc)) from exc
        if not response.translations:
            raise UpstreamServiceError('translate', 'empty translation response')
        return response.translations[0].translated_text
