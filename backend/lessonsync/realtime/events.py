"""Wire events exchanged with clients.

Inbound commands are parsed from raw Socket.IO payloads with
``parse_<command>`` helpers which raise ``ProtocolViolation`` on anything
outside the contract. Outbound events are small dataclasses carrying their
own wire ``name`` so the room registry can send them without knowing their
shape.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from lessonsync.errors import ProtocolViolation


PRESENTER = 'presenter'
VIEWER = 'viewer'
ROLES = (PRESENTER, VIEWER)


# ---- Inbound commands ----

@dataclass(frozen=True)
class JoinSession:
    code: str
    role: str = VIEWER


@dataclass(frozen=True)
class StartTimer:
    session_code: str
    seconds_remaining: int


@dataclass(frozen=True)
class StopTimer:
    session_code: str
    reported_time_left: Optional[int] = None


@dataclass(frozen=True)
class ResetTimer:
    session_code: str


@dataclass(frozen=True)
class SetObjective:
    session_code: str
    text: str


@dataclass(frozen=True)
class StartCaptions:
    session_code: Optional[str] = None
    source_language: Optional[str] = None


@dataclass(frozen=True)
class StopCaptions:
    session_code: Optional[str] = None


@dataclass(frozen=True)
class RequestTranslation:
    text: str
    target_language: str
    source_language: Optional[str] = None


def _as_dict(event: str, data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProtocolViolation(event, f"expected an object payload, got {type(data).__name__}")
    return data


def _session_code(event: str, data: Dict[str, Any], required: bool = True) -> Optional[str]:
    code = data.get('sessionCode')
    if code is None and not required:
        return None
    if not isinstance(code, str) or not code.strip():
        raise ProtocolViolation(event, 'sessionCode must be a non-empty string')
    return code.strip()


def _optional_str(event: str, data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ProtocolViolation(event, f"{key} must be a string")
        return value.strip() or None
    return None


def _int_field(event: str, value: Any, key: str) -> int:
    # bool is an int subclass; True seconds is never intended
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolViolation(event, f"{key} must be a number")
    # JSON decoders accept NaN and Infinity
    if isinstance(value, float) and not math.isfinite(value):
        raise ProtocolViolation(event, f"{key} must be a finite number")
    return int(value)


def parse_join(data: Any) -> JoinSession:
    """Accepts a bare code string or ``{code, role}``."""
    role = VIEWER
    if isinstance(data, dict):
        code = data.get('code', data.get('sessionCode'))
        role = data.get('role') or VIEWER
    else:
        code = data
    if not isinstance(code, str):
        raise ProtocolViolation('joinSession', f"session code must be a string, got {type(code).__name__}")
    code = code.strip()
    if not code:
        raise ProtocolViolation('joinSession', 'session code must not be empty')
    if role not in ROLES:
        raise ProtocolViolation('joinSession', f"unknown role {role!r}")
    return JoinSession(code=code, role=role)


def parse_start_timer(data: Any) -> StartTimer:
    data = _as_dict('startTimer', data)
    code = _session_code('startTimer', data)
    if 'secondsRemaining' in data:
        seconds = data['secondsRemaining']
    else:
        seconds = data.get('duration')
    return StartTimer(session_code=code, seconds_remaining=_int_field('startTimer', seconds, 'secondsRemaining'))


def parse_stop_timer(data: Any) -> StopTimer:
    data = _as_dict('stopTimer', data)
    code = _session_code('stopTimer', data)
    reported = data.get('timeLeft')
    if reported is not None:
        reported = _int_field('stopTimer', reported, 'timeLeft')
    return StopTimer(session_code=code, reported_time_left=reported)


def parse_reset_timer(data: Any) -> ResetTimer:
    if isinstance(data, str):
        data = {'sessionCode': data}
    data = _as_dict('resetTimer', data)
    return ResetTimer(session_code=_session_code('resetTimer', data))


def parse_set_objective(data: Any, max_length: int = 0) -> SetObjective:
    data = _as_dict('setObjective', data)
    code = _session_code('setObjective', data)
    text = data.get('text', data.get('objectiveText'))
    if text is None:
        text = ''
    if not isinstance(text, str):
        raise ProtocolViolation('setObjective', 'text must be a string')
    if max_length and len(text) > max_length:
        raise ProtocolViolation('setObjective', f"text exceeds {max_length} characters")
    return SetObjective(session_code=code, text=text)


def parse_start_captions(data: Any) -> StartCaptions:
    # Older presenters send the language code on its own
    if isinstance(data, str):
        return StartCaptions(source_language=data.strip() or None)
    data = _as_dict('startCaptions', data)
    return StartCaptions(
        session_code=_session_code('startCaptions', data, required=False),
        source_language=_optional_str('startCaptions', data, 'sourceLanguage', 'languageCode'),
    )


def parse_stop_captions(data: Any) -> StopCaptions:
    if isinstance(data, str):
        data = {'sessionCode': data}
    data = _as_dict('stopCaptions', data)
    return StopCaptions(session_code=_session_code('stopCaptions', data, required=False))


def parse_audio_chunk(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise ProtocolViolation('audioChunk', f"expected binary audio, got {type(data).__name__}")


def parse_request_translation(data: Any) -> RequestTranslation:
    data = _as_dict('requestTranslation', data)
    text = data.get('text')
    target = _optional_str('requestTranslation', data, 'targetLanguage', 'targetLanguageCode')
    if not isinstance(text, str) or not text.strip():
        raise ProtocolViolation('requestTranslation', 'text must be a non-empty string')
    if not target:
        raise ProtocolViolation('requestTranslation', 'targetLanguage is required')
    return RequestTranslation(
        text=text,
        target_language=target,
        source_language=_optional_str('requestTranslation', data, 'sourceLanguage', 'sourceLanguageCode'),
    )


# ---- Outbound events ----

@dataclass(frozen=True)
class TimerUpdate:
    seconds_remaining: int
    running: bool
    name = 'timerUpdate'

    def to_payload(self) -> Dict[str, Any]:
        return {'secondsRemaining': self.seconds_remaining, 'running': self.running}


@dataclass(frozen=True)
class TimerReset:
    name = 'timerReset'

    def to_payload(self) -> Dict[str, Any]:
        return {'secondsRemaining': 0, 'running': False}


@dataclass(frozen=True)
class ObjectiveUpdate:
    text: str
    name = 'objectiveUpdate'

    def to_payload(self) -> Dict[str, Any]:
        return {'text': self.text}


@dataclass(frozen=True)
class Caption:
    text: str
    source_language: str
    is_final: bool
    name = 'caption'

    def to_payload(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'sourceLanguage': self.source_language,
            'isFinal': self.is_final,
        }


@dataclass(frozen=True)
class TranslationResult:
    text: str
    original: str
    source_language: str
    target_language: str
    name = 'translationResult'

    def to_payload(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'original': self.original,
            'sourceLanguage': self.source_language,
            'targetLanguage': self.target_language,
        }


@dataclass(frozen=True)
class PipelineError:
    message: str
    name = 'pipelineError'

    def to_payload(self) -> Dict[str, Any]:
        return {'message': self.message}


@dataclass(frozen=True)
class SessionError:
    message: str
    name = 'sessionError'

    def to_payload(self) -> Dict[str, Any]:
        return {'message': self.message}


@dataclass(frozen=True)
class Joined:
    session_code: str
    members: int
    role: str
    name = 'joined'

    def to_payload(self) -> Dict[str, Any]:
        return {'sessionCode': self.session_code, 'members': self.members, 'role': self.role}
