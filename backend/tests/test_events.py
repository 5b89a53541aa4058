import pytest

from lessonsync.errors import ProtocolViolation
from lessonsync.realtime import events


def test_parse_join_accepts_string_and_object():
    assert events.parse_join(' ABC123 ') == events.JoinSession('ABC123', 'viewer')
    assert events.parse_join({'code': 'ABC123', 'role': 'presenter'}) == events.JoinSession('ABC123', 'presenter')
    assert events.parse_join({'sessionCode': 'ABC123'}).role == 'viewer'


@pytest.mark.parametrize('payload', [123, '', '  ', None, ['ABC123'], {'code': ''}, {'role': 'presenter'}])
def test_parse_join_rejects_malformed_codes(payload):
    with pytest.raises(ProtocolViolation):
        events.parse_join(payload)


def test_parse_start_timer():
    cmd = events.parse_start_timer({'sessionCode': 'ABC123', 'secondsRemaining': 90})
    assert cmd == events.StartTimer('ABC123', 90)
    # Legacy clients send duration
    assert events.parse_start_timer({'sessionCode': 'ABC123', 'duration': 30.0}).seconds_remaining == 30
    with pytest.raises(ProtocolViolation):
        events.parse_start_timer({'sessionCode': 'ABC123', 'secondsRemaining': True})
    with pytest.raises(ProtocolViolation):
        events.parse_start_timer({'secondsRemaining': 10})
    with pytest.raises(ProtocolViolation):
        events.parse_start_timer('ABC123')


def test_parse_stop_timer_keeps_reported_value_optional():
    assert events.parse_stop_timer({'sessionCode': 'ABC123'}).reported_time_left is None
    assert events.parse_stop_timer({'sessionCode': 'ABC123', 'timeLeft': 12}).reported_time_left == 12


def test_parse_set_objective_respects_cap():
    assert events.parse_set_objective({'sessionCode': 'A', 'objectiveText': 'Read ch. 3'}).text == 'Read ch. 3'
    assert events.parse_set_objective({'sessionCode': 'A'}).text == ''
    with pytest.raises(ProtocolViolation):
        events.parse_set_objective({'sessionCode': 'A', 'text': 'x' * 11}, max_length=10)
    with pytest.raises(ProtocolViolation):
        events.parse_set_objective({'sessionCode': 'A', 'text': 7})


def test_parse_captions_commands():
    assert events.parse_start_captions('fr-FR') == events.StartCaptions(source_language='fr-FR')
    assert events.parse_start_captions(None) == events.StartCaptions()
    assert events.parse_start_captions({'sessionCode': 'A', 'languageCode': 'de-DE'}) == events.StartCaptions('A', 'de-DE')
    assert events.parse_stop_captions('A') == events.StopCaptions('A')
    assert events.parse_audio_chunk(bytearray(b'\x01\x02')) == b'\x01\x02'
    with pytest.raises(ProtocolViolation):
        events.parse_audio_chunk([1, 2, 3])


def test_parse_request_translation():
    cmd = events.parse_request_translation({'text': 'Hola', 'targetLanguageCode': 'en'})
    assert cmd == events.RequestTranslation('Hola', 'en', None)
    with pytest.raises(ProtocolViolation):
        events.parse_request_translation({'text': 'Hola'})
    with pytest.raises(ProtocolViolation):
        events.parse_request_translation({'text': '  ', 'targetLanguage': 'en'})


def test_caption_payload_shape():
    caption = events.Caption('hi', 'en-US', False)
    assert caption.to_payload() == {'text': 'hi', 'sourceLanguage': 'en-US', 'isFinal': False}


@pytest.mark.parametrize('value', [float('nan'), float('inf'), float('-inf')])
def test_non_finite_numbers_are_rejected(value):
    with pytest.raises(ProtocolViolation):
        events.parse_start_timer({'sessionCode': 'ABC123', 'secondsRemaining': value})
    with pytest.raises(ProtocolViolation):
        events.parse_stop_timer({'sessionCode': 'ABC123', 'timeLeft': value})
