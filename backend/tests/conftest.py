import os
import sys
import pytest

# Ensure the backend root (containing the `lessonsync` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from lessonsync import create_app, db, socketio
from lessonsync.errors import UpstreamServiceError
from lessonsync.realtime import Connection, SessionCoordinator
from lessonsync.realtime.speech import RecognitionResult


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    FRONTEND_URL = 'http://localhost:3000'
    CORS_ORIGINS = []
    TIMER_TICK_SEC = 0.05
    SESSION_SWEEP_INTERVAL_SEC = 0
    SESSION_CODE_LENGTH = 6
    GOOGLE_CLOUD_PROJECT_ID = None


class RecordingTransport:
    """Captures every send/disconnect instead of talking to sockets."""

    def __init__(self):
        self.sent = []
        self.disconnected = []
        self.failing = set()

    def send(self, connection, event, payload):
        if connection.sid in self.failing:
            raise ConnectionError(f"socket {connection.sid} is gone")
        self.sent.append((connection.sid, event, payload))

    def disconnect(self, connection):
        self.disconnected.append(connection.sid)

    def received(self, sid, event=None):
        return [payload for to, name, payload in self.sent if to == sid and (event is None or name == event)]

    def names(self, sid):
        return [name for to, name, _ in self.sent if to == sid]

    def clear(self):
        self.sent.clear()


class FakeStream:
    def __init__(self, config, on_result, on_error):
        self.config = config
        self.on_result = on_result
        self.on_error = on_error
        self.chunks = []
        self.closed = False

    def write(self, chunk):
        self.chunks.append(chunk)

    def close(self):
        self.closed = True

    def emit(self, transcript, is_final=False):
        self.on_result(RecognitionResult(transcript, is_final))

    def fail(self, message='stream broke'):
        self.on_error(UpstreamServiceError('speech', message))


class FakeRecognizer:
    def __init__(self):
        self.streams = []
        self.fail_open = False

    def open_stream(self, config, on_result, on_error):
        if self.fail_open:
            raise UpstreamServiceError('speech', 'could not open stream')
        stream = FakeStream(config, on_result, on_error)
        self.streams.append(stream)
        return stream

    @property
    def latest(self):
        return self.streams[-1]


class FakeTranslator:
    def __init__(self):
        self.calls = []
        self.fail = False

    def translate(self, text, source_language, target_language):
        self.calls.append((text, source_language, target_language))
        if self.fail:
            raise UpstreamServiceError('translate', 'quota exceeded')
        return f"[{target_language}] {text}"


class ManualScheduler:
    """Records spawned tick loops so tests drive ticks by hand."""

    def __init__(self):
        self.spawned = []

    def spawn(self, target, *args):
        self.spawned.append((target, args))

    def sleep(self, seconds):
        pass


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def recognizer():
    return FakeRecognizer()


@pytest.fixture()
def translator():
    return FakeTranslator()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def coordinator(transport, recognizer, translator, scheduler):
    return SessionCoordinator(
        transport,
        recognizer,
        translator,
        spawn=scheduler.spawn,
        sleep=scheduler.sleep,
        tick_interval=1.0,
    )


@pytest.fixture()
def make_connection():
    counter = {'n': 0}

    def _make(role='viewer'):
        counter['n'] += 1
        return Connection(sid=f"sid-{counter['n']}", role=role)

    return _make


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import lessonsync.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass
