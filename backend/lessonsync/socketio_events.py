from flask import current_app, request
from flask_socketio import disconnect, emit

from lessonsync import socketio


class SocketIOTransport:
    """Delivers coordinator events through Flask-SocketIO.

    Sends address a single sid, so this also works from background tasks
    where there is no request context.
    """

    def __init__(self, sio):
        self.sio = sio

    def send(self, connection, event, payload):
        self.sio.emit(event, payload, to=connection.sid, namespace=connection.namespace)

    def disconnect(self, connection):
        disconnect(sid=connection.sid, namespace=connection.namespace)


def _coordinator():
    return current_app.extensions['lessonsync']


def _connection():
    return _coordinator().connection(request.sid, request.namespace)  # type: ignore


def handle_connect(auth=None):
    _coordinator().connect(request.sid, request.namespace)  # type: ignore
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    _coordinator().disconnect(request.sid, request.namespace)  # type: ignore


def handle_join_session(data=None):
    _coordinator().join(_connection(), data)


def handle_leave_session(data=None):
    _coordinator().leave(_connection())


def handle_start_timer(data=None):
    _coordinator().start_timer(_connection(), data)


def handle_stop_timer(data=None):
    _coordinator().stop_timer(_connection(), data)


def handle_reset_timer(data=None):
    _coordinator().reset_timer(_connection(), data)


def handle_set_objective(data=None):
    _coordinator().set_objective(_connection(), data)


def handle_start_captions(data=None):
    _coordinator().start_captions(_connection(), data)


def handle_audio_chunk(data=None):
    _coordinator().audio_chunk(_connection(), data)


def handle_stop_captions(data=None):
    _coordinator().stop_captions(_connection(), data)


def handle_request_translation(data=None):
    _coordinator().request_translation(_connection(), data)


def handle_ping(data=None):
    emit('pong', data or {})


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'joinSession': handle_join_session,
    'leaveSession': handle_leave_session,
    'startTimer': handle_start_timer,
    'stopTimer': handle_stop_timer,
    'resetTimer': handle_reset_timer,
    'setObjective': handle_set_objective,
    'startCaptions': handle_start_captions,
    'audioChunk': handle_audio_chunk,
    'stopCaptions': handle_stop_captions,
    'requestTranslation': handle_request_translation,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for name, handler in HANDLERS.items():
        socketio.on_event(name, handler, namespace='/ws')

    if testing:
        for name, handler in HANDLERS.items():
            socketio.on_event(name, handler, namespace='/')
