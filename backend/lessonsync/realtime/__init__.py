"""Real-time classroom state: rooms, timer, objective and captions.

Everything here is transport-agnostic. The Socket.IO binding in
``lessonsync.socketio_events`` adapts Flask-SocketIO to the
``send``/``disconnect`` transport the coordinator expects.
"""

from .coordinator import SessionCoordinator
from .rooms import Connection, RoomRegistry

__all__ = ['SessionCoordinator', 'Connection', 'RoomRegistry']
