class LessonSyncError(Exception):
    """Base class for errors raised by the real-time core."""


class ProtocolViolation(LessonSyncError):
    """A client sent a payload that does not match the wire contract.

    Malformed join requests end the connection; any other malformed command
    is logged and dropped.
    """

    def __init__(self, event: str, message: str):
        super().__init__(f"{event}: {message}")
        self.event = event
        self.message = message


class UpstreamServiceError(LessonSyncError):
    """Speech recognition or translation failed.

    Reported only to the connection whose action triggered the call.
    """

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message
