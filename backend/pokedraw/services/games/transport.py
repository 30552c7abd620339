from typing import Any, Optional


class SocketIOTransport:
    """Room membership and delivery on top of a Flask-SocketIO server.

    Uses the server object directly so it works both inside handlers and
    from background tasks (deadline timers) without a request context.
    """

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def join(self, sid: str, room: str) -> None:
        self.socketio.server.enter_room(sid, room, namespace=self.namespace)

    def leave(self, sid: str, room: str) -> None:
        self.socketio.server.leave_room(sid, room, namespace=self.namespace)

    def send(self, event: str, payload: Any, sid: str) -> None:
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def broadcast(self, event: str, payload: Any, room: str, skip_sid: Optional[str] = None) -> None:
        self.socketio.emit(event, payload, to=room, skip_sid=skip_sid, namespace=self.namespace)
