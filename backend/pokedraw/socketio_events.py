from flask import current_app, request
from flask_socketio import emit

from pokedraw import get_coordinator, socketio


def _coordinator():
    return get_coordinator(current_app)


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected', 'connectionId': _get_sid()})


def handle_disconnect(reason=None):
    _coordinator().disconnect(_get_sid())


def handle_ping(data=None):
    emit('pong', data or {})


def _delegate(name):
    def handler(data=None):
        getattr(_coordinator(), name)(_get_sid(), data)
    handler.__name__ = f'handle_{name}'
    return handler


# Inbound event name -> coordinator method
EVENTS = (
    'create_lobby',
    'join_lobby',
    'claim_admin',
    'transfer_admin',
    'start_round',
    'reroll_pokemon',
    'draw_stroke',
    'clear_canvas',
    'fill_canvas',
    'submit_guess',
)


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
    for name in EVENTS:
        socketio.on_event(name, _delegate(name), namespace=namespace)
