import copy
import logging
import os
import sys
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `pokedraw` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from pokedraw import create_app, socketio
from pokedraw.services.games.coordinator import GameCoordinator
from pokedraw.services.games.host import HostAuthority
from pokedraw.services.games.scheduler import RoundTimer
from pokedraw.services.games.words import WordSource


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    ROUND_SECONDS = 80
    WORDS_REMOTE_ENABLED = False


class RecordingTransport:
    """In-memory stand-in for the Socket.IO room layer.

    Keeps room membership and a per-connection inbox of what each
    connection would have received, in order.
    """

    def __init__(self):
        self.rooms = defaultdict(set)
        self.inbox = defaultdict(list)

    def join(self, sid, room):
        self.rooms[room].add(sid)

    def leave(self, sid, room):
        self.rooms[room].discard(sid)

    def send(self, event, payload, sid):
        self._deliver(event, payload, [sid])

    def broadcast(self, event, payload, room, skip_sid=None):
        self._deliver(event, payload, [s for s in sorted(self.rooms[room]) if s != skip_sid])

    def _deliver(self, event, payload, sids):
        for sid in sids:
            self.inbox[sid].append((event, copy.deepcopy(payload)))

    def events(self, sid, name=None):
        return [(e, p) for e, p in self.inbox.get(sid, []) if name is None or e == name]

    def payloads(self, sid, name):
        return [p for e, p in self.inbox.get(sid, []) if e == name]

    def last(self, sid, name):
        found = self.payloads(sid, name)
        return found[-1] if found else None

    def clear(self):
        self.inbox.clear()


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def timer():
    return RoundTimer(socketio=None, grace_sec=0.25, enabled=False)


@pytest.fixture()
def coordinator(transport, clock, timer):
    tokens = iter(f'rotated-token-{i:04d}' for i in range(1000))
    return GameCoordinator(
        transport=transport,
        words=WordSource(['pikachu', 'mrmime', 'eevee'], choose_index=lambda n: 0),
        timer=timer,
        authority=HostAuthority(min_len=12, max_len=200, token_factory=lambda: next(tokens)),
        round_seconds=80,
        clock=clock,
        logger=logging.getLogger('pokedraw.tests'),
    )


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except RuntimeError:
            pass
