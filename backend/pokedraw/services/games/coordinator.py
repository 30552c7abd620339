"""Event dispatch for lobbies: the one place that mutates lobby state.

Every inbound event runs to completion under a single re-entrant lock
(state change first, then the outbound events), so a lobby is never seen
half-updated. Round deadlines come back in through ``expire_round``, which
takes the same lock and re-checks the lobby's current round before acting.
"""
import functools
import logging
import re
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from pokedraw.errors import LobbyError, MalformedInput
from pokedraw.models import Lobby, Player
from .host import HostAuthority
from .registry import LobbyRegistry, normalize_code
from .rounds import (
    REASON_ADMIN_LEFT,
    REASON_GUESSED,
    REASON_TIME,
    begin_round,
    deadline_is_current,
    finish_round,
    is_correct_guess,
    remaining_seconds,
    reroll_round,
    reveals_answer,
)
from .scheduler import RoundTimer
from .scoring import award, points
from .views import admin_view, public_view
from .words import WordSource

_COLOR_PATTERN = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')
_WHITESPACE = re.compile(r'\s+')

DEFAULT_NAME = 'Player'
_FALSE_WORDS = frozenset({'', 'false', '0', 'no', 'off'})


def sanitize_name(raw, max_len: int = 20) -> str:
    cleaned = _WHITESPACE.sub(' ', str(raw or '')).strip()
    return cleaned[:max_len] or DEFAULT_NAME


def sanitize_player_id(raw, fallback: str, max_len: int = 64) -> str:
    cleaned = str(raw or '').strip()[:max_len]
    return cleaned or fallback


def sanitize_color(raw) -> str:
    if not isinstance(raw, str) or not _COLOR_PATTERN.match(raw.strip()):
        raise MalformedInput('Invalid color.')
    return raw.strip()


def _field(data: Dict[str, Any], *names, default=None):
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return default


def _flag(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_WORDS
    return bool(value)


def _event(handler: Callable) -> Callable:
    """Serialize an inbound event and turn LobbyErrors into replies.

    Public errors become a unicast ``error_msg``; the rest are dropped.
    """
    @functools.wraps(handler)
    def wrapper(self, sid: str, data: Optional[Dict[str, Any]] = None):
        payload = data if isinstance(data, dict) else {}
        with self.lock:
            try:
                return handler(self, sid, payload)
            except LobbyError as exc:
                if exc.public:
                    self.transport.send('error_msg', {'message': exc.message}, sid)
                else:
                    self.logger.debug(
                        f"[ignored] event={handler.__name__} sid={sid} reason={type(exc).__name__}"
                    )
                return None
    return wrapper


class GameCoordinator:

    def __init__(self, transport, words: WordSource, timer: RoundTimer,
                 registry: Optional[LobbyRegistry] = None,
                 authority: Optional[HostAuthority] = None,
                 round_seconds: float = 80,
                 name_max_len: int = 20,
                 player_id_max_len: int = 64,
                 guess_max_len: int = 60,
                 code_max_len: int = 12,
                 clock: Callable[[], float] = time.time,
                 logger: Optional[logging.Logger] = None):
        self.transport = transport
        self.words = words
        self.timer = timer
        self.registry = registry or LobbyRegistry()
        self.authority = authority or HostAuthority()
        self.round_seconds = round_seconds
        self.name_max_len = name_max_len
        self.player_id_max_len = player_id_max_len
        self.guess_max_len = guess_max_len
        self.code_max_len = code_max_len
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.lock = threading.RLock()

    @classmethod
    def from_config(cls, config, transport, words, timer, logger=None):
        return cls(
            transport=transport,
            words=words,
            timer=timer,
            registry=LobbyRegistry(code_length=int(config.get('LOBBY_CODE_LENGTH', 4))),
            authority=HostAuthority(
                min_len=int(config.get('HOST_TOKEN_MIN_LEN', 12)),
                max_len=int(config.get('HOST_TOKEN_MAX_LEN', 200)),
            ),
            round_seconds=int(config.get('ROUND_SECONDS', 80)),
            name_max_len=int(config.get('PLAYER_NAME_MAX_LEN', 20)),
            player_id_max_len=int(config.get('PLAYER_ID_MAX_LEN', 64)),
            guess_max_len=int(config.get('GUESS_MAX_LEN', 60)),
            code_max_len=int(config.get('LOBBY_CODE_MAX_LEN', 12)),
            logger=logger,
        )

    # ---- lobby membership ----

    @_event
    def create_lobby(self, sid, data):
        name, player_id = self._identity(sid, data)
        lobby = self.registry.create()
        self.logger.info(f"[lobby-created] lobby={lobby.code} sid={sid}")
        self._enter(lobby, sid, name, player_id)
        claimed = self._try_claim(lobby, sid, _field(data, 'hostToken'))
        self._welcome('lobby_created', lobby, sid)
        if claimed:
            self._announce_host(lobby, sid)
        self.publish(lobby)

    @_event
    def join_lobby(self, sid, data):
        code = normalize_code(_field(data, 'lobbyId', 'lobbyCode', 'code'), self.code_max_len)
        name, player_id = self._identity(sid, data)
        lobby, created = self.registry.get_or_create(code)
        if created:
            self.logger.info(f"[lobby-created] lobby={code} sid={sid} via=join")
        self._enter(lobby, sid, name, player_id)
        claimed = self._try_claim(lobby, sid, _field(data, 'hostToken'))
        self._welcome('lobby_created' if created else 'lobby_joined', lobby, sid)
        if claimed:
            self._announce_host(lobby, sid)
        self.publish(lobby)

    def disconnect(self, sid):
        with self.lock:
            lobby = self.registry.lobby_for(sid)
            if lobby is None:
                return
            self.logger.info(f"[disconnect] lobby={lobby.code} sid={sid} host={lobby.is_host(sid)}")
            self._leave(lobby, sid)

    # ---- host authority ----

    @_event
    def claim_admin(self, sid, data):
        lobby = self._lobby(data)
        if sid not in lobby.players:
            raise MalformedInput('Join the lobby first.', public=True)
        try:
            self.authority.claim(lobby, _field(data, 'hostToken'), sid)
        except LobbyError as exc:
            self.logger.info(f"[claim-denied] lobby={lobby.code} sid={sid} reason={type(exc).__name__}")
            raise
        self.logger.info(f"[claim] lobby={lobby.code} sid={sid}")
        self._announce_host(lobby, sid)
        self.publish(lobby)

    @_event
    def transfer_admin(self, sid, data):
        lobby = self._lobby(data)
        target = _field(data, 'targetConnectionId', 'targetId', 'target')
        token = self.authority.transfer(lobby, sid, target)
        self.logger.info(f"[transfer] lobby={lobby.code} from={sid} to={target}")
        self.transport.send('admin_revoked', {'lobbyId': lobby.code}, sid)
        self.transport.send('host_token_issued', {'lobbyId': lobby.code, 'hostToken': token}, target)
        self._announce_host(lobby, target)
        self.publish(lobby)

    # ---- rounds ----

    @_event
    def start_round(self, sid, data):
        lobby = self._lobby(data)
        self.authority.require_host(lobby, sid)
        rnd = begin_round(lobby, self.words.choose(), self.clock(), self.round_seconds)
        self.logger.info(f"[round-start] lobby={lobby.code} generation={rnd.generation}")
        self.transport.broadcast('canvas_clear', {}, lobby.room)
        self.transport.broadcast('round_started', self._timing(rnd), lobby.room)
        self.transport.send('admin_answer', {'pokemon': rnd.word}, sid)
        self._schedule_deadline(lobby)
        self.publish(lobby)

    @_event
    def reroll_pokemon(self, sid, data):
        lobby = self._lobby(data)
        self.authority.require_host(lobby, sid)
        if not lobby.round_active:
            raise MalformedInput('No active round to reroll.')
        reset_timer = _flag(_field(data, 'resetTimer'), default=True)
        word = self.words.choose_other(lobby.round.word)
        rnd = reroll_round(lobby, word, self.clock(), self.round_seconds, reset_timer=reset_timer)
        self.logger.info(
            f"[round-reroll] lobby={lobby.code} generation={rnd.generation} reset_timer={reset_timer}"
        )
        self.transport.broadcast('canvas_clear', {}, lobby.room)
        if reset_timer:
            self.transport.broadcast('round_started', self._timing(rnd), lobby.room)
            self._schedule_deadline(lobby)
        self.transport.send('admin_answer', {'pokemon': rnd.word}, sid)
        self.publish(lobby)

    @_event
    def submit_guess(self, sid, data):
        lobby = self._lobby(data)
        player = lobby.players.get(sid)
        if player is None:
            raise MalformedInput('Join the lobby first.', public=True)
        text = _field(data, 'guess', 'text', default='')
        if not isinstance(text, str):
            raise MalformedInput('Guess must be text.')
        text = text.strip()[:self.guess_max_len]
        if not text:
            raise MalformedInput('Empty guess.')

        rnd = lobby.round
        if lobby.is_host(sid):
            if reveals_answer(rnd, text):
                raise MalformedInput('Host message would reveal the answer.')
            self.transport.broadcast('chat_msg', {'name': player.name, 'message': text}, lobby.room)
            return

        self.transport.broadcast('chat_msg', {'name': player.name, 'message': text}, lobby.room)
        if not is_correct_guess(rnd, text):
            return
        gained = points(remaining_seconds(rnd, self.clock()), self.round_seconds)
        total = award(lobby, player.player_id, gained)
        self.logger.info(
            f"[guess-correct] lobby={lobby.code} player={player.player_id} points={gained} total={total}"
        )
        self.transport.broadcast('correct_guess', {'name': player.name, 'points': gained}, lobby.room)
        self._end_round(lobby, REASON_GUESSED, winner=player.name)

    def expire_round(self, code: str, generation: int) -> bool:
        """Deadline callback. Acts only if ``generation`` is still the
        lobby's live round; returns whether the round was ended."""
        with self.lock:
            lobby = self.registry.get(code)
            if not deadline_is_current(lobby, generation):
                self.logger.info(f"[timer-stale] lobby={code} generation={generation}")
                return False
            self._end_round(lobby, REASON_TIME)
            return True

    # ---- drawing surface ----

    @_event
    def draw_stroke(self, sid, data):
        lobby = self._lobby(data)
        self.authority.require_host(lobby, sid)
        if not lobby.round_active:
            raise MalformedInput('Drawing outside an active round.')
        stroke = _field(data, 'stroke', 'strokeData')
        if not isinstance(stroke, dict):
            raise MalformedInput('Stroke must be an object.')
        self.transport.broadcast('draw_stroke', {'stroke': stroke}, lobby.room, skip_sid=sid)

    @_event
    def clear_canvas(self, sid, data):
        lobby = self._lobby(data)
        self.authority.require_host(lobby, sid)
        self.transport.broadcast('canvas_clear', {}, lobby.room)

    @_event
    def fill_canvas(self, sid, data):
        lobby = self._lobby(data)
        self.authority.require_host(lobby, sid)
        color = sanitize_color(_field(data, 'color'))
        self.transport.broadcast('canvas_fill', {'color': color}, lobby.room, skip_sid=sid)

    # ---- snapshots ----

    def publish(self, lobby: Lobby) -> None:
        """Push ``lobby_update`` to the room: admin view to the host,
        public view to everyone else."""
        now = self.clock()
        host_sid = lobby.host_sid if lobby.has_host else None
        self.transport.broadcast('lobby_update', public_view(lobby, now), lobby.room, skip_sid=host_sid)
        if host_sid is not None:
            self.transport.send('lobby_update', admin_view(lobby, now), host_sid)

    def view_for(self, lobby: Lobby, sid: str) -> Dict[str, Any]:
        if lobby.has_host and lobby.is_host(sid):
            return admin_view(lobby, self.clock())
        return public_view(lobby, self.clock())

    def public_snapshot(self, raw_code) -> Dict[str, Any]:
        with self.lock:
            lobby = self.registry.require(normalize_code(raw_code, self.code_max_len))
            return public_view(lobby, self.clock())

    def lobby_summaries(self) -> List[Dict[str, Any]]:
        with self.lock:
            return [
                {
                    'lobbyId': lobby.code,
                    'players': len(lobby.players),
                    'hasAdmin': lobby.has_host,
                    'roundActive': lobby.round_active,
                }
                for lobby in self.registry
            ]

    def replace_words(self, words: WordSource) -> None:
        with self.lock:
            self.words = words

    # ---- internals ----

    def _lobby(self, data) -> Lobby:
        return self.registry.require(
            normalize_code(_field(data, 'lobbyId', 'lobbyCode', 'code'), self.code_max_len)
        )

    def _identity(self, sid, data):
        name = sanitize_name(_field(data, 'name'), self.name_max_len)
        player_id = sanitize_player_id(_field(data, 'playerId', 'stablePlayerId'), sid,
                                       self.player_id_max_len)
        return name, player_id

    def _enter(self, lobby: Lobby, sid: str, name: str, player_id: str) -> None:
        current = self.registry.lobby_for(sid)
        if current is not None and current is not lobby:
            self._leave(current, sid)
        existing = lobby.players.get(sid)
        joined_at = existing.joined_at if existing else self.clock()
        lobby.players[sid] = Player(sid=sid, player_id=player_id, name=name, joined_at=joined_at)
        lobby.scores.setdefault(player_id, 0)
        self.registry.bind(sid, lobby.code)
        self.transport.join(sid, lobby.room)

    def _leave(self, lobby: Lobby, sid: str) -> None:
        lobby.players.pop(sid, None)
        self.registry.unbind(sid)
        self.transport.leave(sid, lobby.room)
        if self.authority.release(lobby, sid):
            self.logger.info(f"[host-vacant] lobby={lobby.code} sid={sid}")
            if lobby.round_active:
                self._end_round(lobby, REASON_ADMIN_LEFT)
                return
        self.publish(lobby)

    def _try_claim(self, lobby: Lobby, sid: str, token) -> bool:
        if token is None:
            return False
        try:
            self.authority.claim(lobby, token, sid)
        except LobbyError as exc:
            self.logger.info(f"[auto-claim-skip] lobby={lobby.code} sid={sid} reason={type(exc).__name__}")
            return False
        self.logger.info(f"[claim] lobby={lobby.code} sid={sid} via=join")
        return True

    def _welcome(self, event: str, lobby: Lobby, sid: str) -> None:
        payload = self.view_for(lobby, sid)
        payload['connectionId'] = sid
        self.transport.send(event, payload, sid)

    def _announce_host(self, lobby: Lobby, sid: str) -> None:
        self.transport.send('admin_claimed', {'lobbyId': lobby.code}, sid)
        if lobby.round_active:
            self.transport.send('admin_answer', {'pokemon': lobby.round.word}, sid)

    def _timing(self, rnd) -> Dict[str, int]:
        return {
            'startedAt': int(round(rnd.started_at * 1000)),
            'endsAt': int(round(rnd.ends_at * 1000)),
        }

    def _schedule_deadline(self, lobby: Lobby) -> None:
        rnd = lobby.round
        self.timer.schedule(
            lobby.code, rnd.generation, remaining_seconds(rnd, self.clock()), self.expire_round
        )

    def _end_round(self, lobby: Lobby, reason: str, winner: Optional[str] = None) -> None:
        rnd = finish_round(lobby, reason, winner)
        if rnd is None:
            return
        self.timer.cancel(lobby.code)
        self.logger.info(f"[round-end] lobby={lobby.code} reason={reason} winner={winner}")
        self.transport.broadcast(
            'round_ended', {'reason': reason, 'pokemon': rnd.word, 'winner': winner}, lobby.room
        )
        self.publish(lobby)
