"""Round lifecycle for a single lobby.

    idle --start--> active --(guessed | time | admin_left)--> ended
                      |  ^                                      |
                      +--+ reroll                               +--start--> active

``ended`` is kept only so views can show how the last round finished; it
accepts ``start`` exactly like ``idle``. These helpers mutate the lobby and
return; emitting events and scheduling deadlines is the coordinator's job.
"""
import re
from typing import Optional

from pokedraw.errors import RoundInProgress
from pokedraw.models import Lobby, Round

REASON_GUESSED = 'guessed'
REASON_TIME = 'time'
REASON_ADMIN_LEFT = 'admin_left'

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def normalize_guess(text) -> str:
    return _NON_ALNUM.sub('', str(text or '').lower())


def is_correct_guess(rnd: Optional[Round], text) -> bool:
    if rnd is None or not rnd.active:
        return False
    target = normalize_guess(rnd.word)
    return bool(target) and normalize_guess(text) == target


def reveals_answer(rnd: Optional[Round], text) -> bool:
    """True when a message spells out the active word, whole or as one token."""
    if rnd is None or not rnd.active:
        return False
    target = normalize_guess(rnd.word)
    if not target:
        return False
    if normalize_guess(text) == target:
        return True
    return any(normalize_guess(token) == target for token in str(text or '').split())


def round_phase(lobby: Lobby) -> str:
    if lobby.round is None:
        return 'idle'
    return 'active' if lobby.round.active else 'ended'


def remaining_seconds(rnd: Round, now: float) -> float:
    return max(0.0, rnd.ends_at - now)


def begin_round(lobby: Lobby, word: str, now: float, round_seconds: float) -> Round:
    if lobby.round_active:
        raise RoundInProgress()
    lobby.round_generation += 1
    lobby.round = Round(
        word=word,
        started_at=now,
        ends_at=now + round_seconds,
        generation=lobby.round_generation,
    )
    return lobby.round


def reroll_round(lobby: Lobby, word: str, now: float, round_seconds: float,
                 reset_timer: bool = True) -> Round:
    """Replace the active round's word.

    With ``reset_timer`` the clock restarts and the generation moves on, so
    the previously scheduled deadline becomes stale. Without it the old
    deadline still applies to the new round.
    """
    current = lobby.round
    if reset_timer:
        lobby.round_generation += 1
        started_at, ends_at = now, now + round_seconds
    else:
        started_at, ends_at = current.started_at, current.ends_at
    lobby.round = Round(
        word=word,
        started_at=started_at,
        ends_at=ends_at,
        generation=lobby.round_generation,
    )
    return lobby.round


def finish_round(lobby: Lobby, reason: str, winner: Optional[str] = None) -> Optional[Round]:
    """Mark the active round ended. Returns it, or None if nothing was active."""
    rnd = lobby.round
    if rnd is None or not rnd.active:
        return None
    rnd.active = False
    rnd.end_reason = reason
    rnd.winner = winner
    lobby.round_generation += 1
    return rnd


def deadline_is_current(lobby: Optional[Lobby], generation: int) -> bool:
    return (
        lobby is not None
        and lobby.round is not None
        and lobby.round.active
        and lobby.round.generation == generation
        and lobby.round_generation == generation
    )
