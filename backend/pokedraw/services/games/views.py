"""Client-visible snapshots of a lobby.

Two separate builders instead of one payload with optional fields: the
public view never contains the secret word, the admin view is the public
view plus the word of the active round.
"""
from typing import Any, Dict, List, Optional

from pokedraw.models import Lobby
from .rounds import remaining_seconds, round_phase


def _ms(ts: Optional[float]) -> Optional[int]:
    return int(round(ts * 1000)) if ts is not None else None


def _players(lobby: Lobby) -> List[Dict[str, Any]]:
    players = [
        {
            'id': p.sid,
            'playerId': p.player_id,
            'name': p.name,
            'score': lobby.score_for(p.player_id),
            'isHost': lobby.is_host(p.sid),
        }
        for p in sorted(lobby.players.values(), key=lambda p: p.joined_at)
    ]
    # Stable sort keeps join order among equal scores
    players.sort(key=lambda p: p['score'], reverse=True)
    return players


def _round(lobby: Lobby, now: float) -> Optional[Dict[str, Any]]:
    rnd = lobby.round
    if rnd is None:
        return None
    return {
        'phase': round_phase(lobby),
        'active': rnd.active,
        'startedAt': _ms(rnd.started_at),
        'endsAt': _ms(rnd.ends_at),
        'secondsLeft': int(remaining_seconds(rnd, now)) if rnd.active else 0,
        'endReason': rnd.end_reason,
    }


def public_view(lobby: Lobby, now: float) -> Dict[str, Any]:
    return {
        'lobbyId': lobby.code,
        'hasAdmin': lobby.has_host,
        'round': _round(lobby, now),
        'players': _players(lobby),
    }


def admin_view(lobby: Lobby, now: float) -> Dict[str, Any]:
    view = public_view(lobby, now)
    if lobby.round_active:
        view['round']['pokemon'] = lobby.round.word
    return view
