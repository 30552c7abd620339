import math

from pokedraw.models import Lobby

MAX_POINTS = 100
MIN_POINTS = 10


def points(remaining_seconds: float, round_seconds: float) -> int:
    """Points for a correct guess given the time left on the clock.

    Linear in remaining time, rounded up, floored at ``MIN_POINTS``. A full
    clock is worth ``MAX_POINTS``; an expired one is still worth the floor.
    """
    if round_seconds <= 0:
        return MIN_POINTS
    remaining = min(max(float(remaining_seconds), 0.0), float(round_seconds))
    return max(MIN_POINTS, math.ceil(MAX_POINTS * remaining / round_seconds))


def award(lobby: Lobby, player_id: str, amount: int) -> int:
    """Add ``amount`` to the player's running total and return the new total."""
    total = lobby.scores.get(player_id, 0) + int(amount)
    lobby.scores[player_id] = total
    return total
