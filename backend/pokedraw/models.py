from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class Player:
    """One live connection inside a lobby."""
    sid: str
    player_id: str
    name: str
    joined_at: float = 0.0


@dataclass
class Round:
    word: str
    started_at: float
    ends_at: float
    generation: int
    active: bool = True
    end_reason: Optional[str] = None
    winner: Optional[str] = None


@dataclass
class Lobby:
    code: str
    host_sid: Optional[str] = None
    host_token: Optional[str] = None
    round: Optional[Round] = None
    # Bumped on every start, timer-resetting reroll and end; deadlines
    # compare against it when they fire.
    round_generation: int = 0
    players: Dict[str, Player] = field(default_factory=dict)
    # Keyed by stable player id so points survive reconnects
    scores: Dict[str, int] = field(default_factory=dict)

    @property
    def room(self) -> str:
        return f"lobby:{self.code}"

    @property
    def has_host(self) -> bool:
        return self.host_sid is not None and self.host_sid in self.players

    @property
    def round_active(self) -> bool:
        return self.round is not None and self.round.active

    def is_host(self, sid: str) -> bool:
        return self.host_sid is not None and self.host_sid == sid

    def score_for(self, player_id: str) -> int:
        return self.scores.get(player_id, 0)
