import random
import re
import string
from typing import Dict, Iterator, Optional, Tuple

from pokedraw.errors import LobbyNotFound, MalformedInput
from pokedraw.models import Lobby

_CODE_PATTERN = re.compile(r'^[A-Z0-9]+$')


def normalize_code(raw, max_len: int = 12) -> str:
    """Uppercase and validate a client-supplied lobby code."""
    code = str(raw or '').strip().upper()
    if not code or len(code) > max_len or not _CODE_PATTERN.match(code):
        raise MalformedInput('Invalid lobby code.', public=True)
    return code


class LobbyRegistry:
    """Process-lifetime store of lobbies and of which lobby each
    connection currently sits in. Lobbies are never removed."""

    def __init__(self, code_length: int = 4, rng: Optional[random.Random] = None):
        self.code_length = code_length
        self._rng = rng or random.Random()
        self._lobbies: Dict[str, Lobby] = {}
        self._sid_to_code: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._lobbies)

    def __iter__(self) -> Iterator[Lobby]:
        return iter(list(self._lobbies.values()))

    def get(self, code: str) -> Optional[Lobby]:
        return self._lobbies.get(code)

    def require(self, code: str) -> Lobby:
        lobby = self._lobbies.get(code)
        if lobby is None:
            raise LobbyNotFound()
        return lobby

    def get_or_create(self, code: str) -> Tuple[Lobby, bool]:
        lobby = self._lobbies.get(code)
        if lobby is not None:
            return lobby, False
        lobby = Lobby(code=code)
        self._lobbies[code] = lobby
        return lobby, True

    def generate_code(self) -> str:
        alphabet = string.ascii_uppercase + string.digits
        while True:
            code = ''.join(self._rng.choices(alphabet, k=self.code_length))
            if code not in self._lobbies:
                return code

    def create(self) -> Lobby:
        lobby, _ = self.get_or_create(self.generate_code())
        return lobby

    # ---- connection membership ----

    def bind(self, sid: str, code: str) -> None:
        self._sid_to_code[sid] = code

    def unbind(self, sid: str) -> Optional[str]:
        return self._sid_to_code.pop(sid, None)

    def lobby_for(self, sid: str) -> Optional[Lobby]:
        code = self._sid_to_code.get(sid)
        return self._lobbies.get(code) if code else None
