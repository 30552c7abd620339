"""Host authority: who may draw and drive rounds in a lobby.

A lobby has at most one host connection. The right to become host is
proven with a bearer token: the first valid token presented to a lobby
becomes its secret, and afterwards only that exact token can claim or
reclaim the seat. A host disconnect frees the seat but keeps the token, so
the original claimant can come back from a fresh connection. The only way
to hand over the seat without the token is a transfer by the sitting host,
which rotates the token.
"""
import hmac
import secrets
from typing import Callable, Optional

from pokedraw.errors import HostConflict, InvalidToken, MalformedInput, NotAuthorized
from pokedraw.models import Lobby


def generate_token() -> str:
    return secrets.token_urlsafe(24)


class HostAuthority:

    def __init__(self, min_len: int = 12, max_len: int = 200,
                 token_factory: Optional[Callable[[], str]] = None):
        self.min_len = min_len
        self.max_len = max_len
        self.token_factory = token_factory or generate_token

    def is_valid_token(self, token) -> bool:
        return isinstance(token, str) and self.min_len <= len(token) <= self.max_len

    def claim(self, lobby: Lobby, token, sid: str) -> None:
        """Bind ``sid`` as host of ``lobby``.

        Raises:
            HostConflict: another live connection already holds the seat.
            InvalidToken: token malformed or not the lobby's secret.
        """
        if lobby.has_host and lobby.host_sid != sid:
            raise HostConflict()
        if not self.is_valid_token(token):
            raise InvalidToken()
        if lobby.host_token is None:
            lobby.host_token = token
        elif not hmac.compare_digest(lobby.host_token.encode('utf-8'), token.encode('utf-8')):
            raise InvalidToken()
        lobby.host_sid = sid

    def transfer(self, lobby: Lobby, from_sid: str, to_sid: str) -> str:
        """Hand the seat from the sitting host to another connected player.

        Returns the freshly rotated token; the previous one stops working.
        """
        self.require_host(lobby, from_sid)
        if not isinstance(to_sid, str) or to_sid == from_sid or to_sid not in lobby.players:
            raise MalformedInput('That player is not in this lobby.', public=True)
        token = self.token_factory()
        while token == lobby.host_token:
            token = self.token_factory()
        lobby.host_token = token
        lobby.host_sid = to_sid
        return token

    def release(self, lobby: Lobby, sid: str) -> bool:
        """Free the seat if ``sid`` holds it. The token stays."""
        if lobby.host_sid is None or lobby.host_sid != sid:
            return False
        lobby.host_sid = None
        return True

    @staticmethod
    def require_host(lobby: Lobby, sid: str) -> None:
        if not lobby.is_host(sid) or sid not in lobby.players:
            raise NotAuthorized()
