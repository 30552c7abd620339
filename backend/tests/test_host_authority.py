import pytest

from pokedraw.errors import HostConflict, InvalidToken, MalformedInput, NotAuthorized
from pokedraw.models import Lobby, Player
from pokedraw.services.games.host import HostAuthority

TOKEN = 'a-valid-token-of-20c'


def _lobby(*sids):
    lobby = Lobby(code='AB12')
    for sid in sids:
        lobby.players[sid] = Player(sid=sid, player_id=f'p-{sid}', name=sid.upper())
    return lobby


@pytest.fixture()
def authority():
    return HostAuthority(min_len=12, max_len=200)


def test_first_claim_sets_token_exactly(authority):
    lobby = _lobby('a')
    authority.claim(lobby, TOKEN, 'a')
    assert lobby.host_sid == 'a'
    assert lobby.host_token == TOKEN


@pytest.mark.parametrize('token', [None, '', 'short', 'x' * 11, 'x' * 201, 12345678901234])
def test_malformed_tokens_are_invalid(authority, token):
    lobby = _lobby('a')
    with pytest.raises(InvalidToken):
        authority.claim(lobby, token, 'a')
    assert lobby.host_sid is None
    assert lobby.host_token is None


def test_token_length_bounds_are_inclusive(authority):
    assert authority.is_valid_token('x' * 12)
    assert authority.is_valid_token('x' * 200)


def test_claim_conflicts_while_another_connection_is_host(authority):
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    with pytest.raises(HostConflict):
        authority.claim(lobby, 'some-other-token', 'b')
    # Even the right token does not dislodge a live host
    with pytest.raises(HostConflict):
        authority.claim(lobby, TOKEN, 'b')
    assert lobby.host_sid == 'a'


def test_wrong_token_without_host_is_invalid(authority):
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    authority.release(lobby, 'a')
    with pytest.raises(InvalidToken):
        authority.claim(lobby, 'some-other-token', 'b')
    assert lobby.host_sid is None


def test_release_keeps_token_for_reclaim(authority):
    lobby = _lobby('a', 'c')
    authority.claim(lobby, TOKEN, 'a')
    assert authority.release(lobby, 'a') is True
    assert lobby.host_token == TOKEN
    del lobby.players['a']
    authority.claim(lobby, TOKEN, 'c')
    assert lobby.host_sid == 'c'


def test_release_by_non_host_is_noop(authority):
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    assert authority.release(lobby, 'b') is False
    assert lobby.host_sid == 'a'


def test_stale_binding_to_departed_connection_does_not_block_claim(authority):
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    del lobby.players['a']
    authority.claim(lobby, TOKEN, 'b')
    assert lobby.host_sid == 'b'


def test_transfer_rotates_token_and_voids_old_one():
    authority = HostAuthority(token_factory=lambda: 'rotated-token-value')
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    new_token = authority.transfer(lobby, 'a', 'b')
    assert new_token == 'rotated-token-value'
    assert new_token != TOKEN
    assert lobby.host_sid == 'b'
    assert lobby.host_token == new_token

    authority.release(lobby, 'b')
    with pytest.raises(InvalidToken):
        authority.claim(lobby, TOKEN, 'a')
    authority.claim(lobby, new_token, 'a')
    assert lobby.host_sid == 'a'


def test_transfer_never_reissues_same_token():
    issued = iter([TOKEN, TOKEN, 'fresh-token-abcdef'])
    authority = HostAuthority(token_factory=lambda: next(issued))
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    assert authority.transfer(lobby, 'a', 'b') == 'fresh-token-abcdef'


def test_transfer_requires_host(authority):
    lobby = _lobby('a', 'b', 'c')
    authority.claim(lobby, TOKEN, 'a')
    with pytest.raises(NotAuthorized):
        authority.transfer(lobby, 'b', 'c')
    assert lobby.host_sid == 'a'
    assert lobby.host_token == TOKEN


@pytest.mark.parametrize('target', ['a', 'zz', None])
def test_transfer_needs_another_connected_player(authority, target):
    lobby = _lobby('a', 'b')
    authority.claim(lobby, TOKEN, 'a')
    with pytest.raises(MalformedInput):
        authority.transfer(lobby, 'a', target)
    assert lobby.host_sid == 'a'


def test_at_most_one_host_through_mixed_sequence(authority):
    lobby = _lobby('a', 'b', 'c')
    steps = [
        lambda: authority.claim(lobby, TOKEN, 'a'),
        lambda: authority.claim(lobby, TOKEN, 'b'),
        lambda: authority.transfer(lobby, 'a', 'c'),
        lambda: authority.claim(lobby, TOKEN, 'a'),
        lambda: authority.release(lobby, 'c'),
        lambda: authority.claim(lobby, lobby.host_token, 'b'),
        lambda: authority.claim(lobby, lobby.host_token, 'c'),
    ]
    for step in steps:
        try:
            step()
        except (HostConflict, InvalidToken):
            pass
        hosts = [sid for sid in lobby.players if lobby.is_host(sid)]
        assert len(hosts) <= 1
    assert lobby.host_sid == 'b'
