"""Error taxonomy for lobby and round coordination.

Domain services raise these; the coordinator decides whether a condition
is reported to the requesting connection (``public = True``) or dropped
without a trace, so non-hosts cannot probe what a host action would do.
"""


class LobbyError(Exception):
    public = True
    message = 'Something went wrong.'

    def __init__(self, message=None, public=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        if public is not None:
            self.public = public


class InvalidToken(LobbyError):
    message = 'Invalid host token.'


class HostConflict(LobbyError):
    message = 'This lobby already has a host.'


class LobbyNotFound(LobbyError):
    message = 'Lobby not found.'


class RoundInProgress(LobbyError):
    message = 'A round is already in progress.'


class NotAuthorized(LobbyError):
    public = False
    message = 'Only the host can do that.'


class MalformedInput(LobbyError):
    public = False
    message = 'Malformed input.'
