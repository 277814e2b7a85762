"""
Error types for Imposter.

Managers raise these; the handler layer turns them into a single
rejection message for the requesting client.
"""


class GameError(Exception):
    """Base class for rejections that are reported back to a client."""

    code = 'error'
    status = 400

    def __init__(self, message: str = 'Request failed', code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class NotAuthenticated(GameError):
    code = 'not_authenticated'
    status = 401

    def __init__(self, message: str = 'Not authenticated', code: str = None):
        super().__init__(message, code)


class NotFound(GameError):
    code = 'not_found'
    status = 404

    def __init__(self, message: str = 'Not found', code: str = None):
        super().__init__(message, code)


class Forbidden(GameError):
    code = 'forbidden'
    status = 403

    def __init__(self, message: str = 'Not allowed', code: str = None):
        super().__init__(message, code)


class LobbyFull(GameError):
    code = 'lobby_full'
    status = 409

    def __init__(self, message: str = 'Lobby full', code: str = None):
        super().__init__(message, code)


class InsufficientPlayers(GameError):
    code = 'insufficient_players'

    def __init__(self, message: str = 'Not enough players', code: str = None):
        super().__init__(message, code)


class InvalidPhase(GameError):
    """
    Action is not accepted in the lobby's current phase.

    When ``silent`` is set the handler layer drops the action without
    telling the client.
    """

    code = 'invalid_phase'
    status = 409

    def __init__(self, message: str = 'Action not allowed right now',
                 code: str = None, silent: bool = False):
        super().__init__(message, code)
        self.silent = silent


class Conflict(GameError):
    code = 'conflict'
    status = 409

    def __init__(self, message: str = 'Conflict', code: str = None):
        super().__init__(message, code)


class InvalidRequest(GameError):
    code = 'invalid_request'

    def __init__(self, message: str = 'Invalid request', code: str = None):
        super().__init__(message, code)


class PersistenceError(GameError):
    """Storage failed; the mutation that triggered it has been rolled back."""

    code = 'server_error'
    status = 500

    def __init__(self, message: str = 'Server error, please try again',
                 code: str = None):
        super().__init__(message, code)
