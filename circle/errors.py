"""Typed command failures. A raised GameError means nothing was written."""


class GameError(Exception):
    """Base class for every expected command rejection."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    """Bad target, bad content, or an action the caller's role cannot take."""

    kind = "validation"


class PhaseError(GameError):
    """Command issued outside its required session status."""

    kind = "phase"


class ConflictError(PhaseError):
    """Another command changed the session between load and commit."""

    kind = "conflict"


class AuthorizationError(GameError):
    """Caller is not the host, not seated, or speaking out of turn."""

    kind = "authorization"


class NotFoundError(GameError):
    kind = "not_found"


class CapacityError(GameError):
    """Circle full, or too few players to start."""

    kind = "capacity"
