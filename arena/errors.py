"""Errors raised by the battle core and surfaced to the delivery layer."""


class ArenaError(Exception):
    """Base class for game rule violations."""


class NotFoundError(ArenaError):
    """Raised when a battle, state, challenge, user or character is missing."""


class ForbiddenError(ArenaError):
    """Raised when the caller is not allowed to act on the record."""


class InvalidStateError(ArenaError):
    """Raised when the record is not in a state that allows the operation."""
