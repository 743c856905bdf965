"""
Training errors.

LimitReached is deliberately not here: running out of daily exchanges is an
expected outcome and is returned as a result model, not raised.
"""


class TrainingError(Exception):
    """Base class for session progression errors."""


class ModeNotFoundError(TrainingError):
    """Practice mode does not exist, is inactive or has no drills."""


class SessionNotFoundError(TrainingError):
    """Session does not exist or belongs to another user."""


class InvalidActionError(TrainingError):
    """Action is not valid in the session's current state."""


class ConcurrentUpdateError(TrainingError):
    """Another request advanced the session first."""
