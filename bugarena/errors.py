"""
Exceptions raised by the battle engine.
Insufficient energy is not an error; it is reported as a zero-effect attack result.
"""


class BugArenaError(Exception):
    """Base exception for the battle engine."""


class ContentError(BugArenaError):
    """Base exception for static content problems."""


class ContentLoadError(ContentError):
    """Raised when a content or config file is missing or malformed."""


class ContentReferenceError(ContentError):
    """Raised when an ID does not resolve to a content record."""


class BattleStateError(BugArenaError):
    """Raised when a battle action is invoked in a state that does not allow it."""
