"""Engine error taxonomy.

Every error an engine operation raises on purpose is a ChaosError. `reason`
is safe to show to users; data-corruption errors deliberately expose only a
generic message and keep the details for the log.
"""


class ChaosError(Exception):
    """Base class for errors surfaced to engine callers."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(ChaosError):
    """Bad input shape or range. Raised before any state is touched."""


class NotFoundError(ChaosError):
    """Unknown game id or history index."""


class InvalidChoiceError(ChaosError):
    """The choice id is not offered by the current scene."""


class GameEndedError(ChaosError):
    """The current scene is an ending; no further choices are accepted."""


class SelfVoteError(ChaosError):
    """A user tried to vote on a choice they authored."""


class NotGameOwnerError(ChaosError):
    """Owner-only operation attempted by someone else."""


UNAVAILABLE_REASON = "This game is unavailable"


class CorruptDataError(ChaosError):
    """A stored document can't be decoded or is internally inconsistent."""

    def __init__(self, detail: str) -> None:
        super().__init__(UNAVAILABLE_REASON)
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


class InvalidPathError(CorruptDataError):
    """The active path no longer resolves to a real path in the story tree."""
