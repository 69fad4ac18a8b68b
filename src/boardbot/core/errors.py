"""Exception hierarchy for boardbot.

Errors fall into two groups, which decide how the session reacts:

- Match-fatal: ``BoardDesyncError`` and ``OracleError`` subclasses. The
  current match is abandoned (its history may no longer match what the
  oracle or the board believe) and the session requeues.
- Session-fatal: ``CollaboratorError`` subclasses reported by the login,
  actuation and requeue collaborators. The session moves to its error sink.
"""

from collections.abc import Sequence
from typing import Any


class BoardBotError(Exception):
    """Base exception for boardbot."""

    pass


class InvalidSquareError(BoardBotError, ValueError):
    """Raised when a rank/file pair or square label is outside the board."""

    pass


class BoardDesyncError(BoardBotError):
    """Raised when two snapshots cannot be explained by exactly one move.

    Attributes:
        count: Number of squares whose occupancy changed.
        squares: The changed squares, in board order.
    """

    def __init__(self, count: int, squares: Sequence[Any], reason: str | None = None) -> None:
        self.count = count
        self.squares = tuple(squares)
        labels = ", ".join(str(square) for square in self.squares)
        msg = f"{count} squares changed between snapshots [{labels}]"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class OracleError(BoardBotError):
    """Base exception for failures talking to the move oracle."""

    pass


class OracleProtocolError(OracleError):
    """Raised when the oracle process exits, stalls, or never sends a reply."""

    pass


class MoveDecodeError(OracleError, ValueError):
    """Raised when a move token is not valid coordinate notation."""

    def __init__(self, token: str, reason: str | None = None) -> None:
        self.token = token
        msg = f"Cannot decode move token {token!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class CollaboratorError(BoardBotError):
    """Base exception for failures reported by external collaborators."""

    pass


class LoginError(CollaboratorError):
    """Raised when the session cannot authenticate."""

    pass


class ActuationError(CollaboratorError):
    """Raised when a chosen move could not be played on the board."""

    pass


class RequeueError(CollaboratorError):
    """Raised when starting a new match fails irrecoverably."""

    pass
