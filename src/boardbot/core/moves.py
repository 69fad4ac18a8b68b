"""Move value type and its coordinate-notation codec."""

from __future__ import annotations

from dataclasses import dataclass

import chess

from boardbot.core.errors import MoveDecodeError
from boardbot.core.squares import Square

# Tokens an oracle sends when it has no move to offer
NO_MOVE_TOKENS = frozenset({"0000", "(none)"})


@dataclass(frozen=True)
class Move:
    """A single move: origin, destination, and the promoted-to kind if any."""

    start: Square
    end: Square
    promotion: chess.PieceType | None = None

    def __post_init__(self) -> None:
        if self.start == self.end:
            msg = f"A move must change squares, got {self.start}{self.end}"
            raise ValueError(msg)

    def uci(self) -> str:
        """Coordinate notation, e.g. 'e2e4' or 'e7e8q'."""
        suffix = chess.piece_symbol(self.promotion) if self.promotion else ""
        return f"{self.start.algebraic}{self.end.algebraic}{suffix}"

    @classmethod
    def from_uci(cls, token: str) -> Move:
        """Decode coordinate notation.

        Raises:
            MoveDecodeError: If the token is not a plain move between two
                squares with an optional promotion letter.
        """
        if token in NO_MOVE_TOKENS:
            raise MoveDecodeError(token, "no move available")
        if len(token) not in (4, 5):
            raise MoveDecodeError(token, "expected 4 or 5 characters")

        try:
            move = chess.Move.from_uci(token)
        except ValueError as e:
            raise MoveDecodeError(token, str(e)) from e

        if move.drop is not None or move.from_square == move.to_square:
            raise MoveDecodeError(token, "not a board move")
        return cls.from_chess(move)

    @classmethod
    def from_chess(cls, move: chess.Move) -> Move:
        return cls(Square.from_index(move.from_square), Square.from_index(move.to_square), move.promotion)

    def to_chess(self) -> chess.Move:
        return chess.Move(self.start.index, self.end.index, promotion=self.promotion)

    def __str__(self) -> str:
        return self.uci()
