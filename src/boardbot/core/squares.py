"""Board coordinates and their presentations.

A ``Square`` is a 0-based ``(rank, file)`` pair. It has three external
spellings:

    algebraic   'e2'   file letter + 1-based rank, also the oracle's token
    index       12     python-chess square index (a1=0, b1=1, ..., h8=63)
    site digits '52'   1-based <file><rank>, as found in observed piece markup

Every conversion validates its input and raises ``InvalidSquareError`` for
anything off the board.
"""

from __future__ import annotations

from dataclasses import dataclass

import chess

from boardbot.core.errors import InvalidSquareError

# File letters and rank numbers for square parsing
FILES = "abcdefgh"
RANKS = "12345678"

BOARD_SIZE = 8


@dataclass(frozen=True, order=True)
class Square:
    """A single board coordinate, rank-major ordered."""

    rank: int
    file: int

    def __post_init__(self) -> None:
        if not (_on_board(self.rank) and _on_board(self.file)):
            msg = f"Square out of range: rank={self.rank!r}, file={self.file!r}"
            raise InvalidSquareError(msg)

    @classmethod
    def from_algebraic(cls, square: str) -> Square:
        """Parse algebraic notation ('a1'..'h8')."""
        if len(square) != 2:
            msg = f"Invalid square notation: {square!r}"
            raise InvalidSquareError(msg)

        file_char, rank_char = square[0].lower(), square[1]

        if file_char not in FILES or rank_char not in RANKS:
            msg = f"Invalid square notation: {square!r}"
            raise InvalidSquareError(msg)

        return cls(RANKS.index(rank_char), FILES.index(file_char))

    @classmethod
    def from_index(cls, index: int) -> Square:
        """Convert a python-chess square index."""
        if not 0 <= index < BOARD_SIZE * BOARD_SIZE:
            msg = f"Invalid board index: {index}"
            raise InvalidSquareError(msg)
        return cls(chess.square_rank(index), chess.square_file(index))

    @classmethod
    def from_site_digits(cls, digits: str) -> Square:
        """Parse the 1-based '<file><rank>' pair used by piece markup ('52' is e2)."""
        if len(digits) != 2 or not digits.isdigit():
            msg = f"Invalid square digits: {digits!r}"
            raise InvalidSquareError(msg)
        return cls(int(digits[1]) - 1, int(digits[0]) - 1)

    @property
    def algebraic(self) -> str:
        return FILES[self.file] + RANKS[self.rank]

    @property
    def index(self) -> int:
        return chess.square(self.file, self.rank)

    def flipped(self) -> Square:
        """The square in the same screen position when the board is turned around."""
        return Square(BOARD_SIZE - 1 - self.rank, BOARD_SIZE - 1 - self.file)

    def offset_from_center(self, board_width: float, flipped: bool = False) -> tuple[int, int]:
        """Pixel offset of this square's center from the center of the board.

        Args:
            board_width: Rendered width of the board in pixels.
            flipped: True when the board is drawn from the dark side.

        Returns:
            ``(x, y)`` with x growing to the right and y growing downwards,
            i.e. the offsets a pointer needs relative to the board's center.
        """
        if flipped:
            return self.flipped().offset_from_center(board_width)

        square_width = board_width / BOARD_SIZE
        half_square = square_width / 2

        # rank 8 is the top row on screen, rank 1 the bottom one
        columns_from_center = self.file - BOARD_SIZE // 2
        rows_from_center = (BOARD_SIZE // 2 - 1) - self.rank

        x = int(columns_from_center * square_width + half_square)
        y = int(rows_from_center * square_width + half_square)
        return x, y

    def __str__(self) -> str:
        return self.algebraic


def _on_board(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < BOARD_SIZE


ALL_SQUARES: tuple[Square, ...] = tuple(
    Square(rank, file) for rank in range(BOARD_SIZE) for file in range(BOARD_SIZE)
)
