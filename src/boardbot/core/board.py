"""Immutable board snapshots.

A ``Board`` records which piece (if any) occupies each of the 64 squares at
one instant. Pieces are plain ``chess.Piece`` values: two white pawns are
indistinguishable, so a snapshot says nothing about which pawn went where.
Snapshots are never edited after construction; newer observations replace
older ones wholesale.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import chess

from boardbot.core.squares import ALL_SQUARES, BOARD_SIZE, Square

NUM_SQUARES = BOARD_SIZE * BOARD_SIZE

# Piece markup looks like "piece wp square-52": <color><kind> plus <file><rank>
_SQUARE_CLASS_PREFIX = "square-"
_SITE_COLORS = {"w": chess.WHITE, "b": chess.BLACK}


class Board:
    """Occupancy of all 64 squares at one instant."""

    __slots__ = ("_cells",)

    def __init__(self, cells: Iterable[chess.Piece | None]) -> None:
        """Build a board from 64 cells in python-chess index order (a1, b1, ..., h8)."""
        cells = tuple(cells)
        if len(cells) != NUM_SQUARES:
            msg = f"Board needs exactly {NUM_SQUARES} cells, got {len(cells)}"
            raise ValueError(msg)
        self._cells: tuple[chess.Piece | None, ...] = cells

    @classmethod
    def empty(cls) -> Board:
        return cls([None] * NUM_SQUARES)

    @classmethod
    def starting(cls) -> Board:
        """Standard initial occupancy."""
        return cls.from_board_fen(chess.STARTING_BOARD_FEN)

    @classmethod
    def from_occupancy(cls, occupancy: Iterable[tuple[Square, chess.Piece]]) -> Board:
        """Build a board from (square, piece) pairs in any order.

        Squares that are not listed are empty.

        Raises:
            ValueError: If a square is listed twice.
        """
        cells: list[chess.Piece | None] = [None] * NUM_SQUARES
        seen: set[Square] = set()
        for square, piece in occupancy:
            if square in seen:
                msg = f"Square {square} listed more than once"
                raise ValueError(msg)
            seen.add(square)
            cells[square.index] = piece
        return cls(cells)

    @classmethod
    def from_piece_classes(cls, piece_classes: Iterable[str]) -> Board:
        """Build a board from observed piece markup class strings.

        Each entry holds whitespace separated classes, one of which is the
        two letter ``<color><kind>`` code (``wp``, ``bk``, ...) and one of
        which is ``square-<file><rank>`` with 1-based digits.

        Raises:
            ValueError: If an entry lacks either class or names an unknown
                piece or square.
        """
        occupancy = []
        for entry in piece_classes:
            classes = entry.split()
            piece_code = next(
                (c for c in classes if len(c) == 2 and c[0] in _SITE_COLORS and c[1].isalpha()),
                None,
            )
            square_code = next((c for c in classes if c.startswith(_SQUARE_CLASS_PREFIX)), None)
            if piece_code is None or square_code is None:
                msg = f"Unrecognised piece markup: {entry!r}"
                raise ValueError(msg)

            color = _SITE_COLORS[piece_code[0]]
            symbol = piece_code[1].upper() if color == chess.WHITE else piece_code[1].lower()
            try:
                piece = chess.Piece.from_symbol(symbol)
            except ValueError as e:
                msg = f"Unknown piece kind in markup: {entry!r}"
                raise ValueError(msg) from e

            square = Square.from_site_digits(square_code[len(_SQUARE_CLASS_PREFIX):])
            occupancy.append((square, piece))
        return cls.from_occupancy(occupancy)

    @classmethod
    def from_board_fen(cls, fen: str) -> Board:
        """Build a board from the piece placement part of a FEN string."""
        base = chess.BaseBoard(fen)
        return cls(base.piece_at(index) for index in chess.SQUARES)

    @classmethod
    def from_chess(cls, board: chess.BaseBoard) -> Board:
        return cls(board.piece_at(index) for index in chess.SQUARES)

    def to_chess(self) -> chess.BaseBoard:
        base = chess.BaseBoard(None)
        base.set_piece_map({index: piece for index, piece in enumerate(self._cells) if piece is not None})
        return base

    def board_fen(self) -> str:
        return self.to_chess().board_fen()

    def __getitem__(self, square: Square) -> chess.Piece | None:
        return self._cells[square.index]

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[tuple[Square, chess.Piece | None]]:
        """Iterate over (square, piece) cells in rank-major order."""
        for square in ALL_SQUARES:
            yield square, self._cells[square.index]

    def occupied(self) -> dict[Square, chess.Piece]:
        return {square: piece for square, piece in self if piece is not None}

    def diff(self, other: Board) -> list[Square]:
        """Squares whose occupancy differs between the two boards, rank-major."""
        return [square for square in ALL_SQUARES if self._cells[square.index] != other._cells[square.index]]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._cells == other._cells

    def __hash__(self) -> int:
        return hash(self._cells)

    def __repr__(self) -> str:
        return f"Board({self.board_fen()!r})"

    def __str__(self) -> str:
        rows = []
        for rank in range(BOARD_SIZE - 1, -1, -1):
            row = []
            for file in range(BOARD_SIZE):
                piece = self[Square(rank, file)]
                row.append(piece.symbol() if piece is not None else ".")
            rows.append(" ".join(row))
        return "\n".join(rows)
