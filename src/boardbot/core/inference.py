"""Recover the move played between two board snapshots.

The only evidence is which squares changed occupancy, so moves are
classified by how many squares differ:

    0  nothing happened
    2  ordinary move or capture (possibly promoting)
    3  en passant: origin, destination and the captured pawn's square
    4  castling: king and rook both move

Anything else means snapshots were missed or corrupted. Because pieces are
fungible and there is no rules engine to cross-check against, an
unexplainable diff is raised as ``BoardDesyncError`` rather than guessed.
"""

import chess
from loguru import logger

from boardbot.core.board import Board
from boardbot.core.errors import BoardDesyncError
from boardbot.core.moves import Move
from boardbot.core.squares import Square

KING_FILE = 4
KINGSIDE_FILE = 6
QUEENSIDE_FILE = 2
CASTLING_RANKS = (0, 7)


def infer_move(before: Board, after: Board) -> Move | None:
    """Work out the single move that turns ``before`` into ``after``.

    Args:
        before: Last known snapshot.
        after: Fresh snapshot.

    Returns:
        The move, or None if the boards are identical.

    Raises:
        BoardDesyncError: If the difference is not explained by one move.
    """
    changed = before.diff(after)
    count = len(changed)

    if count == 0:
        return None

    logger.debug(f"Changed squares: {[str(square) for square in changed]}")

    if count == 2:
        move = _standard_move(before, after, changed)
    elif count == 3:
        move = _en_passant_move(before, after, changed)
    elif count == 4:
        move = _castle_move(changed)
    else:
        raise BoardDesyncError(count, changed, "expected 0, 2, 3 or 4 changed squares")

    logger.debug(f"Inferred move {move} from {count} changed squares")
    return move


def _standard_move(before: Board, after: Board, changed: list[Square]) -> Move:
    # The vacated square is the origin; the occupied one is the destination
    vacated = [square for square in changed if after[square] is None]
    occupied = [square for square in changed if after[square] is not None]
    if len(vacated) != 1 or len(occupied) != 1:
        raise BoardDesyncError(len(changed), changed, "need one vacated and one occupied square")

    start, end = vacated[0], occupied[0]
    return Move(start, end, _promotion(before[start], after[end]))


def _en_passant_move(before: Board, after: Board, changed: list[Square]) -> Move:
    occupied = [square for square in changed if after[square] is not None]
    if len(occupied) != 1:
        raise BoardDesyncError(len(changed), changed, "en passant leaves exactly one occupied square")
    end = occupied[0]

    # The captured pawn shares the destination's file; the capturing pawn
    # started on the neighbouring file.
    off_file = [square for square in changed if square.file != end.file]
    on_file = [square for square in changed if square != end and square.file == end.file]
    if len(off_file) != 1 or len(on_file) != 1:
        raise BoardDesyncError(len(changed), changed, "squares do not form an en passant capture")

    start = off_file[0]
    return Move(start, end, _promotion(before[start], after[end]))


def _castle_move(changed: list[Square]) -> Move:
    homes = [rank for rank in CASTLING_RANKS if Square(rank, KING_FILE) in changed]
    if len(homes) != 1:
        raise BoardDesyncError(len(changed), changed, "castling must vacate exactly one king home square")
    rank = homes[0]

    if Square(rank, KINGSIDE_FILE) in changed:
        end_file = KINGSIDE_FILE
    elif Square(rank, QUEENSIDE_FILE) in changed:
        end_file = QUEENSIDE_FILE
    else:
        raise BoardDesyncError(len(changed), changed, "no castling destination for the king")

    return Move(Square(rank, KING_FILE), Square(rank, end_file))


def _promotion(origin: chess.Piece | None, destination: chess.Piece | None) -> chess.PieceType | None:
    """The destination's kind when it differs from what left the origin."""
    if origin is None or destination is None:
        return None
    if origin.piece_type == destination.piece_type:
        return None
    return destination.piece_type
