"""Board snapshots, moves and move inference."""

from boardbot.core.board import Board
from boardbot.core.errors import (
    ActuationError,
    BoardBotError,
    BoardDesyncError,
    CollaboratorError,
    InvalidSquareError,
    LoginError,
    MoveDecodeError,
    OracleError,
    OracleProtocolError,
    RequeueError,
)
from boardbot.core.inference import infer_move
from boardbot.core.moves import Move
from boardbot.core.squares import Square

__all__ = [
    "ActuationError",
    "Board",
    "BoardBotError",
    "BoardDesyncError",
    "CollaboratorError",
    "InvalidSquareError",
    "LoginError",
    "Move",
    "MoveDecodeError",
    "OracleError",
    "OracleProtocolError",
    "RequeueError",
    "Square",
    "infer_move",
]
