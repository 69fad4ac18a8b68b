"""Interfaces of the collaborators the state machines drive.

Anything that touches a live board UI (reading pieces, moving the pointer,
logging in, starting a new game) lives behind these protocols.
``boardbot.bot.simulation.LocalTable`` implements all three against a local
python-chess board.
"""

from typing import Protocol

import chess

from boardbot.core.board import Board
from boardbot.core.moves import Move


class BoardObserver(Protocol):
    """Read-only view of the match in progress."""

    def get_board(self) -> Board: ...

    def is_my_turn(self) -> bool: ...

    def is_match_in_progress(self) -> bool: ...

    def get_player_color(self) -> chess.Color: ...


class MoveActuator(Protocol):
    """Plays a move on the board.

    ``color_is_flipped`` is True when the board is drawn from the dark
    side, which mirrors every square on screen. Failures raise
    ``ActuationError``.
    """

    def play(self, move: Move, color_is_flipped: bool) -> None: ...


class SessionPortal(Protocol):
    """Account-level actions.

    ``login`` raises ``LoginError`` and ``requeue`` raises ``RequeueError`` on
    unrecoverable failures; a False return means "not yet, try again".
    """

    def login(self) -> bool: ...

    def requeue(self) -> bool: ...


class Oracle(Protocol):
    """The move oracle as seen by the match loop."""

    @property
    def history(self) -> tuple[str, ...]: ...

    def reset(self) -> None: ...

    def record(self, move: Move) -> None: ...

    def best_move(self) -> Move: ...

    def close(self) -> None: ...
