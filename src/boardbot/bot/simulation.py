"""Local table for self-play.

``LocalTable`` stands in for a live game site: it implements the observer,
actuator and portal collaborators on top of a python-chess board, with a
pluggable opponent. The bot only ever sees snapshots of that board, so a
self-play run exercises the same inference and oracle path as a live one.
"""

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import chess
import chess.pgn
from loguru import logger

from boardbot.core.board import Board
from boardbot.core.errors import ActuationError
from boardbot.core.moves import Move
from boardbot.oracle.uci_oracle import UCIOracle

Opponent = Callable[[chess.Board], chess.Move]


class GameTermination(Enum):
    """How a simulated game ended."""

    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    SEVENTYFIVE_MOVES = "seventyfive_moves"
    FIVEFOLD_REPETITION = "fivefold_repetition"
    FIFTY_MOVES = "fifty_moves"
    THREEFOLD_REPETITION = "threefold_repetition"
    MAX_PLIES = "max_plies"
    RESIGNATION = "resignation"
    ABANDONED = "abandoned"  # The bot requeued while the game was still running


@dataclass
class GameRecord:
    """Result of a single simulated game."""

    bot_color: chess.Color
    moves: list[str]
    result: str  # "1-0", "0-1" or "1/2-1/2"
    termination: GameTermination
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def bot_score(self) -> float:
        """1.0 for a bot win, 0.0 for a loss, 0.5 for a draw."""
        if self.result == "1/2-1/2":
            return 0.5
        white_won = self.result == "1-0"
        return 1.0 if white_won == (self.bot_color == chess.WHITE) else 0.0

    def to_pgn(self, bot_name: str = "boardbot", opponent_name: str = "opponent", round_num: int = 1) -> str:
        game = chess.pgn.Game()
        game.headers["Event"] = "boardbot self-play"
        game.headers["Site"] = "Local"
        game.headers["Date"] = datetime.now().strftime("%Y.%m.%d")
        game.headers["Round"] = str(round_num)
        game.headers["White"] = bot_name if self.bot_color == chess.WHITE else opponent_name
        game.headers["Black"] = opponent_name if self.bot_color == chess.WHITE else bot_name
        game.headers["Result"] = self.result
        game.headers["Termination"] = self.termination.value

        node = game
        for uci in self.moves:
            node = node.add_variation(chess.Move.from_uci(uci))
        return str(game)


def random_opponent(rng: random.Random | None = None) -> Opponent:
    """An opponent that plays a uniformly random legal move."""
    rng = rng or random.Random()

    def choose(board: chess.Board) -> chess.Move:
        return rng.choice(list(board.legal_moves))

    return choose


class OracleOpponent:
    """An opponent backed by a second UCI oracle process."""

    def __init__(self, oracle: UCIOracle) -> None:
        self.oracle = oracle

    def __call__(self, board: chess.Board) -> chess.Move:
        played = [move.uci() for move in board.move_stack]
        known = list(self.oracle.history)

        # Replay only what the oracle has not seen; start over on a new game
        if known != played[: len(known)]:
            self.oracle.reset()
            known = []
        for uci in played[len(known):]:
            self.oracle.record(Move.from_uci(uci))

        return self.oracle.best_move().to_chess()

    def close(self) -> None:
        self.oracle.close()


class LocalTable:
    """A simulated game site hosting one game at a time.

    The opponent moves lazily, when the bot polls ``is_my_turn`` during the
    opponent's turn, so a snapshot taken right after the bot plays shows
    exactly the bot's move.
    """

    def __init__(
        self,
        opponent: Opponent,
        *,
        bot_color: chess.Color = chess.WHITE,
        max_plies: int = 300,
        alternate_colors: bool = True,
    ) -> None:
        self.board = chess.Board()
        self.bot_color = bot_color
        self.max_plies = max_plies
        self.alternate_colors = alternate_colors
        self.games: list[GameRecord] = []

        self._opponent = opponent
        self._in_progress = False
        self._started = 0

    # SessionPortal

    def login(self) -> bool:
        self._start_game()
        return True

    def requeue(self) -> bool:
        """Start the next game, resigning the current one if it is still running."""
        if self._in_progress:
            self.resign(self.bot_color, GameTermination.ABANDONED)
        self._start_game()
        return True

    def resign(self, color: chess.Color, termination: GameTermination = GameTermination.RESIGNATION) -> None:
        """End the running game as a loss for ``color``."""
        if not self._in_progress:
            return
        self._finish("0-1" if color == chess.WHITE else "1-0", termination)

    # BoardObserver

    def get_board(self) -> Board:
        return Board.from_chess(self.board)

    def is_my_turn(self) -> bool:
        self._advance_opponent()
        return self._in_progress and self.board.turn == self.bot_color

    def is_match_in_progress(self) -> bool:
        return self._in_progress

    def get_player_color(self) -> chess.Color:
        return self.bot_color

    # MoveActuator

    def play(self, move: Move, color_is_flipped: bool) -> None:
        if color_is_flipped != (self.bot_color == chess.BLACK):
            raise ActuationError("Board orientation does not match the bot's color")
        if not self._in_progress or self.board.turn != self.bot_color:
            raise ActuationError(f"Cannot play {move}: not the bot's turn")

        chess_move = move.to_chess()
        if chess_move not in self.board.legal_moves:
            raise ActuationError(f"Illegal move {move} in {self.board.fen()}")

        self.board.push(chess_move)
        self._check_finished()

    def _start_game(self) -> None:
        if self._started and self.alternate_colors:
            self.bot_color = not self.bot_color
        self._started += 1

        self.board.reset()
        self._in_progress = True
        logger.info(f"Game {self._started} started, bot plays {chess.COLOR_NAMES[self.bot_color]}")

    def _advance_opponent(self) -> None:
        if not self._in_progress or self.board.turn == self.bot_color:
            return

        move = self._opponent(self.board.copy())
        if move not in self.board.legal_moves:
            msg = f"Opponent chose illegal move {move.uci()} in {self.board.fen()}"
            raise ValueError(msg)

        self.board.push(move)
        self._check_finished()

    def _check_finished(self) -> None:
        outcome = self.board.outcome(claim_draw=True)
        if outcome is not None:
            termination = GameTermination[outcome.termination.name]
            result = outcome.result()
        elif len(self.board.move_stack) >= self.max_plies:
            termination = GameTermination.MAX_PLIES
            result = "1/2-1/2"
        else:
            return
        self._finish(result, termination)

    def _finish(self, result: str, termination: GameTermination) -> None:
        record = GameRecord(
            bot_color=self.bot_color,
            moves=[move.uci() for move in self.board.move_stack],
            result=result,
            termination=termination,
        )
        self.games.append(record)
        self._in_progress = False
        logger.info(f"Game {self._started} over: {result} ({termination.value})")
