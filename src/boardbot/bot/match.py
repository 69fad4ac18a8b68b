"""Per-match control loop.

    START ──light──> MY_TURN <──────────────┐
      │                 │                    │
      └──dark──> WAITING_FOR_TURN ──my turn──┘
                        ...
    (any state) ──match no longer in progress──> MATCH_OVER

Every iteration first checks for cancellation and whether the match is still
in progress, then performs one step and sleeps for the poll delay. Within a
turn the snapshot polls and the dispatch re-check it: a resignation or flag
fall mid-turn ends the match normally instead of failing the dispatch.

The oracle sees both sides' moves in order. The opponent's move is recovered
by diffing the last known snapshot against a fresh one; our own move is
recorded once it is visible on the board, and that snapshot becomes the new
reference.
"""

import random
from dataclasses import dataclass, field
from enum import Enum

import chess
from loguru import logger

from boardbot.bot.cancellation import CancellationToken
from boardbot.bot.collaborators import BoardObserver, MoveActuator, Oracle
from boardbot.core.board import Board
from boardbot.core.errors import ActuationError, BoardDesyncError
from boardbot.core.inference import infer_move
from boardbot.core.moves import Move
from boardbot.utils.config import MatchConfig


class MatchState(Enum):
    START = "start"
    MY_TURN = "my_turn"
    WAITING_FOR_TURN = "waiting_for_turn"
    MATCH_OVER = "match_over"


class MatchOutcome(Enum):
    """How the match loop ended."""

    FINISHED = "finished"  # The observer reported the match is over
    CANCELLED = "cancelled"


@dataclass
class MatchResult:
    """Summary of one match."""

    outcome: MatchOutcome
    color: chess.Color | None
    moves: list[str] = field(default_factory=list)

    @property
    def plies(self) -> int:
        return len(self.moves)


class _MatchCancelled(Exception):
    pass


class _MatchEnded(Exception):
    pass


class MatchRunner:
    """Plays one match from the first snapshot to the end of the game."""

    def __init__(
        self,
        observer: BoardObserver,
        actuator: MoveActuator,
        oracle: Oracle,
        config: MatchConfig | None = None,
        token: CancellationToken | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or MatchConfig()
        self.state = MatchState.START
        self.color: chess.Color | None = None
        self.last_board = Board.starting()

        self._observer = observer
        self._actuator = actuator
        self._oracle = oracle
        self._token = token or CancellationToken()
        self._rng = rng or random.Random()

    def run(self) -> MatchResult:
        """Run the match loop until the match ends or is cancelled.

        Raises:
            BoardDesyncError: If a snapshot cannot be explained by one move.
            OracleError: If the oracle fails or answers garbage.
            ActuationError: If our move could not be played.
        """
        try:
            while True:
                self._check_cancelled()
                self._check_in_progress()
                self._step()
                self._pause(self.config.poll_delay)
        except _MatchCancelled:
            logger.info("Match cancelled")
            return self._result(MatchOutcome.CANCELLED)
        except _MatchEnded:
            self._transition(MatchState.MATCH_OVER)

        logger.info(f"Match over after {len(self._oracle.history)} plies")
        return self._result(MatchOutcome.FINISHED)

    def _step(self) -> None:
        if self.state == MatchState.START:
            self._start()
        elif self.state == MatchState.WAITING_FOR_TURN:
            if self._observer.is_my_turn():
                self._transition(MatchState.MY_TURN)
        elif self.state == MatchState.MY_TURN:
            self._play_turn()
            self._transition(MatchState.WAITING_FOR_TURN)

    def _start(self) -> None:
        self._oracle.reset()
        self.last_board = Board.starting()
        self.color = self._observer.get_player_color()
        logger.info(f"Playing as {chess.COLOR_NAMES[self.color]}")

        if self.color == chess.WHITE:
            self._transition(MatchState.MY_TURN)
        else:
            self._transition(MatchState.WAITING_FOR_TURN)

    def _play_turn(self) -> None:
        if self._expects_opponent_move():
            opponent_move = self._observe_opponent_move()
            logger.info(f"Opponent played {opponent_move}")
            self._oracle.record(opponent_move)
        else:
            self._check_no_change()

        move = self._oracle.best_move()
        logger.info(f"Oracle chose {move}")

        self._think()
        self._check_cancelled()
        self._check_in_progress()
        try:
            self._actuator.play(move, color_is_flipped=self.color == chess.BLACK)
        except ActuationError:
            # The game may have ended while the move was being played
            self._check_in_progress()
            raise
        self._oracle.record(move)
        self.last_board = self._confirm_played(move)

    def _expects_opponent_move(self) -> bool:
        """Whether the opponent has moved since our last recorded move.

        White moves on even plies, black on odd ones, so the history length
        tells whose move is missing.
        """
        plies = len(self._oracle.history)
        return plies % 2 == (1 if self.color == chess.WHITE else 0)

    def _observe_opponent_move(self) -> Move:
        """Snapshot until the opponent's move shows up, then return it."""
        for _ in range(self.config.confirm_attempts):
            self._pause(self.config.settle_delay)
            self._check_in_progress()
            snapshot = self._observer.get_board()
            move = infer_move(self.last_board, snapshot)
            if move is not None:
                self.last_board = snapshot
                return move

        raise BoardDesyncError(0, [], "it is our turn but the opponent's move never appeared")

    def _check_no_change(self) -> None:
        """Before our first move as white the board must still be the start position."""
        self._pause(self.config.settle_delay)
        self._check_in_progress()
        snapshot = self._observer.get_board()
        move = infer_move(self.last_board, snapshot)
        if move is not None:
            changed = self.last_board.diff(snapshot)
            raise BoardDesyncError(len(changed), changed, f"unexpected move {move} before our first move")
        self.last_board = snapshot
        logger.debug("Starting position confirmed")

    def _confirm_played(self, move: Move) -> Board:
        """Wait until ``move`` is visible and return that snapshot."""
        before = self.last_board
        for _ in range(self.config.confirm_attempts):
            self._pause(self.config.settle_delay)
            self._check_in_progress()
            snapshot = self._observer.get_board()
            seen = infer_move(before, snapshot)
            if seen is None:
                continue
            if seen != move:
                changed = before.diff(snapshot)
                raise BoardDesyncError(len(changed), changed, f"played {move} but the board shows {seen}")
            return snapshot

        raise ActuationError(f"Move {move} did not appear on the board")

    def _think(self) -> None:
        if self.config.think_time_max <= 0:
            return
        delay = self._rng.uniform(self.config.think_time_min, self.config.think_time_max)
        logger.debug(f"Thinking for {delay:.1f}s")
        self._pause(delay)

    def _transition(self, state: MatchState) -> None:
        logger.debug(f"Match state: {self.state.value} -> {state.value}")
        self.state = state

    def _pause(self, seconds: float) -> None:
        if self._token.wait(seconds):
            raise _MatchCancelled

    def _check_cancelled(self) -> None:
        if self._token.cancelled:
            raise _MatchCancelled

    def _check_in_progress(self) -> None:
        """Raise ``_MatchEnded`` once the observer reports the match is over."""
        if not self._observer.is_match_in_progress():
            raise _MatchEnded

    def _result(self, outcome: MatchOutcome) -> MatchResult:
        return MatchResult(outcome=outcome, color=self.color, moves=list(self._oracle.history))
