"""Tests for the per-match control loop against a local table."""

import random

import chess
import pytest
from conftest import ReplayOracle

from boardbot.bot.cancellation import CancellationToken
from boardbot.bot.match import MatchOutcome, MatchRunner, MatchState
from boardbot.bot.simulation import GameTermination, LocalTable, random_opponent
from boardbot.core.board import Board
from boardbot.core.errors import ActuationError, BoardDesyncError, OracleProtocolError
from boardbot.core.moves import Move
from boardbot.core.squares import Square
from boardbot.utils.config import MatchConfig

FAST = MatchConfig(poll_delay=0.0, settle_delay=0.0, confirm_attempts=3)


def make_table(bot_color: chess.Color = chess.WHITE, max_plies: int = 40, seed: int = 7) -> LocalTable:
    table = LocalTable(random_opponent(random.Random(seed)), bot_color=bot_color, max_plies=max_plies)
    table.login()
    return table


class GlitchyTable(LocalTable):
    """Loses both white rooks from every snapshot once the opponent has moved."""

    def get_board(self) -> Board:
        board = super().get_board()
        if len(self.board.move_stack) < 2:
            return board
        missing = {Square.from_algebraic("a1"), Square.from_algebraic("h1")}
        return Board.from_occupancy((sq, piece) for sq, piece in board.occupied().items() if sq not in missing)


class FrozenTable(LocalTable):
    """Accepts moves but never shows them."""

    def play(self, move: Move, color_is_flipped: bool) -> None:
        pass


class MisclickTable(LocalTable):
    """Plays a different legal move from the one asked for."""

    def play(self, move: Move, color_is_flipped: bool) -> None:
        wanted = move.to_chess()
        other = next(m for m in self.board.legal_moves if m != wanted)
        self.board.push(other)


class TestFullMatch:
    """Matches played to completion."""

    @pytest.mark.parametrize("color", [chess.WHITE, chess.BLACK])
    def test_plays_until_game_over(self, replay_oracle: ReplayOracle, color: chess.Color) -> None:
        table = make_table(bot_color=color)
        result = MatchRunner(table, table, replay_oracle, config=FAST).run()

        assert result.outcome == MatchOutcome.FINISHED
        assert result.color == color
        assert not table.is_match_in_progress()
        assert len(table.games) == 1

    @pytest.mark.parametrize("color", [chess.WHITE, chess.BLACK])
    def test_oracle_sees_every_move_in_order(self, replay_oracle: ReplayOracle, color: chess.Color) -> None:
        """Both sides' moves reach the oracle; only a final opponent move may be missing."""
        table = make_table(bot_color=color)
        result = MatchRunner(table, table, replay_oracle, config=FAST).run()

        played = table.games[0].moves
        assert result.moves == list(replay_oracle.history)
        assert played[: len(result.moves)] == result.moves
        assert len(played) - len(result.moves) in (0, 1)

    def test_state_ends_match_over(self, replay_oracle: ReplayOracle) -> None:
        table = make_table(max_plies=6)
        runner = MatchRunner(table, table, replay_oracle, config=FAST)
        runner.run()
        assert runner.state == MatchState.MATCH_OVER

    def test_oracle_reset_once_per_match(self, replay_oracle: ReplayOracle) -> None:
        table = make_table(max_plies=6)
        MatchRunner(table, table, replay_oracle, config=FAST).run()
        assert replay_oracle.resets == 1

    def test_white_asks_oracle_on_each_turn(self, replay_oracle: ReplayOracle) -> None:
        table = make_table(bot_color=chess.WHITE, max_plies=10)
        MatchRunner(table, table, replay_oracle, config=FAST).run()
        # Ten plies, every odd one ours
        assert replay_oracle.queries == 5

    def test_no_match_in_progress(self, replay_oracle: ReplayOracle) -> None:
        table = LocalTable(random_opponent(random.Random(0)))
        result = MatchRunner(table, table, replay_oracle, config=FAST).run()

        assert result.outcome == MatchOutcome.FINISHED
        assert result.plies == 0
        assert replay_oracle.resets == 0

    def test_think_time(self, replay_oracle: ReplayOracle) -> None:
        config = MatchConfig(poll_delay=0.0, settle_delay=0.0, think_time_min=0.001, think_time_max=0.002)
        table = make_table(max_plies=4)
        result = MatchRunner(table, table, replay_oracle, config=config, rng=random.Random(3)).run()
        assert result.outcome == MatchOutcome.FINISHED


class TestGameEndsMidTurn:
    """The game can end between our turn starting and our move landing."""

    def test_opponent_resigns_during_dispatch(self, replay_oracle: ReplayOracle) -> None:
        class ResignBeforeMoveTable(LocalTable):
            def play(self, move: Move, color_is_flipped: bool) -> None:
                if len(self.board.move_stack) == 4:
                    self.resign(not self.bot_color)
                super().play(move, color_is_flipped)

        table = ResignBeforeMoveTable(random_opponent(random.Random(7)))
        table.login()
        runner = MatchRunner(table, table, replay_oracle, config=FAST)
        result = runner.run()

        assert result.outcome == MatchOutcome.FINISHED
        assert runner.state == MatchState.MATCH_OVER
        assert result.plies == 4
        assert table.games[0].termination == GameTermination.RESIGNATION

    def test_opponent_resigns_while_oracle_thinks(self) -> None:
        """The game is over by the time the oracle answers; nothing is dispatched."""
        table = make_table()

        class ResignOnQuery(ReplayOracle):
            def best_move(self) -> Move:
                move = super().best_move()
                if self.queries == 3:
                    table.resign(chess.BLACK)
                return move

        oracle = ResignOnQuery()
        result = MatchRunner(table, table, oracle, config=FAST).run()

        assert result.outcome == MatchOutcome.FINISHED
        assert oracle.queries == 3
        assert len(table.board.move_stack) == 4
        assert result.moves == [move.uci() for move in table.board.move_stack]

    def test_opponent_resigns_while_we_wait_for_their_move(self, replay_oracle: ReplayOracle) -> None:
        class SlowDisplayTable(LocalTable):
            """Resigns the opponent instead of showing their second move."""

            def get_board(self) -> Board:
                if self.is_match_in_progress() and len(self.board.move_stack) == 4:
                    self.resign(not self.bot_color)
                    shown = self.board.copy()
                    shown.pop()
                    return Board.from_chess(shown)
                return super().get_board()

        table = SlowDisplayTable(random_opponent(random.Random(7)))
        table.login()
        result = MatchRunner(table, table, replay_oracle, config=FAST).run()

        assert result.outcome == MatchOutcome.FINISHED
        assert result.plies == 3
        assert table.games[0].result == "1-0"

    def test_our_move_ends_the_game(self, replay_oracle: ReplayOracle) -> None:
        table = make_table(max_plies=5)
        result = MatchRunner(table, table, replay_oracle, config=FAST).run()

        assert result.outcome == MatchOutcome.FINISHED
        assert result.plies == 5
        assert table.games[0].termination == GameTermination.MAX_PLIES


class TestCancellation:
    """A stop request ends the match at the next check."""

    def test_cancelled_before_start(self, replay_oracle: ReplayOracle) -> None:
        token = CancellationToken()
        token.cancel()
        table = make_table()

        result = MatchRunner(table, table, replay_oracle, config=FAST, token=token).run()

        assert result.outcome == MatchOutcome.CANCELLED
        assert result.plies == 0
        assert replay_oracle.queries == 0

    def test_cancelled_mid_match(self, replay_oracle: ReplayOracle) -> None:
        token = CancellationToken()

        class CancellingTable(LocalTable):
            def play(self, move: Move, color_is_flipped: bool) -> None:
                super().play(move, color_is_flipped)
                if len(self.board.move_stack) >= 5:
                    token.cancel()

        table = CancellingTable(random_opponent(random.Random(1)))
        table.login()
        result = MatchRunner(table, table, replay_oracle, config=FAST, token=token).run()

        assert result.outcome == MatchOutcome.CANCELLED
        assert table.is_match_in_progress()
        assert result.plies == 5


class TestFailures:
    """Match-fatal and session-fatal conditions propagate out of run()."""

    def test_board_changed_before_first_move(self, replay_oracle: ReplayOracle) -> None:
        table = make_table()
        table.board.push_uci("e2e4")
        table.board.push_uci("e7e5")

        with pytest.raises(BoardDesyncError) as excinfo:
            MatchRunner(table, table, replay_oracle, config=FAST).run()
        assert excinfo.value.count == 4

    def test_corrupted_snapshot(self, replay_oracle: ReplayOracle) -> None:
        table = GlitchyTable(random_opponent(random.Random(2)))
        table.login()

        with pytest.raises(BoardDesyncError) as excinfo:
            MatchRunner(table, table, replay_oracle, config=FAST).run()
        assert excinfo.value.count == 4

    def test_move_never_appears(self, replay_oracle: ReplayOracle) -> None:
        table = FrozenTable(random_opponent(random.Random(0)))
        table.login()

        with pytest.raises(ActuationError, match="did not appear"):
            MatchRunner(table, table, replay_oracle, config=FAST).run()

    def test_wrong_move_appears(self, replay_oracle: ReplayOracle) -> None:
        table = MisclickTable(random_opponent(random.Random(0)))
        table.login()

        with pytest.raises(BoardDesyncError, match="board shows"):
            MatchRunner(table, table, replay_oracle, config=FAST).run()

    def test_oracle_failure(self) -> None:
        oracle = ReplayOracle(fail_after=2)
        table = make_table()

        with pytest.raises(OracleProtocolError):
            MatchRunner(table, table, oracle, config=FAST).run()
        assert len(oracle.history) == 4
