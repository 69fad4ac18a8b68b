"""Pytest configuration and shared fixtures."""

import sys
from collections.abc import Callable
from pathlib import Path

import chess
import pytest

from boardbot.core.board import Board
from boardbot.core.errors import OracleProtocolError
from boardbot.core.moves import Move
from boardbot.oracle.uci_oracle import UCIOracle

FAKE_ENGINE = Path(__file__).parent / "fake_uci_engine.py"


def board_after(*moves: str, fen: str = chess.STARTING_FEN) -> Board:
    """Snapshot of the position reached by playing ``moves`` from ``fen``."""
    board = chess.Board(fen)
    for uci in moves:
        board.push_uci(uci)
    return Board.from_chess(board)


class ReplayOracle:
    """In-process oracle: replays its history and plays the first legal move.

    Mirrors the fake engine's 'legal' mode without spawning a process.
    """

    def __init__(self, fail_after: int | None = None) -> None:
        self._history: list[str] = []
        self.resets = 0
        self.queries = 0
        self.closed = False
        self._fail_after = fail_after

    @property
    def history(self) -> tuple[str, ...]:
        return tuple(self._history)

    def reset(self) -> None:
        self.resets += 1
        self._history.clear()

    def record(self, move: Move) -> None:
        self._history.append(move.uci())

    def best_move(self) -> Move:
        self.queries += 1
        if self._fail_after is not None and self.queries > self._fail_after:
            raise OracleProtocolError("Oracle exited while waiting for 'bestmove'")

        board = chess.Board()
        for uci in self._history:
            board.push_uci(uci)
        return Move.from_chess(sorted(board.legal_moves, key=lambda move: move.uci())[0])

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def replay_oracle() -> ReplayOracle:
    return ReplayOracle()


@pytest.fixture
def spawn_fake_oracle(tmp_path: Path) -> Callable[..., UCIOracle]:
    """Factory for UCIOracle instances running the scripted fake engine.

    Every oracle started through the factory is closed at teardown.
    """
    started: list[UCIOracle] = []

    def spawn(mode: str = "legal", *, move: str = "e2e4", timeout: float = 10.0, depth: int = 1) -> UCIOracle:
        args = [str(FAKE_ENGINE), "--mode", mode, "--move", move, "--log", str(tmp_path / "engine.log")]
        oracle = UCIOracle(sys.executable, args, depth=depth, timeout=timeout)
        started.append(oracle)
        return oracle

    yield spawn

    for oracle in started:
        oracle.close()


@pytest.fixture
def engine_log(tmp_path: Path) -> Callable[[], list[str]]:
    """Lines the fake engine received, in order."""

    def read() -> list[str]:
        path = tmp_path / "engine.log"
        return path.read_text().splitlines() if path.exists() else []

    return read
