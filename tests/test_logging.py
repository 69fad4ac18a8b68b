"""Tests for logging setup."""

import sys

import pytest
from loguru import logger

from boardbot.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def read_log(path) -> str:
    # Removing the sinks closes the file
    logger.remove()
    return path.read_text()


class TestProtocolLevel:
    """The oracle's engine traffic has its own threshold."""

    def test_protocol_trace_without_bot_debug(self, tmp_path, spawn_fake_oracle) -> None:
        log_file = tmp_path / "bot.log"
        setup_logging("INFO", log_file=log_file, protocol_level="TRACE")

        oracle = spawn_fake_oracle(mode="fixed", move="e2e4")
        oracle.best_move()

        text = read_log(log_file)
        assert "UCI send: uci" in text
        assert "UCI recv: bestmove e2e4" in text
        assert "Logging configured" not in text

    def test_protocol_silenced_under_bot_debug(self, tmp_path, spawn_fake_oracle) -> None:
        log_file = tmp_path / "bot.log"
        setup_logging("DEBUG", log_file=log_file, protocol_level="WARNING")

        spawn_fake_oracle(mode="legal")
        logger.debug("bot detail")

        text = read_log(log_file)
        assert "Logging configured" in text
        assert "bot detail" in text
        assert "Oracle initialized" not in text
        assert "UCI send" not in text

    def test_defaults_to_main_level(self, tmp_path, spawn_fake_oracle) -> None:
        log_file = tmp_path / "bot.log"
        setup_logging("DEBUG", log_file=log_file)

        spawn_fake_oracle(mode="legal")

        text = read_log(log_file)
        assert "Oracle initialized" in text
        assert "UCI send" not in text
