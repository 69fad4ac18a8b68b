"""UCI oracle adapter.

The oracle is an external UCI engine process (e.g. Stockfish) that picks
moves for us. It keeps no memory between queries that we rely on: every
request replays the whole game from the starting position, so the adapter
owns the authoritative move history for the current match.

Uses pexpect for interactive communication with the subprocess, which
handles PTY allocation and buffering correctly.
"""

import shutil
import time
from collections.abc import Sequence

import pexpect
from loguru import logger

from boardbot.core.errors import MoveDecodeError, OracleProtocolError
from boardbot.core.moves import Move

BESTMOVE = "bestmove"
LINE_END = r"\r?\n"

# Seconds to wait for the process to exit after 'quit' before killing it
QUIT_GRACE_PERIOD = 2.0


class UCIOracle:
    """Move history plus a long-lived UCI engine process.

    Example:
        with UCIOracle("stockfish", depth=12) as oracle:
            oracle.reset()
            oracle.record(Move.from_uci("e2e4"))
            reply = oracle.best_move()
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        depth: int = 10,
        timeout: float = 30.0,
        handshake: bool = True,
    ) -> None:
        """Start the oracle process.

        Args:
            command: Executable name or path of the UCI engine.
            args: Extra command-line arguments for the engine.
            depth: Search depth sent with every 'go' directive.
            timeout: Seconds to wait for any single reply before giving up.
            handshake: Perform the 'uci'/'isready' handshake on startup.

        Raises:
            FileNotFoundError: If the executable cannot be found.
            OracleProtocolError: If the process does not complete the handshake.
        """
        resolved = shutil.which(command)
        if resolved is None:
            raise FileNotFoundError(f"Oracle binary not found: {command}")

        self.command = resolved
        self.args = list(args)
        self.depth = depth
        self.timeout = timeout

        self._history: list[str] = []
        self._child: pexpect.spawn | None = None
        self._start_process(handshake)

    def _start_process(self, handshake: bool) -> None:
        logger.debug(f"Starting oracle: {self.command} {' '.join(self.args)}".rstrip())

        self._child = pexpect.spawn(
            self.command,
            self.args,
            encoding="utf-8",
            timeout=self.timeout,
            echo=False,
        )

        if not handshake:
            return

        try:
            self._send("uci")
            self._read_until("uciok")
            self._sync()
        except OracleProtocolError:
            self.close()
            raise

        logger.debug("Oracle initialized")

    @property
    def history(self) -> tuple[str, ...]:
        """Moves recorded so far this match, in coordinate notation."""
        return tuple(self._history)

    @property
    def running(self) -> bool:
        return self._child is not None and self._child.isalive()

    def reset(self) -> None:
        """Forget the current game and start a new one."""
        self._history.clear()
        self._send("ucinewgame")
        self._sync()

    def record(self, move: Move) -> None:
        """Append a move played by either side to the history."""
        self._history.append(move.uci())

    def position_command(self) -> str:
        if not self._history:
            return "position startpos"
        return f"position startpos moves {' '.join(self._history)}"

    def best_move(self) -> Move:
        """Ask the oracle for its move after the recorded history.

        Raises:
            OracleProtocolError: If the process died or never answered.
            MoveDecodeError: If the answer is not a valid move token.
        """
        self._send(self.position_command())
        self._send(f"go depth {self.depth}")

        line = self._read_until(BESTMOVE)
        tokens = line.split()
        if len(tokens) < 2:
            raise MoveDecodeError(line, "reply has no move")

        move = Move.from_uci(tokens[1])
        logger.debug(f"Oracle replied {move} after {len(self._history)} plies")
        return move

    def _sync(self) -> None:
        self._send("isready")
        self._read_until("readyok")

    def _send(self, command: str) -> None:
        """Send a directive to the oracle."""
        if not self.running:
            raise OracleProtocolError("Oracle process is not running")

        logger.trace(f"UCI send: {command}")
        try:
            self._child.sendline(command)
        except OSError as e:
            raise OracleProtocolError(f"Failed to send {command!r}: {e}") from e

    def _read_until(self, prefix: str) -> str:
        """Read output lines until one starts with ``prefix``.

        The whole wait is bounded by ``self.timeout`` seconds, however many
        unrelated lines (e.g. 'info ...') arrive in between.
        """
        if self._child is None:
            raise OracleProtocolError("Oracle process is not running")

        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OracleProtocolError(f"Timeout waiting for '{prefix}'")

            try:
                self._child.expect(LINE_END, timeout=remaining)
            except pexpect.TIMEOUT:
                raise OracleProtocolError(f"Timeout waiting for '{prefix}'")
            except pexpect.EOF:
                raise OracleProtocolError(f"Oracle exited while waiting for '{prefix}'")

            line = (self._child.before or "").strip()
            logger.trace(f"UCI recv: {line}")
            if line.startswith(prefix):
                return line

    def close(self) -> None:
        """Stop the oracle process. Safe to call more than once."""
        if self._child is None:
            return

        child, self._child = self._child, None
        try:
            if child.isalive():
                child.sendline("quit")
                child.expect(pexpect.EOF, timeout=QUIT_GRACE_PERIOD)
        except (pexpect.ExceptionPexpect, OSError) as e:
            logger.debug(f"Oracle did not quit cleanly: {e}")
        finally:
            child.close(force=True)
            logger.debug("Oracle stopped")

    def __enter__(self) -> "UCIOracle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
