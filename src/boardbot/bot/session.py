"""Top-level session loop.

    START -> LOGIN -> WAITING_FOR_MATCH -> MATCH_FOUND -> REQUEUE
                           ^                                 |
                           └─────────── requeued ────────────┘

LOGIN failures and collaborator errors end in ERROR, a terminal sink that
is reported but never recovered from automatically. Desyncs and oracle
failures only abandon the current match; an oracle failure also discards the
oracle process so the next match starts with a fresh one. Cancellation or the
configured match limit end the session in STOPPED.
"""

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from boardbot.bot.cancellation import CancellationToken
from boardbot.bot.collaborators import BoardObserver, MoveActuator, Oracle, SessionPortal
from boardbot.bot.match import MatchOutcome, MatchResult, MatchRunner
from boardbot.core.errors import (
    BoardDesyncError,
    CollaboratorError,
    LoginError,
    OracleError,
    RequeueError,
)
from boardbot.utils.config import MatchConfig, SessionConfig

OracleFactory = Callable[[], Oracle]


class SessionState(Enum):
    START = "start"
    LOGIN = "login"
    WAITING_FOR_MATCH = "waiting_for_match"
    MATCH_FOUND = "match_found"
    REQUEUE = "requeue"
    STOPPED = "stopped"
    ERROR = "error"


TERMINAL_STATES = frozenset({SessionState.STOPPED, SessionState.ERROR})


@dataclass
class SessionResult:
    """Final state of a session and what it played."""

    state: SessionState
    matches: list[MatchResult] = field(default_factory=list)
    abandoned: int = 0
    error: Exception | None = None


class SessionRunner:
    """Logs in, then plays and requeues matches until stopped."""

    def __init__(
        self,
        observer: BoardObserver,
        actuator: MoveActuator,
        portal: SessionPortal,
        oracle_factory: OracleFactory,
        config: SessionConfig | None = None,
        match_config: MatchConfig | None = None,
        token: CancellationToken | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.match_config = match_config or MatchConfig()
        self.state = SessionState.START

        self._observer = observer
        self._actuator = actuator
        self._portal = portal
        self._oracle_factory = oracle_factory
        self._oracle: Oracle | None = None
        self._token = token or CancellationToken()
        self._rng = rng or random.Random()

        self._matches: list[MatchResult] = []
        self._abandoned = 0
        self._error: Exception | None = None

    def run(self) -> SessionResult:
        """Run the session until it is stopped or hits the error sink."""
        try:
            while self.state not in TERMINAL_STATES:
                if self._token.cancelled:
                    self._transition(SessionState.STOPPED)
                    break

                self._step()
                if self.state in TERMINAL_STATES:
                    break

                if self._token.wait(self.config.poll_delay):
                    self._transition(SessionState.STOPPED)
        finally:
            self._close_oracle()

        return SessionResult(
            state=self.state,
            matches=list(self._matches),
            abandoned=self._abandoned,
            error=self._error,
        )

    @property
    def matches_played(self) -> int:
        return len(self._matches) + self._abandoned

    def _step(self) -> None:
        if self.state == SessionState.START:
            self._transition(SessionState.LOGIN)
        elif self.state == SessionState.LOGIN:
            self._login()
        elif self.state == SessionState.WAITING_FOR_MATCH:
            if self._observer.is_match_in_progress():
                logger.info("Match found")
                self._transition(SessionState.MATCH_FOUND)
            else:
                logger.debug("No match yet")
        elif self.state == SessionState.MATCH_FOUND:
            self._play_match()
        elif self.state == SessionState.REQUEUE:
            self._requeue()

    def _login(self) -> None:
        try:
            logged_in = self._portal.login()
        except LoginError as e:
            self._fail(e)
            return

        if not logged_in:
            self._fail(LoginError("Login was rejected"))
            return
        logger.info("Logged in")
        self._transition(SessionState.WAITING_FOR_MATCH)

    def _play_match(self) -> None:
        try:
            oracle = self._ensure_oracle()
        except (OracleError, OSError) as e:
            self._fail(e)
            return

        runner = MatchRunner(
            self._observer,
            self._actuator,
            oracle,
            config=self.match_config,
            token=self._token,
            rng=self._rng,
        )

        try:
            result = runner.run()
        except BoardDesyncError as e:
            logger.warning(f"Abandoning match, board out of sync: {e}")
            self._abandoned += 1
        except OracleError as e:
            logger.warning(f"Abandoning match, oracle failed: {e}")
            self._abandoned += 1
            # The oracle's state no longer matches any history we hold
            self._close_oracle()
        except CollaboratorError as e:
            self._fail(e)
            return
        else:
            self._matches.append(result)
            if result.outcome == MatchOutcome.CANCELLED:
                self._transition(SessionState.STOPPED)
                return
            logger.info(f"Match finished after {result.plies} plies")

        if self.config.max_matches is not None and self.matches_played >= self.config.max_matches:
            logger.info(f"Played {self.matches_played} matches, stopping")
            self._transition(SessionState.STOPPED)
        else:
            self._transition(SessionState.REQUEUE)

    def _requeue(self) -> None:
        if self._token.wait(self.config.requeue_delay):
            self._transition(SessionState.STOPPED)
            return

        try:
            requeued = self._portal.requeue()
        except RequeueError as e:
            self._fail(e)
            return

        if requeued:
            logger.info("Requeued for a new match")
            self._transition(SessionState.WAITING_FOR_MATCH)
        else:
            logger.debug("Requeue not possible yet, retrying")

    def _ensure_oracle(self) -> Oracle:
        if self._oracle is None:
            self._oracle = self._oracle_factory()
        return self._oracle

    def _close_oracle(self) -> None:
        if self._oracle is not None:
            oracle, self._oracle = self._oracle, None
            oracle.close()

    def _fail(self, error: Exception) -> None:
        logger.error(f"Session halted: {error}")
        self._error = error
        self._transition(SessionState.ERROR)

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"Session state: {self.state.value} -> {state.value}")
        self.state = state
