"""Match and session state machines and their collaborators."""

from boardbot.bot.cancellation import CancellationToken, install_sigint_handler
from boardbot.bot.match import MatchOutcome, MatchResult, MatchRunner, MatchState
from boardbot.bot.session import SessionResult, SessionRunner, SessionState
from boardbot.bot.simulation import GameRecord, LocalTable, OracleOpponent, random_opponent

__all__ = [
    "CancellationToken",
    "GameRecord",
    "LocalTable",
    "MatchOutcome",
    "MatchResult",
    "MatchRunner",
    "MatchState",
    "OracleOpponent",
    "SessionResult",
    "SessionRunner",
    "SessionState",
    "install_sigint_handler",
    "random_opponent",
]
