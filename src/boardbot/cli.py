"""Command-line interface for boardbot."""

import random
from dataclasses import replace
from pathlib import Path
from typing import Optional

import chess
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from boardbot import __version__
from boardbot.bot.cancellation import CancellationToken, install_sigint_handler
from boardbot.bot.session import SessionRunner, SessionState
from boardbot.bot.simulation import GameRecord, LocalTable, OracleOpponent, random_opponent
from boardbot.core.board import Board
from boardbot.core.errors import BoardBotError
from boardbot.core.inference import infer_move
from boardbot.core.moves import Move
from boardbot.oracle.uci_oracle import UCIOracle
from boardbot.utils.config import BotConfig, OracleConfig, load_config
from boardbot.utils.logging import setup_logging

app = typer.Typer(
    name="boardbot",
    help="boardbot: relay moves between an observed chess board and a UCI engine",
    add_completion=False,
)
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="YAML config file")
OverrideOption = typer.Option(None, "--override", "-o", help="Config override, e.g. oracle.depth=12")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Debug logging")


def _setup(config: Optional[Path], overrides: Optional[list[str]], verbose: bool) -> BotConfig:
    cfg = load_config(config, overrides or [])
    setup_logging(
        "DEBUG" if verbose else cfg.logging.level,
        cfg.logging.file,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
        protocol_level=cfg.logging.protocol_level,
    )
    return cfg


def _spawn_oracle(cfg: OracleConfig) -> UCIOracle:
    return UCIOracle(cfg.command, cfg.args, depth=cfg.depth, timeout=cfg.timeout, handshake=cfg.handshake)


def _board_from_fen(fen: str) -> Board:
    """Board from a full FEN or just its piece-placement field."""
    fields = fen.split()
    if not fields:
        msg = "empty FEN"
        raise ValueError(msg)
    return Board.from_board_fen(fields[0])


@app.command()
def version() -> None:
    """Print version information."""
    console.print(f"[bold blue]boardbot[/bold blue] v{__version__}")


@app.command()
def infer(
    before: str = typer.Argument(..., help="FEN (or piece placement) before the move"),
    after: str = typer.Argument(..., help="FEN (or piece placement) after the move"),
) -> None:
    """Show which move turns one position into another."""
    try:
        move = infer_move(_board_from_fen(before), _board_from_fen(after))
    except ValueError as e:
        console.print(f"[red]Invalid position:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except BoardBotError as e:
        console.print(f"[red]Desync:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if move is None:
        console.print("[yellow]No move: positions are identical[/yellow]")
    else:
        console.print(f"[bold green]{move}[/bold green]")


@app.command()
def ask(
    moves: Optional[list[str]] = typer.Argument(None, help="Moves played so far, in coordinate notation"),
    config: Optional[Path] = ConfigOption,
    override: Optional[list[str]] = OverrideOption,
    verbose: bool = VerboseOption,
) -> None:
    """Ask the oracle for its move after the given moves from the start position."""
    cfg = _setup(config, override, verbose)

    try:
        history = [Move.from_uci(token) for token in moves or []]
        with _spawn_oracle(cfg.oracle) as oracle:
            oracle.reset()
            for move in history:
                oracle.record(move)
            best = oracle.best_move()
    except (BoardBotError, FileNotFoundError) as e:
        console.print(f"[red]Oracle query failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]{best}[/bold green]")


@app.command()
def selfplay(
    games: int = typer.Option(2, "--games", "-n", help="Number of games to play"),
    pgn: Optional[Path] = typer.Option(None, "--pgn", help="Write finished games to this PGN file"),
    realtime: bool = typer.Option(False, "--realtime", help="Keep the configured poll and settle delays"),
    config: Optional[Path] = ConfigOption,
    override: Optional[list[str]] = OverrideOption,
    verbose: bool = VerboseOption,
) -> None:
    """Play the full session loop against a local simulated opponent."""
    cfg = _setup(config, override, verbose)
    sim = cfg.simulation

    session_cfg = replace(cfg.session, max_matches=games)
    match_cfg = cfg.match
    if not realtime:
        # Nothing to wait for on a local board
        session_cfg = replace(session_cfg, poll_delay=0.0, requeue_delay=0.0)
        match_cfg = replace(match_cfg, poll_delay=0.0, settle_delay=0.0)

    rng = random.Random(sim.seed)
    if sim.opponent == "oracle":
        opponent_cfg = replace(
            cfg.oracle,
            command=sim.opponent_command or cfg.oracle.command,
            depth=sim.opponent_depth,
        )
        opponent = OracleOpponent(_spawn_oracle(opponent_cfg))
    else:
        opponent = random_opponent(rng)

    table = LocalTable(
        opponent,
        bot_color=chess.WHITE if sim.bot_color == "white" else chess.BLACK,
        max_plies=sim.max_plies,
    )

    token = CancellationToken()
    install_sigint_handler(token)

    runner = SessionRunner(
        table,
        table,
        table,
        lambda: _spawn_oracle(cfg.oracle),
        config=session_cfg,
        match_config=match_cfg,
        token=token,
        rng=rng,
    )
    try:
        result = runner.run()
    finally:
        if isinstance(opponent, OracleOpponent):
            opponent.close()

    console.print(_results_table(table.games))
    if result.abandoned:
        console.print(f"[yellow]{result.abandoned} match(es) abandoned[/yellow]")

    if pgn is not None and table.games:
        pgn.parent.mkdir(parents=True, exist_ok=True)
        pgn.write_text(
            "\n\n".join(game.to_pgn(round_num=i) for i, game in enumerate(table.games, start=1)) + "\n"
        )
        console.print(f"Saved {len(table.games)} games to {pgn}")

    if result.state == SessionState.ERROR:
        console.print(f"[red]Session ended in error:[/red] {escape(str(result.error))}")
        raise typer.Exit(code=1)


def _results_table(games: list[GameRecord]) -> Table:
    table = Table(title="Self-play results", show_header=True)
    table.add_column("Game", style="cyan")
    table.add_column("Bot color")
    table.add_column("Result", style="green")
    table.add_column("Termination")
    table.add_column("Plies", justify="right")

    for i, game in enumerate(games, start=1):
        table.add_row(
            str(i),
            chess.COLOR_NAMES[game.bot_color],
            game.result,
            game.termination.value,
            str(len(game.moves)),
        )

    if games:
        score = sum(game.bot_score for game in games)
        table.add_row("", "", f"{score:g} / {len(games)}", "bot score", "")
    return table


if __name__ == "__main__":
    app()
