"""Configuration schema and loading utilities.

The dataclasses below are the single source of truth for every option.
``load_config`` layers, in order: the schema defaults, an optional YAML
file, and CLI-style dotlist overrides (e.g. ``oracle.depth=12``).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from omegaconf import OmegaConf


@dataclass
class OracleConfig:
    """How to start and query the UCI oracle."""

    command: str = "stockfish"
    args: list[str] = field(default_factory=list)
    depth: int = 10
    timeout: float = 30.0  # Seconds to wait for any single reply
    handshake: bool = True

    def __post_init__(self) -> None:
        if self.depth < 1:
            msg = f"oracle.depth must be positive, got {self.depth}"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = f"oracle.timeout must be positive, got {self.timeout}"
            raise ValueError(msg)


@dataclass
class MatchConfig:
    """Timing of the per-match loop (all values in seconds)."""

    poll_delay: float = 0.5
    settle_delay: float = 0.15  # Let the board redraw before taking a snapshot
    confirm_attempts: int = 20  # Snapshots to wait for our own move to show up
    think_time_min: float = 0.0
    think_time_max: float = 0.0

    def __post_init__(self) -> None:
        if self.confirm_attempts < 1:
            msg = f"match.confirm_attempts must be at least 1, got {self.confirm_attempts}"
            raise ValueError(msg)
        if self.think_time_min > self.think_time_max:
            msg = (
                f"match.think_time_min ({self.think_time_min}) must not exceed "
                f"match.think_time_max ({self.think_time_max})"
            )
            raise ValueError(msg)


@dataclass
class SessionConfig:
    """Timing and limits of the top-level session loop."""

    poll_delay: float = 1.5
    requeue_delay: float = 10.0
    max_matches: Optional[int] = None  # None = keep playing until cancelled


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None
    rotation: str = "10 MB"
    retention: str = "1 week"
    protocol_level: Optional[str] = None  # Threshold for oracle traffic; None follows level


@dataclass
class SimulationConfig:
    """Local table used by the 'selfplay' command."""

    opponent: str = "random"  # "random" | "oracle"
    opponent_command: Optional[str] = None
    opponent_depth: int = 1
    bot_color: str = "white"  # Color of the first game; alternates afterwards
    seed: Optional[int] = None
    max_plies: int = 300

    def __post_init__(self) -> None:
        if self.opponent not in ("random", "oracle"):
            msg = f"Unknown simulation.opponent: {self.opponent!r}"
            raise ValueError(msg)
        if self.bot_color not in ("white", "black"):
            msg = f"simulation.bot_color must be 'white' or 'black', got {self.bot_color!r}"
            raise ValueError(msg)


@dataclass
class BotConfig:
    """Top-level configuration combining all sub-configs."""

    oracle: OracleConfig = field(default_factory=OracleConfig)
    match: MatchConfig = field(default_factory=MatchConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)


def load_config(config_path: str | Path | None = None, overrides: list[str] | None = None) -> BotConfig:
    """Load the configuration with optional file and overrides.

    Args:
        config_path: Optional path to a YAML configuration file.
        overrides: Optional list of CLI-style overrides (e.g., ["oracle.depth=12"]).

    Returns:
        Validated BotConfig.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
    """
    layers = [OmegaConf.structured(BotConfig)]

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
        layers.append(OmegaConf.load(config_path))

    if overrides:
        layers.append(OmegaConf.from_dotlist(overrides))

    merged = OmegaConf.merge(*layers)
    return OmegaConf.to_object(merged)


def save_config(config: BotConfig, path: str | Path) -> None:
    """Save a configuration to a YAML file.

    Args:
        config: Configuration to save.
        path: Path to save the configuration to.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    OmegaConf.save(OmegaConf.structured(config), path)
