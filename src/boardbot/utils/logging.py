"""Logging configuration utilities."""

import sys
from pathlib import Path

from loguru import logger

# Module whose TRACE lines carry the raw engine conversation
PROTOCOL_MODULE = "boardbot.oracle"


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
    protocol_level: str | None = None,
) -> None:
    """Configure loguru for the bot.

    The oracle adapter logs every line it exchanges with the engine at TRACE.
    ``protocol_level`` sets the threshold for that module on its own, so the
    engine conversation can be captured without drowning the rest of the
    output, or silenced while the bot itself runs at DEBUG.

    Args:
        level: Minimum log level to display.
        log_file: Optional path to a log file.
        rotation: When to rotate the log file.
        retention: How long to keep old log files.
        protocol_level: Minimum level for the oracle adapter. Defaults to
            ``level``.
    """
    protocol_level = protocol_level or level
    levels = {"": level, PROTOCOL_MODULE: protocol_level}
    # The handler must let through whichever threshold is lower; the filter does the rest
    handler_level = min(logger.level(level).no, logger.level(protocol_level).no)

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=handler_level,
        filter=levels,
        format=(
            "<green>{time:HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    # Games can run for hours; keep a rotating file when asked to
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=handler_level,
            filter=levels,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation=rotation,
            retention=retention,
            compression="gz",
        )

    logger.debug(f"Logging configured at level: {level} (oracle protocol: {protocol_level})")
