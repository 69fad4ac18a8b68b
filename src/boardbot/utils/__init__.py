"""Shared utilities for boardbot."""

from boardbot.utils.config import BotConfig, load_config, save_config
from boardbot.utils.logging import setup_logging

__all__ = ["BotConfig", "load_config", "save_config", "setup_logging"]
