"""boardbot: play chess on a board you can only observe, with a UCI engine choosing the moves.

- `boardbot.core`: board snapshots, moves and move inference
- `boardbot.oracle`: the UCI oracle adapter
- `boardbot.bot`: match/session state machines and a local self-play table
"""

__version__ = "0.1.0"

from boardbot.core import Board, Move, Square, infer_move
from boardbot.utils import load_config, setup_logging

__all__ = [
    "Board",
    "Move",
    "Square",
    "__version__",
    "infer_move",
    "load_config",
    "setup_logging",
]
