# Task board: board state, transitions, history, and filtered views.
#
# Components:
#   schema.py      - Data model (Task, ColumnId, Board, AppState, history entries)
#   history.py     - Bounded newest-first action log and its rendering
#   filters.py     - Search / status projection of a board column
#   transitions.py - Pure snapshot-in, snapshot-out board operations
#   dragdrop.py    - Resolves drop instructions into concrete move targets
#   engine.py      - BoardEngine: owns the live snapshot, notifies subscribers
#   store.py       - SQLite snapshot persistence
#   config.py      - YAML-backed runtime configuration
#   server.py      - Flask JSON API over a BoardEngine
from .schema import AppState, Board, ColumnId, FilterState, Task
from .engine import BoardEngine
from .filters import visible_tasks

__version__ = "0.1.0"

__all__ = [
    "AppState",
    "Board",
    "BoardEngine",
    "ColumnId",
    "FilterState",
    "Task",
    "visible_tasks",
]
