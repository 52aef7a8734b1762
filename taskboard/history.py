"""
History log: the last few board actions, newest first.

The log is a plain tuple owned by AppState. Appending returns a new tuple
capped at HISTORY_LENGTH, dropping the oldest entries.
"""
from datetime import datetime
from typing import Iterable, Optional, Tuple

from .schema import (
    HistoryEntry,
    TaskCreated,
    TaskDeleted,
    TaskMoved,
    TaskReordered,
    TaskUpdated,
    utcnow,
)

HISTORY_LENGTH = 5

EMPTY_VALUE = "empty"


def append_entry(history: Tuple[HistoryEntry, ...], entry: HistoryEntry) -> Tuple[HistoryEntry, ...]:
    """Insert entry at the front and keep only the newest HISTORY_LENGTH."""
    return ((entry,) + tuple(history))[:HISTORY_LENGTH]


def trim(history: Iterable[HistoryEntry]) -> Tuple[HistoryEntry, ...]:
    return tuple(history)[:HISTORY_LENGTH]


# ── Change strings ───────────────────────────────────────────────────────────


def title_change(old: str, new: str) -> str:
    return f'title: "{old}" → "{new}"'


def description_change(old: Optional[str], new: Optional[str]) -> str:
    return f'description: "{old or EMPTY_VALUE}" → "{new or EMPTY_VALUE}"'


# ── Rendering ────────────────────────────────────────────────────────────────


def describe(entry: HistoryEntry) -> str:
    """One-line human-readable description of a history entry."""
    if isinstance(entry, TaskCreated):
        return f'Created task "{entry.task_title}"'
    if isinstance(entry, TaskMoved):
        return f'Moved "{entry.task_title}" from {entry.from_column.label} to {entry.to_column.label}'
    if isinstance(entry, TaskReordered):
        return f'Reordered "{entry.task_title}" in {entry.column.label}'
    if isinstance(entry, TaskUpdated):
        return f'Updated "{entry.task_title}": {", ".join(entry.changes)}'
    if isinstance(entry, TaskDeleted):
        return f'Deleted task "{entry.task_title}"'
    raise TypeError(f"Unhandled history entry: {type(entry).__name__}")


def format_timestamp(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Relative age of an entry: "Just now", "5m ago", "3h ago", "2d ago", or the date."""
    now = now or utcnow()
    elapsed = (now - timestamp).total_seconds()
    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return timestamp.date().isoformat()
