"""
Filter engine: which task ids a column shows under the current filters.

Everything here is a pure function of a Board. Results are recomputed on
every call.
"""
from typing import List, Optional, Tuple

from .schema import COLUMNS, Board, ColumnId, FilterState, Task

HIDDEN_BY_FILTER = "Column hidden by filter"
NO_SEARCH_MATCHES = "No tasks match search criteria"


def matches_search(task: Task, term: str) -> bool:
    """Case-insensitive substring match on title or description."""
    needle = term.lower()
    if needle in task.title.lower():
        return True
    return bool(task.description) and needle in task.description.lower()


def visible_tasks(board: Board, column: ColumnId) -> Tuple[str, ...]:
    """
    Project a column's order list through the board's filters.

    A column whose status flag is off is hidden entirely. Otherwise a
    non-blank search term keeps only matching tasks; order is preserved.
    """
    ids = board.column_ids(column)
    filters = board.filters
    if not filters.is_visible(column):
        return ()

    term = filters.search_term.strip()
    if not term:
        return tuple(ids)
    return tuple(
        tid for tid in ids
        if tid in board.tasks and matches_search(board.tasks[tid], term)
    )


def empty_reason(board: Board, column: ColumnId) -> Optional[str]:
    """Why a non-empty column shows nothing, or None if nothing is hidden."""
    if not board.column_ids(column) or visible_tasks(board, column):
        return None
    if not board.filters.is_visible(column):
        return HIDDEN_BY_FILTER
    return NO_SEARCH_MATCHES


def hidden_columns(filters: FilterState) -> List[ColumnId]:
    return [column for column in COLUMNS if not filters.is_visible(column)]


def active_filter_count(filters: FilterState) -> int:
    """Blank-insensitive search term counts once; each hidden column counts once."""
    return (1 if filters.search_term.strip() else 0) + len(hidden_columns(filters))


def has_active_filters(filters: FilterState) -> bool:
    return active_filter_count(filters) > 0
