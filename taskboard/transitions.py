"""
Board transitions: AppState in, AppState out.

Each function here is pure. It never mutates its input and returns the
input object itself when the operation does not apply (unknown task id,
empty title, unknown column), so callers can detect a no-op with `is`.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from .history import append_entry, description_change, title_change
from .schema import (
    COLUMNS,
    AppState,
    Board,
    ColumnId,
    FilterState,
    Task,
    TaskCreated,
    TaskDeleted,
    TaskMoved,
    TaskReordered,
    TaskUpdated,
)

logger = logging.getLogger(__name__)


def _with_board(state: AppState, board: Board, entry=None) -> AppState:
    history = append_entry(state.history, entry) if entry is not None else state.history
    return replace(state, board=board, history=history)


def _without(order: Dict[ColumnId, Tuple[str, ...]], task_id: str) -> Dict[ColumnId, Tuple[str, ...]]:
    """Drop task_id from every column (idempotent)."""
    return {column: tuple(tid for tid in order.get(column, ()) if tid != task_id) for column in COLUMNS}


def clamp_index(index: Optional[int], length: int) -> int:
    """Insertion point within [0, length]; None means append."""
    if index is None:
        return length
    return max(0, min(int(index), length))


# ── Task operations ──────────────────────────────────────────────────────────


def create_task(
    state: AppState,
    title: str,
    description: Optional[str] = None,
    *,
    task_id: str,
    now: datetime,
) -> Tuple[AppState, Optional[str]]:
    """
    Add a task at the top of the todo column.

    Returns (new_state, task_id), or (state, None) if the title is blank or
    task_id is already taken.
    """
    title = (title or "").strip()
    if not title:
        logger.debug("create_task ignored: empty title")
        return state, None

    board = state.board
    if task_id in board.tasks:
        logger.debug(f"create_task ignored: id {task_id} already exists")
        return state, None
    task = Task(id=task_id, title=title, description=description or None, created_at=now)
    order = dict(board.order)
    order[ColumnId.TODO] = (task_id,) + board.column_ids(ColumnId.TODO)
    new_board = replace(board, tasks={**board.tasks, task_id: task}, order=order)

    entry = TaskCreated(task_id=task_id, task_title=title, timestamp=now)
    return _with_board(state, new_board, entry), task_id


def move_task(
    state: AppState,
    task_id: str,
    target_column: Any,
    target_index: Optional[int] = None,
    *,
    now: datetime,
) -> AppState:
    """
    Place a task in target_column at target_index (clamped), or at the end.

    A move within the task's current column is logged as a reorder; a move
    to another column is logged as a move.
    """
    board = state.board
    column = ColumnId.from_str(target_column)
    if column is None:
        logger.debug(f"move_task ignored: unknown column {target_column!r}")
        return state
    task = board.tasks.get(task_id)
    if task is None:
        logger.debug(f"move_task ignored: no task {task_id}")
        return state
    current_column = board.column_of(task_id)
    if current_column is None:
        logger.debug(f"move_task ignored: {task_id} is not on any column")
        return state

    from_index = board.index_of(task_id, current_column)
    order = _without(board.order, task_id)
    target_ids = list(order[column])
    insert_index = clamp_index(target_index, len(target_ids))
    target_ids.insert(insert_index, task_id)
    order[column] = tuple(target_ids)

    if current_column is column:
        entry = TaskReordered(
            task_id=task_id,
            task_title=task.title,
            timestamp=now,
            column=column,
            from_index=from_index,
            to_index=insert_index,
        )
    else:
        entry = TaskMoved(
            task_id=task_id,
            task_title=task.title,
            timestamp=now,
            from_column=current_column,
            to_column=column,
        )
    return _with_board(state, replace(board, order=order), entry)


def update_task(
    state: AppState,
    task_id: str,
    updates: Mapping[str, Optional[str]],
    *,
    now: datetime,
) -> AppState:
    """
    Merge title and/or description into a task.

    Only keys present in `updates` are considered. A blank title rejects the
    whole update. An empty description clears it. History and updated_at
    change only when some field actually differs.
    """
    board = state.board
    old = board.tasks.get(task_id)
    if old is None:
        logger.debug(f"update_task ignored: no task {task_id}")
        return state

    changes = []
    fields: Dict[str, Any] = {}

    new_title = updates.get("title")
    if new_title is not None:
        new_title = new_title.strip()
        if not new_title:
            logger.debug(f"update_task ignored: empty title for {task_id}")
            return state
        if new_title != old.title:
            changes.append(title_change(old.title, new_title))
            fields["title"] = new_title

    if "description" in updates:
        new_description = updates["description"] or None
        if new_description != old.description:
            changes.append(description_change(old.description, new_description))
            fields["description"] = new_description

    if changes:
        fields["updated_at"] = now
    task = replace(old, **fields)
    new_board = replace(board, tasks={**board.tasks, task_id: task})

    entry = None
    if changes:
        entry = TaskUpdated(task_id=task_id, task_title=task.title, timestamp=now, changes=tuple(changes))
    return _with_board(state, new_board, entry)


def delete_task(state: AppState, task_id: str, *, now: datetime) -> AppState:
    """Remove a task and every reference to it in the column order."""
    board = state.board
    task = board.tasks.get(task_id)
    if task is None:
        logger.debug(f"delete_task ignored: no task {task_id}")
        return state

    tasks = {tid: t for tid, t in board.tasks.items() if tid != task_id}
    new_board = replace(board, tasks=tasks, order=_without(board.order, task_id))
    entry = TaskDeleted(task_id=task_id, task_title=task.title, timestamp=now)
    return _with_board(state, new_board, entry)


# ── Filter operations (never logged) ─────────────────────────────────────────


def _with_filters(state: AppState, filters: FilterState) -> AppState:
    return replace(state, board=replace(state.board, filters=filters))


def set_search_term(state: AppState, term: str) -> AppState:
    """Store the search term verbatim; trimming happens at match time."""
    return _with_filters(state, replace(state.board.filters, search_term=term))


def toggle_status_filter(state: AppState, column: Any) -> AppState:
    column_id = ColumnId.from_str(column)
    if column_id is None:
        logger.debug(f"toggle_status_filter ignored: unknown column {column!r}")
        return state
    filters = state.board.filters
    flags = dict(filters.status_filters)
    flags[column_id] = not filters.is_visible(column_id)
    return _with_filters(state, replace(filters, status_filters=flags))


def clear_filters(state: AppState) -> AppState:
    return _with_filters(state, FilterState())
