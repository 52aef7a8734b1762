"""
Board engine: the single owner of the live AppState.

Every operation runs under one lock, swaps in the snapshot computed by
transitions.py, and notifies subscribers when the snapshot changed.
Reference and validation errors are silent no-ops; nothing here raises
on bad task ids or blank titles.
"""
import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from . import transitions
from .dragdrop import DropInstruction, resolve_drop
from .history import trim
from .schema import AppState, Board, ColumnId, HistoryEntry, utcnow

logger = logging.getLogger(__name__)

ID_ATTEMPTS = 5

Subscriber = Callable[[AppState], None]


def new_task_id() -> str:
    return uuid.uuid4().hex


class BoardEngine:
    """Owns the board and history, and publishes new snapshots to subscribers."""

    def __init__(
        self,
        initial_state: Optional[AppState] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_task_id,
    ):
        state = initial_state or AppState.empty()
        self._state = AppState(board=state.board, history=trim(state.history))
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []

    # ── Read access ──────────────────────────────────────────

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def board(self) -> Board:
        return self._state.board

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return self._state.history

    # ── Subscriptions ────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for new snapshots. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _emit(self, state: AppState) -> None:
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Snapshot subscriber {callback!r} failed: {e}")

    def _commit(self, new_state: AppState) -> AppState:
        """Swap in new_state (caller holds the lock) and notify if it differs."""
        if new_state is self._state or new_state == self._state:
            self._state = new_state
            return new_state
        self._state = new_state
        self._emit(new_state)
        return new_state

    # ── Task operations ──────────────────────────────────────

    def create_task(self, title: str, description: Optional[str] = None) -> Optional[str]:
        """Create a task at the top of todo. Returns its id, or None when nothing was created."""
        with self._lock:
            new_state, task_id = transitions.create_task(
                self._state,
                title,
                description,
                task_id=self._fresh_id(),
                now=self._clock(),
            )
            self._commit(new_state)
            if task_id:
                logger.info(f"Created task {task_id}")
            return task_id

    def _fresh_id(self) -> str:
        """Draw ids until one is unused; give up after ID_ATTEMPTS draws."""
        task_id = self._id_factory()
        for _ in range(ID_ATTEMPTS - 1):
            if task_id not in self._state.board.tasks:
                break
            logger.warning(f"Task id {task_id} already in use, drawing another")
            task_id = self._id_factory()
        return task_id

    def move_task(self, task_id: str, target_column, target_index: Optional[int] = None) -> AppState:
        with self._lock:
            return self._commit(
                transitions.move_task(self._state, task_id, target_column, target_index, now=self._clock())
            )

    def update_task(self, task_id: str, **updates: Optional[str]) -> AppState:
        """Update title and/or description, e.g. update_task(tid, title="New")."""
        with self._lock:
            return self._commit(transitions.update_task(self._state, task_id, updates, now=self._clock()))

    def delete_task(self, task_id: str) -> AppState:
        with self._lock:
            return self._commit(transitions.delete_task(self._state, task_id, now=self._clock()))

    def apply_drop(self, drop: DropInstruction) -> AppState:
        """Resolve a drop against the current board and move accordingly."""
        with self._lock:
            target = resolve_drop(self._state.board, drop)
            if target is None:
                logger.debug(
                    f"Drop ignored: {drop.target_task_id} is not in {drop.target_column.value}"
                )
                return self._state
            column, index = target
            return self.move_task(drop.source_task_id, column, index)

    # ── Filter operations ────────────────────────────────────

    def set_search_term(self, term: str) -> AppState:
        with self._lock:
            return self._commit(transitions.set_search_term(self._state, term))

    def toggle_status_filter(self, column: ColumnId) -> AppState:
        with self._lock:
            return self._commit(transitions.toggle_status_filter(self._state, column))

    def clear_filters(self) -> AppState:
        with self._lock:
            return self._commit(transitions.clear_filters(self._state))

    # ── Snapshot exchange ────────────────────────────────────

    def restore(self, state: AppState) -> AppState:
        """Replace the whole state, e.g. with one loaded by SnapshotStore."""
        with self._lock:
            return self._commit(AppState(board=state.board, history=trim(state.history)))
