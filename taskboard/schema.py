"""
Task board schema.

A board is a table of tasks plus, for each of the three fixed columns, an
ordered list of task ids. The columns partition the live tasks:

  tasks  = {id -> Task}
  order  = {todo: [...], inprogress: [...], done: [...]}

Every snapshot type here is frozen. Operations in transitions.py build new
snapshots instead of mutating these in place.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

SNAPSHOT_VERSION = 1
PERSIST_KEY = "app.store"


class ColumnId(Enum):
    """The closed set of board columns, in display order."""
    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"

    @classmethod
    def from_str(cls, value: Any) -> Optional["ColumnId"]:
        """Parse an external column name. Returns None if it is not a column."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def label(self) -> str:
        """Name used in history text ("To Do", "In Progress", "Done")."""
        return HISTORY_LABELS[self]

    @property
    def filter_label(self) -> str:
        """Name used next to the status checkboxes."""
        return FILTER_LABELS[self]


COLUMNS: Tuple[ColumnId, ...] = tuple(ColumnId)

HISTORY_LABELS: Dict[ColumnId, str] = {
    ColumnId.TODO: "To Do",
    ColumnId.IN_PROGRESS: "In Progress",
    ColumnId.DONE: "Done",
}

FILTER_LABELS: Dict[ColumnId, str] = {
    ColumnId.TODO: "To-do",
    ColumnId.IN_PROGRESS: "In progress",
    ColumnId.DONE: "Done",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Any) -> Optional[datetime]:
    """ISO string to aware datetime. Raises ValueError for naive or garbled values."""
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp {value!r} has no timezone")
    return parsed


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ── Task ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Task:
    """One card on the board."""
    id: str
    title: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize a task. Raises ValueError/KeyError on malformed data."""
        title = data["title"]
        if not isinstance(title, str) or not title.strip():
            raise ValueError(f"Task {data.get('id')!r} has an empty title")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise ValueError(f"Task {data.get('id')!r} has a non-string description")
        return cls(
            id=str(data["id"]),
            title=title,
            description=description or None,
            created_at=_parse_time(data.get("created_at")) or utcnow(),
            updated_at=_parse_time(data.get("updated_at")),
        )


# ── Filters ──────────────────────────────────────────────────────────────────


def default_status_filters() -> Dict[ColumnId, bool]:
    return {column: True for column in COLUMNS}


@dataclass(frozen=True)
class FilterState:
    """Search term plus per-column visibility flags."""
    search_term: str = ""
    status_filters: Mapping[ColumnId, bool] = field(default_factory=default_status_filters)

    def __post_init__(self):
        object.__setattr__(self, "status_filters", MappingProxyType(dict(self.status_filters)))

    def is_visible(self, column: ColumnId) -> bool:
        return self.status_filters.get(column, True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search_term": self.search_term,
            "status_filters": {c.value: self.is_visible(c) for c in COLUMNS},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FilterState":
        if not data:
            return cls()
        search_term = data.get("search_term", "")
        if not isinstance(search_term, str):
            raise ValueError("search_term must be a string")
        raw_flags = data.get("status_filters") or {}
        if not isinstance(raw_flags, dict):
            raise ValueError("status_filters must be a mapping")
        flags = default_status_filters()
        for key, value in raw_flags.items():
            column = ColumnId.from_str(key)
            if column is None:
                continue
            if not isinstance(value, bool):
                raise ValueError(f"status filter {key!r} must be a boolean, got {value!r}")
            flags[column] = value
        return cls(search_term=search_term, status_filters=flags)


# ── Board ────────────────────────────────────────────────────────────────────


def empty_order() -> Dict[ColumnId, Tuple[str, ...]]:
    return {column: () for column in COLUMNS}


@dataclass(frozen=True)
class Board:
    """Task table, per-column ordering, and the current filter settings."""
    tasks: Mapping[str, Task] = field(default_factory=dict)
    order: Mapping[ColumnId, Tuple[str, ...]] = field(default_factory=empty_order)
    filters: FilterState = field(default_factory=FilterState)

    def __post_init__(self):
        # Snapshots are shared with presentation code; expose read-only mappings.
        object.__setattr__(self, "tasks", MappingProxyType(dict(self.tasks)))
        object.__setattr__(
            self, "order", MappingProxyType({c: tuple(ids) for c, ids in self.order.items()})
        )

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    def column_ids(self, column: ColumnId) -> Tuple[str, ...]:
        return self.order.get(column, ())

    def column_of(self, task_id: str) -> Optional[ColumnId]:
        """The column whose order list holds task_id, or None."""
        for column in COLUMNS:
            if task_id in self.column_ids(column):
                return column
        return None

    def index_of(self, task_id: str, column: ColumnId) -> int:
        """Position of task_id in column, or -1 when it is not there."""
        ids = self.column_ids(column)
        return ids.index(task_id) if task_id in ids else -1

    def invariant_violations(self) -> List[str]:
        """
        Check referential consistency between tasks and order.

        Returns a list of human-readable problems; empty means consistent.
        """
        problems: List[str] = []
        seen: Dict[str, ColumnId] = {}
        for column in COLUMNS:
            ids = self.column_ids(column)
            if len(set(ids)) != len(ids):
                problems.append(f"duplicate ids in {column.value}")
            for tid in ids:
                if tid not in self.tasks:
                    problems.append(f"{tid} in {column.value} has no task record")
                if tid in seen and seen[tid] is not column:
                    problems.append(f"{tid} is in both {seen[tid].value} and {column.value}")
                seen.setdefault(tid, column)
        for column in self.order:
            if column not in COLUMNS:
                problems.append(f"unknown column {column!r}")
        return problems

    def is_consistent(self) -> bool:
        return not self.invariant_violations()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": {tid: task.to_dict() for tid, task in self.tasks.items()},
            "order": {c.value: list(self.column_ids(c)) for c in COLUMNS},
            "filters": self.filters.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Board":
        """Deserialize and validate a board. Raises ValueError if inconsistent."""
        tasks = {}
        for tid, raw in data["tasks"].items():
            task = Task.from_dict(raw)
            if task.id != tid:
                raise ValueError(f"Task key {tid!r} does not match id {task.id!r}")
            tasks[tid] = task

        raw_order = data["order"]
        order = empty_order()
        for key, ids in raw_order.items():
            column = ColumnId.from_str(key)
            if column is None:
                raise ValueError(f"Unknown column {key!r}")
            if not isinstance(ids, list):
                raise ValueError(f"Order for {key!r} is not a list")
            order[column] = tuple(str(tid) for tid in ids)

        board = cls(tasks=tasks, order=order, filters=FilterState.from_dict(data.get("filters")))
        problems = board.invariant_violations()
        if problems:
            raise ValueError("; ".join(problems))
        return board


# ── History entries ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HistoryEntry:
    """Base for the closed set of logged actions. Subclasses set `type`."""
    type: ClassVar[str] = ""

    task_id: str
    task_title: str
    timestamp: datetime

    def _payload(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "task_id": self.task_id,
            "task_title": self.task_title,
            "timestamp": _format_time(self.timestamp),
        }
        data.update(self._payload())
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "HistoryEntry":
        """Deserialize any entry by its `type` tag. Raises ValueError if unknown."""
        entry_cls = ENTRY_TYPES.get(data.get("type"))
        if entry_cls is None:
            raise ValueError(f"Unknown history entry type: {data.get('type')!r}")
        timestamp = _parse_time(data.get("timestamp"))
        if timestamp is None:
            raise ValueError("History entry has no timestamp")
        common = {
            "task_id": str(data["task_id"]),
            "task_title": str(data["task_title"]),
            "timestamp": timestamp,
        }
        return entry_cls._from_payload(common, data)

    @classmethod
    def _from_payload(cls, common: Dict[str, Any], data: Dict[str, Any]) -> "HistoryEntry":
        return cls(**common)


@dataclass(frozen=True)
class TaskCreated(HistoryEntry):
    type: ClassVar[str] = "task_created"


@dataclass(frozen=True)
class TaskMoved(HistoryEntry):
    type: ClassVar[str] = "task_moved"

    from_column: ColumnId
    to_column: ColumnId

    def _payload(self) -> Dict[str, Any]:
        return {"from_column": self.from_column.value, "to_column": self.to_column.value}

    @classmethod
    def _from_payload(cls, common, data):
        return cls(
            **common,
            from_column=ColumnId(data["from_column"]),
            to_column=ColumnId(data["to_column"]),
        )


@dataclass(frozen=True)
class TaskReordered(HistoryEntry):
    type: ClassVar[str] = "task_reordered"

    column: ColumnId
    from_index: int
    to_index: int

    def _payload(self) -> Dict[str, Any]:
        return {"column": self.column.value, "from_index": self.from_index, "to_index": self.to_index}

    @classmethod
    def _from_payload(cls, common, data):
        return cls(
            **common,
            column=ColumnId(data["column"]),
            from_index=int(data["from_index"]),
            to_index=int(data["to_index"]),
        )


@dataclass(frozen=True)
class TaskUpdated(HistoryEntry):
    type: ClassVar[str] = "task_updated"

    changes: Tuple[str, ...]

    def _payload(self) -> Dict[str, Any]:
        return {"changes": list(self.changes)}

    @classmethod
    def _from_payload(cls, common, data):
        changes = data["changes"]
        if not isinstance(changes, list):
            raise ValueError("changes must be a list")
        return cls(**common, changes=tuple(str(c) for c in changes))


@dataclass(frozen=True)
class TaskDeleted(HistoryEntry):
    type: ClassVar[str] = "task_deleted"


ENTRY_TYPES: Dict[str, Type[HistoryEntry]] = {
    cls.type: cls for cls in (TaskCreated, TaskMoved, TaskReordered, TaskUpdated, TaskDeleted)
}


# ── App state / snapshot ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class AppState:
    """Everything the engine owns: the board and the recent-action log."""
    board: Board = field(default_factory=Board)
    history: Tuple[HistoryEntry, ...] = ()

    @classmethod
    def empty(cls) -> "AppState":
        return cls()

    def to_snapshot(self) -> Dict[str, Any]:
        """Versioned, JSON-serializable form handed to persistence."""
        return {
            "version": SNAPSHOT_VERSION,
            "state": {
                "board": self.board.to_dict(),
                "history": [entry.to_dict() for entry in self.history],
            },
        }

    @classmethod
    def from_snapshot(cls, data: Any) -> "AppState":
        """
        Rebuild state from a snapshot.

        Raises ValueError, KeyError or TypeError when the snapshot is
        malformed; callers that must not fail use SnapshotStore.load().
        """
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a mapping")
        if data.get("version") != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {data.get('version')!r}")
        state = data["state"]
        board = Board.from_dict(state["board"])
        history = tuple(HistoryEntry.from_dict(raw) for raw in state.get("history") or [])
        return cls(board=board, history=history)
