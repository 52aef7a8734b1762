"""
Drop resolution: turns a resolved drag gesture into a move_task call.

A drop names the dragged task, the column it landed on, and optionally the
card it landed next to plus which edge of that card. The card position is
looked up in the board at drop time.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .schema import Board, ColumnId

# "top"/"bottom" are the edge names a vertical hit-box reports.
AFTER_EDGES = {"after", "bottom"}


@dataclass(frozen=True)
class DropInstruction:
    source_task_id: str
    target_column: ColumnId
    target_task_id: Optional[str] = None
    relative_edge: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["DropInstruction"]:
        """Parse a JSON drop payload. Returns None if it names no valid column or task."""
        column = ColumnId.from_str(data.get("target_column"))
        source = data.get("source_task_id")
        if column is None or not source:
            return None
        edge = data.get("relative_edge")
        return cls(
            source_task_id=str(source),
            target_column=column,
            target_task_id=data.get("target_task_id") or None,
            relative_edge=edge.lower() if isinstance(edge, str) else None,
        )


def resolve_drop(board: Board, drop: DropInstruction) -> Optional[Tuple[ColumnId, Optional[int]]]:
    """
    Compute (target_column, target_index) for a drop.

    No target card means append (index None). A target card that is not in
    the target column makes the drop unresolvable and returns None.
    """
    if drop.target_task_id is None:
        return drop.target_column, None

    index = board.index_of(drop.target_task_id, drop.target_column)
    if index == -1:
        return None
    if drop.relative_edge in AFTER_EDGES:
        index += 1
    return drop.target_column, index
