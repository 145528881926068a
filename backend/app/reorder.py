"""Pure reorder math behind drag-and-drop of draft activities."""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence, TypeVar

T = TypeVar("T")


class DropEdge(str, Enum):
    BEFORE = "before"
    AFTER = "after"


# Hitbox edges reported by vertical list drag adapters.
_HITBOX_EDGES = {"top": DropEdge.BEFORE, "bottom": DropEdge.AFTER}


def edge_from_hitbox(edge: str) -> DropEdge:
    """Translate a ``top``/``bottom`` hitbox edge (or ``before``/``after``) into a DropEdge."""
    if edge in _HITBOX_EDGES:
        return _HITBOX_EDGES[edge]
    return DropEdge(edge)


def insertion_index(source_index: int, target_index: int, edge: DropEdge) -> int:
    index = target_index + 1 if edge is DropEdge.AFTER else target_index
    # Removing the source first shifts every later index down by one.
    if source_index < target_index:
        index -= 1
    return index


def reorder(items: Sequence[T], source_index: int, target_index: int, edge: DropEdge | str) -> List[T]:
    """Move ``items[source_index]`` to land ``edge`` of ``items[target_index]``.

    Returns a new list; the input is never mutated.
    """
    size = len(items)
    if not 0 <= source_index < size:
        raise IndexError(f"source index {source_index} is out of range for {size} items")
    if not 0 <= target_index < size:
        raise IndexError(f"target index {target_index} is out of range for {size} items")
    resolved_edge = edge if isinstance(edge, DropEdge) else edge_from_hitbox(edge)

    reordered = list(items)
    if source_index == target_index:
        return reordered
    moved = reordered.pop(source_index)
    reordered.insert(insertion_index(source_index, target_index, resolved_edge), moved)
    return reordered


__all__ = ["DropEdge", "edge_from_hitbox", "insertion_index", "reorder"]
