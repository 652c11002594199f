"""Selection and navigation helpers (pure functions, no I/O)."""

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass
class Selection:
    """Focused list and item. ``item`` is only meaningful when ``list`` is set."""

    list: Optional[int] = None
    item: Optional[int] = None


def clamp_index(index: Optional[int], count: int) -> Optional[int]:
    """Pull an index back into 0..count-1, or None for an empty collection."""
    if index is None or count == 0:
        return None
    return max(0, min(count - 1, index))


def next_list(sel: Selection, list_count: int) -> Selection:
    """Move list focus down; from no selection, select the first list."""
    if list_count == 0:
        return Selection()
    if sel.list is None:
        return Selection(0)
    new = min(list_count - 1, sel.list + 1)
    if new == sel.list:
        return sel
    return Selection(new)


def previous_list(sel: Selection, list_count: int) -> Selection:
    """Move list focus up; from no selection, select the last list."""
    if list_count == 0:
        return Selection()
    if sel.list is None:
        return Selection(list_count - 1)
    new = max(0, sel.list - 1)
    if new == sel.list:
        return sel
    return Selection(new)


def select_first_item(sel: Selection, item_count: int) -> Selection:
    if sel.list is None or item_count == 0:
        return sel
    return Selection(sel.list, 0)


def deselect_item(sel: Selection) -> Selection:
    return Selection(sel.list, None)


def next_item(sel: Selection, item_count: int) -> Selection:
    if sel.list is None or sel.item is None:
        return sel
    return Selection(sel.list, clamp_index(sel.item + 1, item_count))


def previous_item(sel: Selection, item_count: int) -> Selection:
    if sel.list is None or sel.item is None:
        return sel
    return Selection(sel.list, clamp_index(sel.item - 1, item_count))


def clamp_selection(sel: Selection, item_counts: Sequence[int]) -> Selection:
    """Re-clamp a selection against fresh collection sizes.

    ``item_counts[i]`` is the number of items of list ``i``. A selection that
    points past the end is moved to the last entry, and dropped entirely when
    the collection became empty.
    """
    list_idx = clamp_index(sel.list, len(item_counts))
    if list_idx is None:
        return Selection()
    if list_idx != sel.list:
        return Selection(list_idx)
    return Selection(list_idx, clamp_index(sel.item, item_counts[list_idx]))


def follow_move(index: int, count: int, direction: str) -> int:
    """Index of an entity after it was moved one step up or down."""
    if direction == "up":
        return max(0, index - 1)
    return min(count - 1, index + 1)


def is_dense(positions: Sequence[int]) -> bool:
    """True when positions are exactly 0..n-1 in order."""
    return list(positions) == list(range(len(positions)))
