from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Optional, Sequence


@dataclass
class RangeSelection:
    """Shift-click range selection over an ordered list of visible ids.

    The caller owns this object (one per list); `anchor` is the last
    clicked id and moves on every click.
    """

    anchor: Optional[str] = None

    def handle_select(
        self,
        visible_ids: Sequence[str],
        selected: AbstractSet[str],
        item_id: str,
        checked: bool,
        shift_key: bool = False,
    ) -> set[str]:
        """Return the new selection; `selected` is not modified."""
        targets = [item_id]
        if shift_key and self.anchor is not None:
            ordered = list(visible_ids)
            if self.anchor in ordered and item_id in ordered:
                a = ordered.index(self.anchor)
                b = ordered.index(item_id)
                targets = ordered[min(a, b) : max(a, b) + 1]

        nxt = set(selected)
        if checked:
            nxt.update(targets)
        else:
            nxt.difference_update(targets)

        self.anchor = item_id
        return nxt

    def reset(self) -> None:
        self.anchor = None


def prune_selection(selected: AbstractSet[str], visible_ids: AbstractSet[str] | Sequence[str]):
    """Drop ids that are no longer visible.

    Returns the very same object when nothing changed so callers can use an
    identity check to skip change notifications.
    """
    if not selected:
        return selected
    visible = visible_ids if isinstance(visible_ids, (set, frozenset)) else set(visible_ids)
    if all(i in visible for i in selected):
        return selected
    return {i for i in selected if i in visible}


def toggle_select_all(selected: AbstractSet[str], visible_ids: Sequence[str]) -> set[str]:
    """Select every visible id, or clear the selection if all are already selected."""
    if not visible_ids:
        return set(selected)
    if all(i in selected for i in visible_ids):
        return set()
    return set(visible_ids)
