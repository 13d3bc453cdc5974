from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from workgraph_view.core.model import QueueItem, ReorderIntent


class ReorderFn(Protocol):
    def __call__(self, payload: dict[str, Any]) -> Any: ...


def queue_key(item: QueueItem) -> str:
    return f"{item.initiative_id}:{item.workstream_id}"


def reconcile_order(previous: Sequence[str], incoming: Sequence[str]) -> list[str]:
    """Merge a remembered order with a fresh canonical key list.

    Known keys keep their previous relative order, keys that disappeared are
    dropped, and keys never seen before are appended in incoming order.
    """
    incoming_set = set(incoming)
    out: list[str] = []
    seen: set[str] = set()
    for key in previous:
        if key in incoming_set and key not in seen:
            out.append(key)
            seen.add(key)
    for key in incoming:
        if key not in seen:
            out.append(key)
            seen.add(key)
    return out


def move_key(keys: Sequence[str], key: str, to_index: int) -> list[str]:
    """Drag-drop: move `key` to `to_index` (clamped). Unknown keys leave the order unchanged."""
    out = list(keys)
    if key not in out:
        return out
    out.remove(key)
    to_index = max(0, min(to_index, len(out)))
    out.insert(to_index, key)
    return out


def reorder_payload(
    keys: Sequence[str], items_by_key: Mapping[str, QueueItem]
) -> Optional[ReorderIntent]:
    order = [
        {"initiativeId": items_by_key[k].initiative_id, "workstreamId": items_by_key[k].workstream_id}
        for k in keys
        if k in items_by_key
    ]
    if not order:
        return None
    return ReorderIntent(order=order)


def pin_intent(
    item: QueueItem,
    *,
    task_id: Optional[str] = None,
    milestone_id: Optional[str] = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "pin",
        "initiativeId": item.initiative_id,
        "workstreamId": item.workstream_id,
    }
    if task_id:
        payload["taskId"] = task_id
    if milestone_id:
        payload["milestoneId"] = milestone_id
    return payload


def unpin_intent(item: QueueItem) -> dict[str, Any]:
    return {"type": "unpin", "initiativeId": item.initiative_id, "workstreamId": item.workstream_id}


@dataclass
class QueueOrderState:
    """Optimistic manual order for the Next Up queue.

    `keys` is what the caller renders. A drop updates it immediately and
    returns the intent to persist; `sync` folds in the next canonical item
    list from the backend.
    """

    keys: list[str] = field(default_factory=list)
    items_by_key: dict[str, QueueItem] = field(default_factory=dict)
    pending: Optional[ReorderIntent] = None

    @classmethod
    def from_items(cls, items: Iterable[QueueItem]) -> "QueueOrderState":
        state = cls()
        state.sync(items)
        return state

    def items(self) -> list[QueueItem]:
        return [self.items_by_key[k] for k in self.keys if k in self.items_by_key]

    def sync(self, items: Iterable[QueueItem]) -> list[str]:
        items = list(items)
        self.items_by_key = {queue_key(i): i for i in items}
        self.keys = reconcile_order(self.keys, [queue_key(i) for i in items])
        return list(self.keys)

    def drop(self, key: str, to_index: int) -> Optional[ReorderIntent]:
        self.keys = move_key(self.keys, key, to_index)
        self.pending = reorder_payload(self.keys, self.items_by_key)
        return self.pending

    def commit(self, order: Sequence[str]) -> Optional[ReorderIntent]:
        """Adopt a full order from a drag gesture (unknown keys ignored, missing ones appended)."""
        known = [k for k in order if k in self.items_by_key]
        self.keys = reconcile_order(known, self.keys)
        self.pending = reorder_payload(self.keys, self.items_by_key)
        return self.pending

    def persist(self, reorder_fn: ReorderFn) -> bool:
        """Send the pending intent. The local order stays authoritative whatever the outcome."""
        if self.pending is None:
            return False
        reorder_fn({"order": [dict(o) for o in self.pending.order]})
        self.pending = None
        return True
