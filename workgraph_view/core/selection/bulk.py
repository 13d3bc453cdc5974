from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping, Optional, Protocol, cast

from workgraph_view.core.errors import ViewConfigError
from workgraph_view.core.model import BulkMode, BulkMutateIntent, Node


Tone = Literal["success", "error"]


@dataclass(frozen=True)
class BulkResult:
    updated: int
    failed: int

    @property
    def partial(self) -> bool:
        return self.failed > 0


@dataclass(frozen=True)
class BulkNotice:
    tone: Tone
    message: str


class BulkFn(Protocol):
    def __call__(self, request: dict[str, Any]) -> Mapping[str, Any]: ...


def build_bulk_request(
    selected_ids: Iterable[str],
    *,
    mode: str,
    entity_type: Optional[str] = None,
    nodes_by_id: Optional[Mapping[str, Node]] = None,
    updates: Optional[dict[str, Any]] = None,
) -> BulkMutateIntent:
    """Shape one batch request for the caller's bulk collaborator.

    Item types come from `nodes_by_id` when given (ids missing from it are
    skipped), otherwise every item gets `entity_type`.
    """
    if mode not in ("update", "delete"):
        raise ViewConfigError(f"unknown bulk mode: {mode} (choose one of: update, delete)")
    if mode == "update" and not updates:
        raise ViewConfigError("bulk update requires a non-empty updates mapping")
    if nodes_by_id is None and not entity_type:
        raise ViewConfigError("bulk request needs either nodes_by_id or entity_type")

    items: list[dict[str, str]] = []
    for sid in selected_ids:
        if nodes_by_id is not None:
            node = nodes_by_id.get(sid)
            if node is None:
                continue
            items.append({"type": node.type, "id": sid})
        else:
            items.append({"type": cast(str, entity_type), "id": sid})

    return BulkMutateIntent(
        items=items,
        mode=cast(BulkMode, mode),
        updates=dict(updates) if mode == "update" and updates else None,
    )


def parse_bulk_result(obj: Any) -> BulkResult:
    if not isinstance(obj, Mapping):
        raise ValueError("bulk result must be an object with updated/failed counts")
    updated = obj.get("updated", 0)
    failed = obj.get("failed", 0)
    if not isinstance(updated, int) or not isinstance(failed, int):
        raise ValueError("bulk result updated/failed must be integers")
    return BulkResult(updated=updated, failed=failed)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def describe_bulk_result(
    mode: str,
    result: BulkResult,
    *,
    entity: str = "initiative",
    status: Optional[str] = None,
) -> BulkNotice:
    verb = "Updated" if mode == "update" else "Deleted"
    if result.partial:
        return BulkNotice(tone="error", message=f"{verb} {result.updated}, failed {result.failed}.")
    if mode == "update":
        suffix = f" to {status}" if status else ""
        return BulkNotice(
            tone="success", message=f"Updated {_plural(result.updated, entity)}{suffix}."
        )
    return BulkNotice(tone="success", message=f"Deleted {_plural(result.updated, entity)}.")


def run_bulk(
    intent: BulkMutateIntent,
    bulk_fn: BulkFn,
    *,
    entity: str = "initiative",
) -> BulkNotice:
    """Hand one batch to the collaborator and word the outcome. Failures are reported, never retried."""
    status = None
    if intent.updates and isinstance(intent.updates.get("status"), str):
        status = intent.updates["status"]
    try:
        result = parse_bulk_result(bulk_fn(intent.to_payload()))
    except Exception as e:
        fallback = f"Bulk {entity} {'update' if intent.mode == 'update' else 'delete'} failed."
        return BulkNotice(tone="error", message=str(e) or fallback)
    return describe_bulk_result(intent.mode, result, entity=entity, status=status)
