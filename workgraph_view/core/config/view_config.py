from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, cast

import yaml

from workgraph_view.core.errors import ViewConfigError
from workgraph_view.core.model import GroupBy, SortDirection, SortField
from workgraph_view.core.status import normalize_status_key


SORT_FIELDS: tuple[str, ...] = ("title", "status", "priority", "eta")
SORT_DIRECTIONS: tuple[str, ...] = ("asc", "desc")
GROUP_BY_OPTIONS: tuple[str, ...] = ("none", "status", "category", "date")

_KNOWN_KEYS = {
    "search_query",
    "status_filters",
    "sort_field",
    "sort_direction",
    "group_by",
    "expanded_ids",
    "selected_ids",
}


@dataclass(frozen=True)
class ViewConfig:
    search_query: str = ""
    status_filters: frozenset[str] = field(default_factory=frozenset)
    sort_field: Optional[SortField] = None
    sort_direction: SortDirection = "asc"
    group_by: GroupBy = "none"
    # None means "never set": callers fall back to default_expanded_ids().
    expanded_ids: Optional[frozenset[str]] = None
    selected_ids: frozenset[str] = field(default_factory=frozenset)


def check_sort(sort_field: Optional[str], sort_direction: str) -> None:
    if sort_field is not None and sort_field not in SORT_FIELDS:
        raise ViewConfigError(
            f"unknown sort field: {sort_field} (choose one of: {', '.join(SORT_FIELDS)})"
        )
    if sort_direction not in SORT_DIRECTIONS:
        raise ViewConfigError(
            f"unknown sort direction: {sort_direction} (choose one of: {', '.join(SORT_DIRECTIONS)})"
        )


def check_group_by(group_by: str) -> None:
    if group_by not in GROUP_BY_OPTIONS:
        raise ViewConfigError(
            f"unknown group_by: {group_by} (choose one of: {', '.join(GROUP_BY_OPTIONS)})"
        )


def _str_set(raw: dict[str, Any], key: str) -> Optional[frozenset[str]]:
    v = raw.get(key)
    if v is None:
        return None
    if not isinstance(v, list) or any(not isinstance(x, str) for x in v):
        raise ViewConfigError(f"{key} must be a list of strings")
    return frozenset(v)


def parse_view_config(raw: Any) -> ViewConfig:
    """Build a ViewConfig from a mapping (YAML/JSON document or CLI overrides)."""
    if raw is None:
        return ViewConfig()
    if not isinstance(raw, dict):
        raise ViewConfigError("view config must be a mapping")

    unknown = sorted(k for k in raw.keys() if k not in _KNOWN_KEYS)
    if unknown:
        raise ViewConfigError(f"unknown view config keys: {', '.join(map(str, unknown))}")

    query = raw.get("search_query", "")
    if query is None:
        query = ""
    if not isinstance(query, str):
        raise ViewConfigError("search_query must be a string")

    sort_field = raw.get("sort_field")
    sort_direction = raw.get("sort_direction", "asc")
    check_sort(sort_field, sort_direction)

    group_by = raw.get("group_by", "none")
    check_group_by(group_by)

    filters = _str_set(raw, "status_filters") or frozenset()
    return ViewConfig(
        search_query=query,
        status_filters=frozenset(normalize_status_key(s) for s in filters if s.strip()),
        sort_field=cast(Optional[SortField], sort_field),
        sort_direction=cast(SortDirection, sort_direction),
        group_by=cast(GroupBy, group_by),
        expanded_ids=_str_set(raw, "expanded_ids"),
        selected_ids=_str_set(raw, "selected_ids") or frozenset(),
    )


def load_view_config(path: str | Path) -> ViewConfig:
    """Load a view config from a YAML file.

    Format:
      search_query: "deploy"
      status_filters: [blocked, active]
      sort_field: eta
      sort_direction: desc
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    return parse_view_config(raw)


def merged_config(base: ViewConfig, **overrides: Any) -> ViewConfig:
    """Return `base` with non-None overrides applied and re-validated."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    if "status_filters" in changes:
        changes["status_filters"] = frozenset(
            normalize_status_key(s) for s in changes["status_filters"] if s.strip()
        )
    for key in ("expanded_ids", "selected_ids"):
        if key in changes:
            changes[key] = frozenset(changes[key])
    merged = replace(base, **changes)
    check_sort(merged.sort_field, merged.sort_direction)
    check_group_by(merged.group_by)
    return merged
