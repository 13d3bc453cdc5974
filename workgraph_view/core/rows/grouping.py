"""Initiative-level grouping, filtering and date sorting."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Literal, Optional

from workgraph_view.core.config.view_config import check_group_by
from workgraph_view.core.errors import ViewConfigError
from workgraph_view.core.model import Group, Node
from workgraph_view.core.rows.visibility import parse_timestamp
from workgraph_view.core.status import StatusKey, format_status, normalize_status_key


DateField = Literal["target", "created", "updated"]
DatePreset = Literal[
    "any",
    "missing",
    "overdue",
    "today",
    "next_7_days",
    "next_30_days",
    "past_7_days",
    "past_30_days",
    "custom_range",
]
InitiativeSort = Literal["default", "date_asc", "date_desc"]

DATE_FIELDS: tuple[str, ...] = ("target", "created", "updated")
DATE_PRESETS: tuple[str, ...] = (
    "any",
    "missing",
    "overdue",
    "today",
    "next_7_days",
    "next_30_days",
    "past_7_days",
    "past_30_days",
    "custom_range",
)

STATUS_GROUP_ORDER: tuple[str, ...] = ("active", "blocked", "paused", "completed")
DATE_BUCKET_ORDER: tuple[str, ...] = ("overdue", "this_week", "this_month", "later", "no_date")
DATE_BUCKET_LABELS: dict[str, str] = {
    "overdue": "Overdue",
    "this_week": "This Week",
    "this_month": "This Month",
    "later": "Later",
    "no_date": "No Date",
}

_DAY = 86_400.0


def start_of_local_day(moment: datetime) -> float:
    """Epoch seconds of local midnight for `moment` (naive = local time)."""
    local = moment.astimezone() if moment.tzinfo else moment
    midnight = datetime(local.year, local.month, local.day, tzinfo=local.tzinfo)
    return midnight.timestamp()


def target_date_of(node: Node) -> Optional[str]:
    return node.target_date or node.due_date


def date_from_field(node: Node, field: str) -> Optional[str]:
    if field == "target":
        return target_date_of(node)
    if field == "created":
        return node.created_at
    return node.updated_at or node.created_at


def _day_delta(value: Optional[str], today_start: float) -> Optional[int]:
    ts = parse_timestamp(value)
    if ts is None:
        return None
    day_start = start_of_local_day(datetime.fromtimestamp(ts))
    return round((day_start - today_start) / _DAY)


def _parse_local_date_input(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        d = date.fromisoformat(value)
    except ValueError:
        return None
    return datetime(d.year, d.month, d.day).timestamp()


def filter_initiatives(
    nodes: Iterable[Node],
    *,
    search_query: str = "",
    status_filters: Iterable[str] = (),
    date_field: str = "target",
    date_preset: str = "any",
    date_start: str = "",
    date_end: str = "",
    now: Optional[datetime] = None,
) -> list[Node]:
    """Initiative list filter: status, date preset, then token search."""
    if date_field not in DATE_FIELDS:
        raise ViewConfigError(f"unknown date field: {date_field}")
    if date_preset not in DATE_PRESETS:
        raise ViewConfigError(f"unknown date preset: {date_preset}")

    today_start = start_of_local_day(now or datetime.now())
    filters = {normalize_status_key(s) for s in status_filters if s.strip()}
    tokens = search_query.lower().split()
    start_epoch = _parse_local_date_input(date_start)
    end_epoch = _parse_local_date_input(date_end)

    out: list[Node] = []
    for n in nodes:
        if n.type != "initiative":
            continue
        if filters and normalize_status_key(n.status) not in filters:
            continue

        selected = date_from_field(n, date_field)
        delta = _day_delta(selected, today_start)

        if date_preset == "missing" and delta is not None:
            continue
        if date_preset == "overdue" and not (delta is not None and delta < 0):
            continue
        if date_preset == "today" and delta != 0:
            continue
        if date_preset == "next_7_days" and not (delta is not None and 0 <= delta <= 7):
            continue
        if date_preset == "next_30_days" and not (delta is not None and 0 <= delta <= 30):
            continue
        if date_preset == "past_7_days" and not (delta is not None and -7 <= delta <= 0):
            continue
        if date_preset == "past_30_days" and not (delta is not None and -30 <= delta <= 0):
            continue
        if date_preset == "custom_range":
            if delta is None:
                continue
            day_epoch = today_start + delta * _DAY
            if start_epoch is not None and day_epoch < start_epoch:
                continue
            if end_epoch is not None and day_epoch > end_epoch:
                continue

        if tokens:
            haystack = " ".join([n.title, n.status, n.category or ""]).lower()
            if not all(t in haystack for t in tokens):
                continue
        out.append(n)
    return out


def sort_initiatives(nodes: list[Node], sort_by: str = "default") -> list[Node]:
    if sort_by == "default":
        return list(nodes)
    if sort_by not in ("date_asc", "date_desc"):
        raise ViewConfigError(f"unknown initiative sort: {sort_by}")
    dated = [(parse_timestamp(target_date_of(n)), n) for n in nodes]
    present = [(ts, n) for ts, n in dated if ts is not None]
    missing = [n for ts, n in dated if ts is None]
    present.sort(key=lambda pair: pair[0], reverse=sort_by == "date_desc")
    return [n for _, n in present] + missing


def status_group_key(status: Optional[str]) -> str:
    """Normalized status key for grouping; done synonyms land in "completed", missing means active."""
    key = normalize_status_key(status) or StatusKey.ACTIVE.value
    return "completed" if key == StatusKey.DONE.value else key


def _by_status(initiatives: list[Node]) -> list[Group]:
    groups: dict[str, list[Node]] = {}
    for n in initiatives:
        groups.setdefault(status_group_key(n.status), []).append(n)
    keys = [k for k in STATUS_GROUP_ORDER if k in groups]
    keys += sorted(k for k in groups if k not in STATUS_GROUP_ORDER)
    return [
        Group(key=k, label=format_status(k), count=len(groups[k]), nodes=groups[k])
        for k in keys
    ]


def _by_category(initiatives: list[Node]) -> list[Group]:
    groups: dict[str, list[Node]] = {}
    for n in initiatives:
        groups.setdefault(n.category or "Uncategorized", []).append(n)
    return [
        Group(key=k, label=k, count=len(groups[k]), nodes=groups[k])
        for k in sorted(groups, key=lambda k: (k.casefold(), k))
    ]


def _by_date(initiatives: list[Node], now: datetime) -> list[Group]:
    today_start = start_of_local_day(now)
    week_end = today_start + 7 * _DAY
    month_end = today_start + 30 * _DAY

    buckets: dict[str, list[Node]] = {k: [] for k in DATE_BUCKET_ORDER}
    for n in initiatives:
        ts = parse_timestamp(target_date_of(n))
        if ts is None:
            buckets["no_date"].append(n)
        elif ts < today_start:
            buckets["overdue"].append(n)
        elif ts < week_end:
            buckets["this_week"].append(n)
        elif ts < month_end:
            buckets["this_month"].append(n)
        else:
            buckets["later"].append(n)

    return [
        Group(key=k, label=DATE_BUCKET_LABELS[k], count=len(buckets[k]), nodes=buckets[k])
        for k in DATE_BUCKET_ORDER
        if buckets[k]
    ]


def group_initiatives(
    nodes: Iterable[Node],
    group_by: str,
    *,
    now: Optional[datetime] = None,
) -> list[Group]:
    """Bucket initiative-level nodes. Non-initiative nodes are ignored."""
    check_group_by(group_by)
    initiatives = [n for n in nodes if n.type == "initiative"]
    if group_by == "status":
        return _by_status(initiatives)
    if group_by == "category":
        return _by_category(initiatives)
    if group_by == "date":
        return _by_date(initiatives, now or datetime.now())
    return []


def group_disclosure_id(group_by: str, key: str) -> str:
    return f"{group_by}:{key}"


def reconcile_expanded_groups(
    previous: frozenset[str] | set[str],
    groups: list[Group],
    group_by: str,
) -> frozenset[str]:
    """Drop disclosure ids for groups that no longer exist; open the first group if none remain."""
    if not groups:
        return frozenset()
    valid = {group_disclosure_id(group_by, g.key) for g in groups}
    kept = {gid for gid in previous if gid in valid}
    if not kept:
        kept.add(group_disclosure_id(group_by, groups[0].key))
    return frozenset(kept)
