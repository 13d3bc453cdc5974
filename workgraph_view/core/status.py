"""Status normalization.

Raw statuses arrive as free-form strings ("In Progress", "completed",
"RUNNING", ...). Every comparison in the engine goes through
`normalize_status_key` first; nothing else should compare raw strings.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional


class StatusKey(str, Enum):
    TODO = "todo"
    ACTIVE = "active"
    BLOCKED = "blocked"
    PAUSED = "paused"
    DONE = "done"


_SYNONYMS: dict[str, str] = {
    "completed": StatusKey.DONE.value,
    "complete": StatusKey.DONE.value,
    "in_progress": StatusKey.ACTIVE.value,
    "running": StatusKey.ACTIVE.value,
    "queued": StatusKey.ACTIVE.value,
    "pending": StatusKey.TODO.value,
    "backlog": StatusKey.TODO.value,
    "not_started": StatusKey.TODO.value,
    "planned": StatusKey.TODO.value,
}

# Terminal statuses count as complete for roll-ups.
_DONE_RAW: set[str] = {
    "done",
    "completed",
    "complete",
    "cancelled",
    "canceled",
    "archived",
    "deleted",
}

_STATUS_RANK: dict[str, int] = {
    StatusKey.BLOCKED.value: 0,
    StatusKey.ACTIVE.value: 1,
    StatusKey.TODO.value: 2,
    StatusKey.DONE.value: 3,
}
UNRANKED = 4


def to_status_token(raw: Optional[str]) -> str:
    """Lowercase, trim and underscore a raw status ("In Progress" -> "in_progress")."""
    return re.sub(r"[\s-]+", "_", (raw or "").strip().lower())


def normalize_status_key(raw: Optional[str]) -> str:
    """Collapse synonyms onto the closed `StatusKey` set.

    Unknown statuses pass through as their underscored token so that a
    status filter naming them can still match.
    """
    token = to_status_token(raw)
    return _SYNONYMS.get(token, token)


def is_done_status(raw: Optional[str]) -> bool:
    return to_status_token(raw) in _DONE_RAW


def status_rank(raw: Optional[str]) -> int:
    return _STATUS_RANK.get(normalize_status_key(raw), UNRANKED)


def format_status(raw: Optional[str]) -> str:
    words = re.sub(r"[_-]+", " ", raw or "").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)
