from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from workgraph_view.core.errors import ViewConfigError


def storage_key(kind: str, scope_id: Optional[str] = None) -> str:
    """Stable key for a piece of persisted UI state, e.g. "expanded:init-1"."""
    kind = kind.strip()
    if not kind:
        raise ViewConfigError("storage key kind must be a non-empty string")
    return f"{kind}:{scope_id}" if scope_id else kind


class UiStateStore:
    """Caller-owned YAML file of id lists keyed by `storage_key()`.

    The engine never touches this; the CLI reads expand/selection state
    from it before a computation and writes the returned state back.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, list[str]] = self._read()

    def _read(self) -> dict[str, list[str]]:
        if not self.path.exists():
            return {}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ViewConfigError(f"ui state file must be a mapping: {self.path}")
        out: dict[str, list[str]] = {}
        for k, v in raw.items():
            if not isinstance(k, str) or not isinstance(v, list):
                raise ViewConfigError(f"ui state entries must be key -> list[str]: {k!r}")
            out[k] = [x for x in v if isinstance(x, str)]
        return out

    def get(self, key: str) -> Optional[frozenset[str]]:
        if key not in self._data:
            return None
        return frozenset(self._data[key])

    def put(self, key: str, ids: set[str] | frozenset[str]) -> None:
        self._data[key] = sorted(ids)

    def save(self) -> None:
        if str(self.path.parent) not in (".", ""):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(self._data, sort_keys=True, allow_unicode=True),
            encoding="utf-8",
        )
