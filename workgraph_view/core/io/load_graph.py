from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from workgraph_view.core.errors import GraphLoadError


DOCUMENT_KEYS: tuple[str, ...] = ("nodes", "edges", "queue")


def load_graph(path: str) -> dict[str, Any]:
    """Load a YAML/JSON graph document.

    Returns a dict with keys: nodes, optional edges, optional queue, and
    __file__. Unknown top-level keys are rejected. Does not coerce types;
    the parser owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise GraphLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise GraphLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise GraphLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except GraphLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise GraphLoadError(code=code, message=str(e), file=str(p)) from e

    if data is None:
        raise GraphLoadError(
            code="E_EMPTY_DOCUMENT",
            message="graph document is empty",
            file=str(p),
        )

    if not isinstance(data, dict):
        raise GraphLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    unknown = sorted(str(k) for k in data if k not in DOCUMENT_KEYS)
    if unknown:
        raise GraphLoadError(
            code="E_UNKNOWN_TOP_LEVEL_KEY",
            message=f"unknown top-level keys: {', '.join(unknown)} (expected: {', '.join(DOCUMENT_KEYS)})",
            file=str(p),
        )

    # nodes is always present (maybe None); absent edges means "derive from dependencyIds".
    normalized: dict[str, Any] = {"nodes": data.get("nodes")}
    for key in DOCUMENT_KEYS[1:]:
        if key in data:
            normalized[key] = data[key]

    normalized["__file__"] = str(p)
    return normalized
