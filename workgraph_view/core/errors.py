from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional


Severity = Literal["error", "warning"]

# Lint findings describe data the engine tolerates.
LINT_CODE_PREFIX = "L_"


@dataclass(frozen=True)
class GraphError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    @property
    def source(self) -> str:
        return "graph"

    @property
    def severity(self) -> Severity:
        return "error"

    def to_item(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "severity": self.severity,
            "source": self.source,
        }

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<graph>"
        return f"{loc}: {self.code}: {self.message}"


class GraphLoadError(GraphError):
    @property
    def source(self) -> str:
        return "load"


class GraphValidationError(GraphError):
    """Shape errors (E_*) and lint findings (L_*) share this envelope."""

    @property
    def is_lint(self) -> bool:
        return self.code.startswith(LINT_CODE_PREFIX)

    @property
    def source(self) -> str:
        return "lint" if self.is_lint else "validate"

    @property
    def severity(self) -> Severity:
        return "warning" if self.is_lint else "error"


class ViewConfigError(ValueError):
    """Invalid view configuration (unknown sort field, group key, bulk mode, ...)."""
