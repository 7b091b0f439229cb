from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


class ExportError(Exception):
    """Raised by ``ExportResult.unwrap`` when an export could not be produced."""

    def __init__(self, format: str, reason: str) -> None:
        super().__init__(f"export to {format} failed: {reason}")
        self.format = format
        self.reason = reason


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Outcome of a history export: either the serialized text or the failure reason."""

    ok: bool
    format: str
    content: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, format: str, content: str) -> "ExportResult":
        return cls(ok=True, format=format, content=content)

    @classmethod
    def failure(cls, format: str, error: str) -> "ExportResult":
        return cls(ok=False, format=format, error=error)

    def unwrap(self) -> str:
        if not self.ok or self.content is None:
            raise ExportError(self.format, self.error or "unknown error")
        return self.content


def error_response(code: str, message: str, *, details: Any | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload
