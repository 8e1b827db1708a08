"""Error context attached to engine failures.

Uses a frozen Pydantic model so context can be serialized for diagnostics
and never changes after the error is raised.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]

class ErrorContext(BaseModel):
    """Where an error happened: operation name plus free-form details."""

    model_config = ConfigDict(
        frozen=True, str_strip_whitespace=True, extra="forbid",
        revalidate_instances="never",
        json_schema_extra={"title": "Error Context", "examples": [{"operation": "analyze_keyword", "details": {"term": "rizz", "language": "en"}}]},
    )

    operation: str = ""
    details: JsonDict = Field(default_factory=dict)

    def __str__(self) -> str:
        meta = f" ({', '.join(f'{k}={v}' for k, v in self.details.items())})" if self.details else ""
        return f"{self.operation or '<unknown>'}{meta}"

    def __hash__(self) -> int:
        return hash((self.operation, tuple(sorted((k, str(v)) for k, v in self.details.items()))))


def context(operation: str = "", **details: JsonValue) -> ErrorContext:
    """Create ErrorContext concisely (bypasses validation)."""
    return ErrorContext.model_construct(operation=operation, details=details)
