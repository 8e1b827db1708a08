"""Insight result models.

Field names are snake_case in Python and camelCase on the wire and in the
cache (culturalContext, searchMetadata, ...), matching the persisted format.
"""

from __future__ import annotations

import time
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Confidence = Annotated[float, Field(ge=0.0, le=1.0)]


def now_ms() -> int:
    return int(time.time() * 1000)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Source(_WireModel):
    """A web source backing an enhanced insight."""
    title: str
    url: str
    relevance: str = ""


class SearchMetadata(_WireModel):
    search_performed: bool = False
    search_query: str | None = None
    last_updated: str | None = None
    sources: list[Source] | None = None


class InsightContent(_WireModel):
    """Structured-output schema for basic analysis."""
    definition: str = Field(..., description="The definition of the keyword.")
    cultural_context: str = Field(..., description="The cultural context and relevance of the keyword.")
    confidence: Confidence = Field(..., description="A confidence score (0-1) for the analysis.")


class StructuredInsight(InsightContent):
    """Structured-output schema for the STRUCTURE step of enhanced analysis."""
    search_performed: bool = Field(default=False, description="Whether real-time search was performed.")
    search_query: str | None = Field(default=None, description="The search query used if search was performed.")
    sources: list[Source] | None = Field(default=None, description="Sources used for the analysis.")


class Insight(InsightContent):
    """Basic analysis result."""
    language: str
    timestamp: int = Field(default_factory=now_ms, description="Creation time, epoch milliseconds")


class EnhancedInsight(Insight):
    """Analysis result with search provenance."""
    search_metadata: SearchMetadata = Field(default_factory=SearchMetadata)
