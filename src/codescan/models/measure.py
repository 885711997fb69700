from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Closed set of section names produced by the segmenter, in rule order.
SECTION_NAMES: tuple[str, ...] = (
    "measureTitle",
    "measureType",
    "description",
    "denominator",
    "denominatorNote",
    "numerator",
    "exclusions",
    "exceptions",
    "rationale",
    "submissionMethods",
)

# section name → excerpt; a missing key means the section was not found
SectionMap = dict[str, str]


class _WireModel(BaseModel):
    """Frozen model serialised with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MeasureReference(_WireModel):
    """A (year, id) pair supplied by the caller. Never validated against a catalog."""

    year: str
    measure_id: str = Field(alias="id")


@dataclass(frozen=True)
class RawDocument:
    """Downloaded payload. Lives only between retrieval and extraction."""

    address: str
    status_code: int
    content: bytes


class ExtractedText(_WireModel):
    full_text: str
    page_count: int
    char_count: int  # Length of the untruncated text

    def truncated(self, limit: int) -> ExtractedText:
        """Return a copy with ``full_text`` cut to ``limit`` chars; ``char_count`` is kept."""
        if len(self.full_text) <= limit:
            return self
        return self.model_copy(update={"full_text": self.full_text[:limit]})


class ResolutionResult(_WireModel):
    """Final structured result for one measure document."""

    reference: MeasureReference
    address: str
    text: ExtractedText
    sections: SectionMap
    fetched_at: datetime
    cached: bool = False

    def as_cache_hit(self) -> ResolutionResult:
        return self.model_copy(update={"cached": True})

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
