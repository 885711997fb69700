from __future__ import annotations

from codescan.models.cache import CacheEntry
from codescan.models.measure import (
    SECTION_NAMES,
    ExtractedText,
    MeasureReference,
    RawDocument,
    ResolutionResult,
    SectionMap,
)
from codescan.models.review import CanonicalResponse, ContentBlock, ReviewRequest

__all__ = [
    # measure
    "SECTION_NAMES",
    "MeasureReference",
    "RawDocument",
    "ExtractedText",
    "SectionMap",
    "ResolutionResult",
    # cache
    "CacheEntry",
    # review
    "ReviewRequest",
    "ContentBlock",
    "CanonicalResponse",
]
