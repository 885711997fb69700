from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from codescan.models.measure import ResolutionResult


class CacheEntry(BaseModel):
    """A stored resolution and the moment it was written."""

    result: ResolutionResult
    stored_at: datetime
