"""Handler for ``GET /health``: read-only service and cache status."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from codescan.state import AppState


async def handle(state: AppState) -> dict:
    return {
        "status": "ok",
        "engine": state.backend.label,
        "backend": state.backend.value,
        "documentSource": urlparse(state.settings.measures.url_template).hostname,
        "cacheEntries": await state.cache.count_live(),
    }
