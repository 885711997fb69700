"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and handed to every request handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from codescan.backends import Backend, ChatForwarder
    from codescan.config import Settings
    from codescan.pipeline import MeasurePipeline
    from codescan.protocols import CacheProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every handler."""

    settings: Settings
    http_client: httpx.AsyncClient
    cache: CacheProtocol
    pipeline: MeasurePipeline
    backend: Backend
    forwarder: ChatForwarder
