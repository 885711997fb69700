"""Integration test fixtures.

Provides a fully wired AppState with in-memory SQLite and a real fetcher and
extractor, driven through the ASGI app with ``httpx.ASGITransport``. Upstream
HTTP is mocked per test with respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from codescan.backends import ChatForwarder, select_backend
from codescan.cache import MeasureCache
from codescan.config import Settings
from codescan.extractor import PdfExtractor
from codescan.fetcher import Fetcher
from codescan.pipeline import MeasurePipeline
from codescan.server import create_app
from codescan.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from tests.conftest import FakeClock

ASGI_BASE_URL = "http://test"


def _wire(
    settings: Settings,
    client: httpx.AsyncClient,
    cache: MeasureCache,
    clock: FakeClock,
) -> AppState:
    pipeline = MeasurePipeline(
        cache=cache,
        retriever=Fetcher(client),
        extractor=PdfExtractor(min_chars=settings.extractor.min_chars),
        settings=settings,
        clock=clock,
    )
    backend = select_backend(settings)
    return AppState(
        settings=settings,
        http_client=client,
        cache=cache,
        pipeline=pipeline,
        backend=backend,
        forwarder=ChatForwarder(client, settings, backend),
    )


@pytest.fixture()
async def make_client(
    cache: MeasureCache, clock: FakeClock
) -> AsyncIterator[Callable[[Settings], httpx.AsyncClient]]:
    """Factory returning an ASGI test client for the given settings.

    All clients share the fixture's cache and clock.
    """
    async with httpx.AsyncClient() as upstream:
        opened: list[httpx.AsyncClient] = []

        def _make(settings: Settings) -> httpx.AsyncClient:
            state = _wire(settings, upstream, cache, clock)
            client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=create_app(state=state)),
                base_url=ASGI_BASE_URL,
            )
            opened.append(client)
            return client

        yield _make

        for client in opened:
            await client.aclose()


@pytest.fixture()
def api(
    make_client: Callable[[Settings], httpx.AsyncClient], settings: Settings
) -> httpx.AsyncClient:
    """ASGI client with no backend credential configured."""
    return make_client(settings)
