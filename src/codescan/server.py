"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState inside the Starlette lifespan
- Register routes and serialise CodeScanError into JSON responses
- Start uvicorn
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route

import codescan.handlers.health as h_health
import codescan.handlers.measure as h_measure
import codescan.handlers.review as h_review
from codescan import __version__
from codescan.backends import ChatForwarder, select_backend
from codescan.cache import MeasureCache
from codescan.config import Settings
from codescan.errors import CodeScanError, ErrorCode
from codescan.extractor import PdfExtractor
from codescan.fetcher import Fetcher, build_http_client
from codescan.pipeline import MeasurePipeline
from codescan.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# State construction
# ---------------------------------------------------------------------------


async def build_state(settings: Settings, db: aiosqlite.Connection) -> AppState:
    """Wire every shared component around an open database connection."""
    http_client = build_http_client(settings.fetcher.timeout_seconds)

    cache = MeasureCache(db, ttl=timedelta(hours=settings.cache.ttl_hours))
    await cache.init_db()

    pipeline = MeasurePipeline(
        cache=cache,
        retriever=Fetcher(http_client),
        extractor=PdfExtractor(min_chars=settings.extractor.min_chars),
        settings=settings,
    )
    backend = select_backend(settings)

    return AppState(
        settings=settings,
        http_client=http_client,
        cache=cache,
        pipeline=pipeline,
        backend=backend,
        forwarder=ChatForwarder(http_client, settings, backend),
    )


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings: Settings = app.state.settings

    # The cache never outlives the process
    db = await aiosqlite.connect(":memory:")
    state = await build_state(settings, db)
    app.state.app_state = state

    log.info(
        "server_started",
        version=__version__,
        backend=state.backend,
        groq=bool(settings.groq_api_key),
        anthropic=bool(settings.anthropic_api_key),
        document_source=settings.measures.url_template,
    )

    try:
        yield
    finally:
        await state.http_client.aclose()
        await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _error_response(error: CodeScanError, route: str) -> JSONResponse:
    log.warning(
        "request_error",
        route=route,
        code=error.code,
        message=error.message,
        recoverable=error.recoverable,
        **error.context,
    )
    return JSONResponse(error.to_dict(), status_code=error.status_code)


async def measure_route(request: Request) -> JSONResponse:
    state: AppState = request.app.state.app_state
    year = request.path_params["year"]
    measure_id = request.path_params["measure_id"]
    try:
        return JSONResponse(await h_measure.handle(year, measure_id, state))
    except CodeScanError as exc:
        return _error_response(exc, "measure")
    except Exception:
        log.error("request_unexpected_error", route="measure", exc_info=True)
        raise


async def review_route(request: Request) -> JSONResponse:
    state: AppState = request.app.state.app_state
    try:
        try:
            body = await request.json()
        except json.JSONDecodeError as exc:
            raise CodeScanError(
                code=ErrorCode.INVALID_INPUT,
                message=f"Request body is not valid JSON: {exc}",
                suggestion="Send a JSON object with a 'messages' list.",
                recoverable=False,
            ) from exc
        status_code, payload = await h_review.handle(body, state)
        return JSONResponse(payload, status_code=status_code)
    except CodeScanError as exc:
        return _error_response(exc, "review")
    except Exception:
        log.error("request_unexpected_error", route="review", exc_info=True)
        raise


async def health_route(request: Request) -> JSONResponse:
    state: AppState = request.app.state.app_state
    return JSONResponse(await h_health.handle(state))


def create_app(settings: Settings | None = None, *, state: AppState | None = None) -> Starlette:
    """Build the ASGI app.

    Passing a pre-built ``state`` skips the lifespan wiring; tests use this
    to drive the app through ``httpx.ASGITransport``.
    """
    routes = [
        Route("/measure/{year}/{measure_id}", measure_route, methods=["GET"]),
        Route("/api/review", review_route, methods=["POST"]),
        Route("/health", health_route, methods=["GET"]),
    ]
    app = Starlette(routes=routes, lifespan=None if state is not None else lifespan)
    app.state.settings = state.settings if state is not None else settings or Settings()
    if state is not None:
        app.state.app_state = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
