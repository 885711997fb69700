"""Handler for ``GET /measure/{year}/{id}``.

Receives AppState, delegates to the resolution pipeline, and returns a
JSON-ready dict. No Starlette imports; server.py handles the HTTP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from codescan.state import AppState


async def handle(year: str, measure_id: str, state: AppState) -> dict:
    """Handle a measure lookup."""
    log = structlog.get_logger().bind(handler="measure", year=year, measure_id=measure_id)
    log.info("handler_called")

    result = await state.pipeline.resolve(year, measure_id)

    log.info("resolve_complete", cached=result.cached, sections=len(result.sections))
    return result.to_response()
