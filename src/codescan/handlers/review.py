"""Handler for ``POST /api/review``.

Validates the request body, forwards it to the configured chat backend and
returns ``(status_code, body)``. Upstream error statuses pass through as-is.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from codescan.errors import CodeScanError, ErrorCode
from codescan.models.review import ReviewRequest

if TYPE_CHECKING:
    from codescan.state import AppState


async def handle(body: Any, state: AppState) -> tuple[int, dict]:
    """Handle a review forwarding call."""
    log = structlog.get_logger().bind(handler="review", backend=state.backend)
    log.info("handler_called")

    state.forwarder.ensure_configured()

    try:
        request = ReviewRequest.model_validate(body)
    except ValidationError as exc:
        raise CodeScanError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Send a JSON object with a non-empty 'messages' list and optional 'max_tokens'.",
            recoverable=False,
        ) from exc

    result = await state.forwarder.forward(request)
    log.info("forward_complete", status_code=result.status_code)
    return result.status_code, result.body
