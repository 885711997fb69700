"""Chat-completion forwarding to Groq or Anthropic.

The active backend is chosen once at startup from the configured credentials
(Groq wins when both are set) and never re-evaluated per request. Each
backend knows how to build its upstream request and how to normalise its
reply into the canonical ``{"content": [{"type": "text", "text": ...}]}``
shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from codescan.errors import CodeScanError, ErrorCode
from codescan.models.review import CanonicalResponse, ContentBlock

if TYPE_CHECKING:
    from codescan.config import Settings
    from codescan.models.review import ReviewRequest

log = structlog.get_logger()


class Backend(StrEnum):
    GROQ = "groq"
    ANTHROPIC = "anthropic"
    NONE = "none"

    @property
    def label(self) -> str:
        """Human-readable engine name reported by the health endpoint."""
        return _LABELS[self]

    def normalize(self, raw: dict[str, Any]) -> CanonicalResponse:
        """Convert a successful upstream reply into the canonical shape."""
        if self is Backend.GROQ:
            choices = raw.get("choices") or [None]
            choice = choices[0] if isinstance(choices, list) else None
            message = choice.get("message") if isinstance(choice, dict) else None
            text = message.get("content") if isinstance(message, dict) else None
            return CanonicalResponse(content=[ContentBlock(text=text or "")])
        if self is Backend.ANTHROPIC:
            blocks = [
                ContentBlock(text=block.get("text") or "")
                for block in raw.get("content") or []
                if isinstance(block, dict) and block.get("type") == "text"
            ]
            return CanonicalResponse(content=blocks)
        raise ValueError("Backend.NONE has no response shape")


_LABELS: dict[Backend, str] = {
    Backend.GROQ: "Groq",
    Backend.ANTHROPIC: "Anthropic",
    Backend.NONE: "No key",
}


def select_backend(settings: Settings) -> Backend:
    if settings.groq_api_key:
        return Backend.GROQ
    if settings.anthropic_api_key:
        return Backend.ANTHROPIC
    return Backend.NONE


@dataclass(frozen=True)
class ForwardResult:
    """Upstream outcome: either a canonical body (status 200) or the raw error body."""

    status_code: int
    body: dict[str, Any]


class ChatForwarder:
    """Sends review requests to the backend selected at startup."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings, backend: Backend) -> None:
        self._client = client
        self._settings = settings
        self._backend = backend

    @property
    def backend(self) -> Backend:
        return self._backend

    def _build_request(self, request: ReviewRequest) -> tuple[str, dict[str, str], dict[str, Any]]:
        cfg = self._settings.backends
        if self._backend is Backend.GROQ:
            headers = {"Authorization": f"Bearer {self._settings.groq_api_key}"}
            payload: dict[str, Any] = {
                "model": cfg.groq_model,
                "messages": request.messages,
                "max_tokens": request.max_tokens or cfg.default_max_tokens,
                "temperature": cfg.temperature,
            }
            return cfg.groq_url, headers, payload

        headers = {
            "x-api-key": self._settings.anthropic_api_key or "",
            "anthropic-version": cfg.anthropic_version,
        }
        payload = request.model_dump(exclude_none=True)
        payload.setdefault("model", cfg.anthropic_model)
        payload.setdefault("max_tokens", cfg.default_max_tokens)
        return cfg.anthropic_url, headers, payload

    def ensure_configured(self) -> None:
        """Raise NO_CREDENTIAL when no backend credential was configured."""
        if self._backend is Backend.NONE:
            raise CodeScanError(
                code=ErrorCode.NO_CREDENTIAL,
                message="No API key set.",
                suggestion="Set GROQ_API_KEY or ANTHROPIC_API_KEY and restart the server.",
                recoverable=False,
            )

    async def forward(self, request: ReviewRequest) -> ForwardResult:
        """Forward ``request`` and normalise the reply.

        Raises CodeScanError with NO_CREDENTIAL before any network call when
        no backend is configured, and TRANSPORT_ERROR when the upstream
        cannot be reached or answers a success status with something other
        than a JSON object. Error statuses are passed through with their body.
        """
        self.ensure_configured()

        url, headers, payload = self._build_request(request)
        try:
            response = await self._client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise CodeScanError(
                code=ErrorCode.TRANSPORT_ERROR,
                message=f"{self._backend.label} request failed: {exc!r}",
                suggestion="The model backend may be temporarily unavailable. Try again.",
                recoverable=True,
            ) from exc

        if not response.is_success:
            log.warning(
                "backend_error",
                backend=self._backend,
                status_code=response.status_code,
            )
            try:
                body = response.json()
            except ValueError:
                body = {"error": response.text}
            return ForwardResult(status_code=response.status_code, body=body)

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except ValueError as exc:
            raise CodeScanError(
                code=ErrorCode.TRANSPORT_ERROR,
                message=f"{self._backend.label} returned an unreadable reply: {exc}",
                suggestion="The model backend may be temporarily unavailable. Try again.",
                recoverable=True,
            ) from exc

        log.info("backend_complete", backend=self._backend, status_code=response.status_code)
        return ForwardResult(
            status_code=200,
            body=self._backend.normalize(data).model_dump(mode="json"),
        )
