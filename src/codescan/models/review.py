from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ReviewRequest(BaseModel):
    """Normalized chat-completion request accepted by ``POST /api/review``.

    Extra keys (``system``, ``temperature``...) are kept and passed through
    to backends that accept the request body as-is.
    """

    model_config = ConfigDict(extra="allow")

    messages: list[dict[str, Any]] = Field(min_length=1)
    max_tokens: int | None = Field(default=None, gt=0)
    model: str | None = None


class ContentBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class CanonicalResponse(BaseModel):
    """Backend-independent reply shape: ``{"content": [{"type", "text"}]}``."""

    content: list[ContentBlock]
