from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    MEASURE_NOT_FOUND = "MEASURE_NOT_FOUND"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    MALFORMED_DOCUMENT = "MALFORMED_DOCUMENT"
    EMPTY_EXTRACTION = "EMPTY_EXTRACTION"
    NO_CREDENTIAL = "NO_CREDENTIAL"
    INVALID_INPUT = "INVALID_INPUT"


# HTTP status returned to the caller for each error kind.
HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.MEASURE_NOT_FOUND: 404,
    ErrorCode.TRANSPORT_ERROR: 502,
    ErrorCode.MALFORMED_DOCUMENT: 502,
    ErrorCode.EMPTY_EXTRACTION: 422,
    ErrorCode.NO_CREDENTIAL: 400,
    ErrorCode.INVALID_INPUT: 400,
}


class CodeScanError(Exception):
    """Raised by pipeline steps and handlers for all expected failure conditions.

    Caught by server.py and serialised into the JSON error response.
    Never convert this into a generic failure inside business logic; callers
    add context (year, id, address) and re-raise so the kind survives.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable
        self.context: dict[str, Any] = dict(context or {})

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.code]

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            },
            **self.context,
        }
