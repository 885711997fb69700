"""HTTP retrieval client for measure specification documents.

All network I/O for documents goes through a single Fetcher instance shared
across requests. The Fetcher receives an httpx.AsyncClient via constructor
injection; the lifespan owns the client lifecycle.
"""

from __future__ import annotations

import httpx
import structlog

from codescan import __version__
from codescan.errors import CodeScanError, ErrorCode
from codescan.models.measure import RawDocument

log = structlog.get_logger()

USER_AGENT = f"codescan/{__version__}"


def build_http_client(timeout_seconds: float = 30.0) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout_seconds),
        headers={"User-Agent": USER_AGENT},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


class Fetcher:
    """Single-attempt binary document fetcher."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def retrieve(self, address: str) -> RawDocument:
        """Download ``address``.

        Raises CodeScanError with MEASURE_NOT_FOUND for any non-2xx status or
        an address that is not a valid URL, and TRANSPORT_ERROR for network
        failures. Never retries.
        """
        try:
            response = await self._client.get(address)
        except httpx.InvalidURL as exc:
            raise CodeScanError(
                code=ErrorCode.MEASURE_NOT_FOUND,
                message=f"Invalid document address {address!r}: {exc}",
                suggestion="The measure ID contains characters that cannot appear in a URL.",
                recoverable=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise CodeScanError(
                code=ErrorCode.TRANSPORT_ERROR,
                message=f"Network error fetching {address}: {exc!r}",
                suggestion="The CMS document server may be temporarily unreachable. Try again.",
                recoverable=True,
            ) from exc

        if not response.is_success:
            raise CodeScanError(
                code=ErrorCode.MEASURE_NOT_FOUND,
                message=f"HTTP {response.status_code} fetching {address}",
                suggestion=(
                    "This measure ID may not exist for this year. "
                    "Check the ID or try a different performance year."
                ),
                recoverable=True,
            )

        log.info(
            "fetch_complete",
            url=address,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return RawDocument(
            address=address,
            status_code=response.status_code,
            content=response.content,
        )
