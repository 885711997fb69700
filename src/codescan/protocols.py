"""Protocol interfaces for swappable pipeline components.

The pipeline and AppState reference these protocols, not the concrete
implementations. This allows tests to use lightweight in-memory fakes that
count calls or raise specific errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from codescan.models.measure import ExtractedText, RawDocument, ResolutionResult


class CacheProtocol(Protocol):
    """Interface for the resolution cache backend."""

    async def lookup(self, year: str, measure_id: str) -> ResolutionResult | None: ...

    async def store(self, year: str, measure_id: str, result: ResolutionResult) -> None: ...

    async def count_live(self) -> int: ...


class RetrieverProtocol(Protocol):
    """Interface for the document retrieval client."""

    async def retrieve(self, address: str) -> RawDocument: ...


class ExtractorProtocol(Protocol):
    """Interface for the binary document text extractor."""

    async def extract(self, document: RawDocument) -> ExtractedText: ...
