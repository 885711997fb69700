"""Measure resolution pipeline.

Sequences locate → retrieve → extract → segment behind the resolution cache.
Pipeline errors keep their kind; the orchestrator only attaches the year, id
and address it was working on before re-raising.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from codescan.cache import Clock, utc_now
from codescan.errors import CodeScanError
from codescan.locator import locate
from codescan.models.measure import MeasureReference, ResolutionResult
from codescan.segmenter import SECTION_RULES, SectionRule, segment

if TYPE_CHECKING:
    from codescan.config import Settings
    from codescan.protocols import CacheProtocol, ExtractorProtocol, RetrieverProtocol


class MeasurePipeline:
    def __init__(
        self,
        cache: CacheProtocol,
        retriever: RetrieverProtocol,
        extractor: ExtractorProtocol,
        settings: Settings,
        *,
        rules: tuple[SectionRule, ...] = SECTION_RULES,
        clock: Clock | None = None,
    ) -> None:
        self._cache = cache
        self._retriever = retriever
        self._extractor = extractor
        self._settings = settings
        self._rules = rules
        self._clock = clock or utc_now

    async def resolve(self, year: str, measure_id: str) -> ResolutionResult:
        """Resolve a measure reference to its structured specification text.

        A cache hit returns immediately with ``cached=True`` and performs no
        network or parsing work. On a miss every step runs in order and the
        first CodeScanError stops the pipeline.
        """
        log = structlog.get_logger().bind(year=year, measure_id=measure_id)

        cached = await self._cache.lookup(year, measure_id)
        if cached is not None:
            log.info("cache_hit")
            return cached.as_cache_hit()

        address = locate(year, measure_id, self._settings.measures.url_template)
        log.info("cache_miss_fetching", url=address)

        try:
            document = await self._retriever.retrieve(address)
            extracted = await self._extractor.extract(document)
        except CodeScanError as exc:
            exc.context.update(year=year, id=measure_id, address=address)
            raise

        sections = segment(
            extracted.full_text,
            self._rules,
            max_chars=self._settings.measures.section_max_chars,
        )
        log.info("segment_complete", sections=sorted(sections))

        result = ResolutionResult(
            reference=MeasureReference(year=year, measure_id=measure_id),
            address=address,
            text=extracted.truncated(self._settings.extractor.display_chars),
            sections=sections,
            fetched_at=self._clock(),
        )
        await self._cache.store(year, measure_id, result)
        return result
