"""Document locator: (year, measure id) → specification PDF URL."""

from __future__ import annotations

from codescan.config import DEFAULT_URL_TEMPLATE

MEASURE_ID_WIDTH = 3


def pad_measure_id(measure_id: str) -> str:
    """Left-pad with zeros to three characters: ``"7"`` → ``"007"``. Longer ids are unchanged."""
    return measure_id.rjust(MEASURE_ID_WIDTH, "0")


def locate(year: str, measure_id: str, template: str = DEFAULT_URL_TEMPLATE) -> str:
    """Build the retrieval address for a measure.

    Pure and total: malformed input yields a URL that fails at retrieval time.
    """
    return template.format(year=year, measure_id=pad_measure_id(measure_id))
