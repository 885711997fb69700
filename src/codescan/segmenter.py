"""Section segmenter for CMS quality measure specification text.

Each section is described by a ``SectionRule``: a start label and the labels
that may follow it. A rule captures, non-greedily and across newlines, from
its start label up to the first stop label or the end of the text. Rules are
evaluated independently, so captures may overlap when the source document
deviates from the usual template.

Labels are case-insensitive regex fragments and only count when followed by
a colon (``"NUMERATOR:"``), which keeps prose mentions of a term such as
"the numerator" from being read as a heading.

Changing extraction behaviour means editing ``SECTION_RULES``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from codescan.models.measure import SectionMap

SECTION_MAX_CHARS = 1000

# Shared label fragments
_QUALITY_ID = r"QUALITY\s+ID\s*#?\s*\d+(?:\s*\([^)]*\))?"
_MEASURE_TYPE = r"MEASURE\s+TYPE"
_DESCRIPTION = r"DESCRIPTION"
_INSTRUCTIONS = r"INSTRUCTIONS"
_DENOMINATOR = r"DENOMINATOR"
_DENOMINATOR_NOTE = r"DENOMINATOR\s+NOTE"
_DENOMINATOR_CRITERIA = r"DENOMINATOR\s+CRITERIA(?:\s*\([^)]*\))?"
_NUMERATOR = r"NUMERATOR"
_NUMERATOR_NOTE = r"NUMERATOR\s+NOTE"
_NUMERATOR_OPTIONS = r"NUMERATOR\s+OPTIONS"
_NUMERATOR_INSTRUCTIONS = r"NUMERATOR\s+INSTRUCTIONS"
_EXCLUSIONS = r"(?:DENOMINATOR\s+)?EXCLUSIONS?"
_EXCEPTIONS = r"(?:DENOMINATOR\s+)?EXCEPTIONS?"
_RATIONALE = r"RATIONALE"
_CLINICAL_RECOMMENDATIONS = r"CLINICAL\s+RECOMMENDATION\s+STATEMENTS?"
_COPYRIGHT = r"COPYRIGHT"
_SUBMISSION = r"(?:MEASURE\s+)?SUBMISSION\s+(?:TYPES?|METHODS?)"
_QUALITY_DOMAIN = r"NATIONAL\s+QUALITY\s+STRATEGY\s+DOMAIN"
_MEASURE_AREA = r"MEANINGFUL\s+MEASURE\s+AREA"


def _label(term: str) -> str:
    return rf"\b{term}\s*:"


@dataclass(frozen=True)
class SectionRule:
    """One row of the extraction table."""

    name: str
    start: str
    stops: tuple[str, ...] = ()

    @property
    def pattern(self) -> re.Pattern[str]:
        return _compile(self)

    def search(self, text: str) -> str | None:
        """Return the trimmed capture for this rule, or None if the start label is absent."""
        match = self.pattern.search(text)
        if match is None:
            return None
        return match.group(1).strip()


@lru_cache(maxsize=None)
def _compile(rule: SectionRule) -> re.Pattern[str]:
    terminators = [_label(stop) for stop in rule.stops]
    terminators.append(r"\Z")
    return re.compile(
        rf"{_label(rule.start)}\s*(.*?)(?={'|'.join(terminators)})",
        re.IGNORECASE | re.DOTALL,
    )


# Order matches SECTION_NAMES. The exclusions/exceptions stop sets overlap on
# purpose; see DESIGN.md before tightening them.
SECTION_RULES: tuple[SectionRule, ...] = (
    SectionRule(
        "measureTitle",
        _QUALITY_ID,
        (_QUALITY_DOMAIN, _MEASURE_AREA, _MEASURE_TYPE, _DESCRIPTION),
    ),
    SectionRule("measureType", _MEASURE_TYPE, (_DESCRIPTION, _INSTRUCTIONS)),
    SectionRule("description", _DESCRIPTION, (_INSTRUCTIONS, _DENOMINATOR, _NUMERATOR)),
    SectionRule(
        "denominator",
        _DENOMINATOR,
        (_DENOMINATOR_NOTE, _DENOMINATOR_CRITERIA, _NUMERATOR, _EXCLUSIONS, _EXCEPTIONS),
    ),
    SectionRule(
        "denominatorNote",
        _DENOMINATOR_NOTE,
        (_DENOMINATOR_CRITERIA, _NUMERATOR, _EXCLUSIONS, _EXCEPTIONS),
    ),
    SectionRule(
        "numerator",
        _NUMERATOR,
        (
            _NUMERATOR_NOTE,
            _NUMERATOR_OPTIONS,
            _NUMERATOR_INSTRUCTIONS,
            _EXCLUSIONS,
            _EXCEPTIONS,
            _RATIONALE,
        ),
    ),
    SectionRule("exclusions", _EXCLUSIONS, (_EXCEPTIONS, _NUMERATOR, _NUMERATOR_OPTIONS, _RATIONALE)),
    SectionRule("exceptions", _EXCEPTIONS, (_EXCLUSIONS, _NUMERATOR, _NUMERATOR_OPTIONS, _RATIONALE)),
    SectionRule("rationale", _RATIONALE, (_CLINICAL_RECOMMENDATIONS, _COPYRIGHT)),
    SectionRule("submissionMethods", _SUBMISSION, (_DENOMINATOR, _NUMERATOR, _RATIONALE)),
)


def segment(
    text: str,
    rules: tuple[SectionRule, ...] = SECTION_RULES,
    *,
    max_chars: int = SECTION_MAX_CHARS,
) -> SectionMap:
    """Apply ``rules`` to ``text`` and collect the sections that matched.

    Never fails. A section whose label is missing, or whose capture is empty
    after trimming, is left out of the map rather than stored as ``""``.
    """
    sections: SectionMap = {}
    for rule in rules:
        excerpt = rule.search(text)
        if excerpt:
            sections[rule.name] = excerpt[:max_chars]
    return sections
