"""Shared test fixtures for the codescan test suite."""

from __future__ import annotations

import io
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import pytest
from pypdf import PdfWriter

from codescan.cache import MeasureCache
from codescan.config import Settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

SAMPLE_MEASURE_TEXT = """\
Quality ID #001 (NQF 0059): Diabetes: Glycemic Status Assessment Greater Than 9%
National Quality Strategy Domain: Effective Clinical Care
MEASURE TYPE:
Intermediate Outcome
DESCRIPTION:
Percentage of patients 18-75 years of age with diabetes who had a glycemic status \
assessment > 9.0% during the measurement period.
INSTRUCTIONS:
This measure is to be submitted a minimum of once per performance period.
Measure Submission Type:
Measure data may be submitted by individual MIPS eligible clinicians, groups, or third \
party intermediaries.
DENOMINATOR:
Patients 18 - 75 years of age with diabetes with a visit during the measurement period
DENOMINATOR NOTE: The denominator note text applies to telehealth encounters.
Denominator Criteria (Eligible Cases):
Patients 18 to 75 years of age on date of encounter
Denominator Exclusions:
Patients receiving hospice services any time during the measurement period
NUMERATOR:
Patients whose most recent glycemic status assessment is > 9.0%
Numerator Options:
Performance Met: Most recent HbA1c level > 9.0% (G8769)
RATIONALE:
Diabetes mellitus is a group of diseases characterized by high blood glucose levels.
CLINICAL RECOMMENDATION STATEMENTS:
American Diabetes Association (2023) guidance.
COPYRIGHT:
These performance measures are not clinical guidelines.
"""

START = datetime(2026, 1, 1, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock for deterministic expiry tests."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def _escape(line: str) -> str:
    return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: list[list[str]]) -> bytes:
    """Assemble a minimal text PDF (Helvetica, one text line per entry)."""
    page_ids = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{pid} 0 R" for pid in page_ids)
    objects: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_id, lines in zip(page_ids, pages, strict=True):
        ops = ["BT", "/F1 10 Tf", "14 TL", "40 750 Td"]
        ops.extend(f"({_escape(line)}) Tj T*" for line in lines)
        ops.append("ET")
        stream = "\n".join(ops).encode("latin-1")
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
            ).encode()
        )
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode() + stream + b"\nendstream"
        )

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n"
    ).encode()
    return bytes(out)


def build_blank_pdf(page_count: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(page_count):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def make_pdf() -> Callable[[list[list[str]]], bytes]:
    return build_pdf


@pytest.fixture()
def blank_pdf() -> bytes:
    return build_blank_pdf()


@pytest.fixture()
def sample_text() -> str:
    return SAMPLE_MEASURE_TEXT


@pytest.fixture()
def settings() -> Settings:
    """Default settings with no backend credentials, regardless of the environment."""
    return Settings(groq_api_key=None, anthropic_api_key=None)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def db() -> AsyncIterator[aiosqlite.Connection]:
    async with aiosqlite.connect(":memory:") as conn:
        yield conn


@pytest.fixture()
async def cache(db: aiosqlite.Connection, clock: FakeClock) -> MeasureCache:
    measure_cache = MeasureCache(db, ttl=timedelta(days=7), clock=clock)
    await measure_cache.init_db()
    return measure_cache
