"""Expected yield counts per source."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from yieldprobe.models.domain import ExpectedRange

ExpectationTable = Mapping[str, ExpectedRange]


def build_expectations(ranges: Mapping[str, tuple[int, int]]) -> ExpectationTable:
    """Freeze a plain ``{name: (min, max)}`` mapping into an expectation table."""
    return MappingProxyType({name: ExpectedRange(lo, hi) for name, (lo, hi) in ranges.items()})


DEFAULT_EXPECTATIONS: ExpectationTable = build_expectations(
    {
        "defiLlama": (40, 50),
        "morpho": (25, 35),
        "euler": (20, 30),
        "pendle": (10, 30),
        # Savings + SparkLend products; the static source still reports the older count
        "manual": (24, 24),
    }
)
