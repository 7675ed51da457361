"""Compare source counts with their expected ranges and produce recommendations."""

from __future__ import annotations

from typing import Mapping

from yieldprobe.models.domain import (
    AggregateReport,
    Comparison,
    ExpectedRange,
    ProbeFailure,
    ProbeResult,
    ProbeSuccess,
    Verdict,
)

DEFAULT_TOTAL_FLOOR = 150
TIMEOUT_MARKERS = ("timeout", "timed out")

ALL_HEALTHY = "Everything looks good! All sources are working as expected."


def verdict_for(result: ProbeResult, expected: ExpectedRange | None) -> Verdict:
    """Failed sources are compared as if they reported 0 items."""
    if expected is None:
        return Verdict.NO_EXPECTATION
    actual = result.count if isinstance(result, ProbeSuccess) else 0
    if actual < expected.min:
        return Verdict.TOO_LOW
    if actual > expected.max:
        return Verdict.TOO_HIGH
    return Verdict.IN_RANGE


def compare(report: AggregateReport, expectations: Mapping[str, ExpectedRange]) -> list[Comparison]:
    """Expected-vs-actual rows for every source that has an expectation, in report order."""
    rows = []
    for name, result in report.results.items():
        expected = expectations.get(name)
        if expected is None:
            continue
        rows.append(
            Comparison(
                name=name,
                actual=result.count if isinstance(result, ProbeSuccess) else 0,
                verdict=verdict_for(result, expected),
                expected=expected,
                failed=isinstance(result, ProbeFailure),
            )
        )
    return rows


def is_timeout(message: str) -> bool:
    lowered = message.lower()
    return any(m in lowered for m in TIMEOUT_MARKERS)


def classify(
    report: AggregateReport,
    expectations: Mapping[str, ExpectedRange],
    *,
    total_floor: int = DEFAULT_TOTAL_FLOOR,
) -> list[str]:
    """
    Ordered recommendations for a report.

    Order is fixed: failures, then low counts, then overall volume. Counts
    above the expected max are informational only and produce no entry
    here (see `compare`). Never returns an empty list.
    """
    recs: list[str] = []

    for name, result in report.results.items():
        if not isinstance(result, ProbeFailure):
            continue
        if is_timeout(result.message):
            recs.append(f"{name}: Timing out. Raise the execution time limit for the diagnostics run.")
        else:
            recs.append(f"{name}: Error - {result.message}. Check the service logs for details.")

    for name, result in report.results.items():
        expected = expectations.get(name)
        if expected is None or not isinstance(result, ProbeSuccess):
            continue
        if result.count < expected.min:
            recs.append(
                f"{name}: Low count ({result.count} vs expected {expected.min}-{expected.max}). "
                "Filters may be too strict."
            )

    if report.summary.total_yields < total_floor:
        recs.append(
            f"Overall: Total yields below {total_floor}. "
            "Check failed sources and the execution time limit."
        )

    if not recs:
        recs.append(ALL_HEALTHY)
    return recs
