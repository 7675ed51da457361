from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Union


@dataclass(frozen=True)
class ProbeSuccess:
    count: int
    sample: str | None = None
    total: int | None = None
    # partition name -> qualifying count, or "error: ..." for a failed partition
    by_partition: Mapping[str, int | str] | None = None


@dataclass(frozen=True)
class ProbeFailure:
    message: str


ProbeResult = Union[ProbeSuccess, ProbeFailure]


@dataclass(frozen=True)
class Summary:
    total_yields: int
    successful_sources: int
    failed_sources: int
    sources: int

    @classmethod
    def from_results(cls, results: Mapping[str, ProbeResult]) -> "Summary":
        successes = [r for r in results.values() if isinstance(r, ProbeSuccess)]
        return cls(
            total_yields=sum(r.count for r in successes),
            successful_sources=len(successes),
            failed_sources=len(results) - len(successes),
            sources=len(results),
        )


@dataclass(frozen=True)
class AggregateReport:
    results: Mapping[str, ProbeResult]
    summary: Summary

    @classmethod
    def build(cls, results: Mapping[str, ProbeResult]) -> "AggregateReport":
        return cls(results=results, summary=Summary.from_results(results))


@dataclass(frozen=True)
class DiagnosticsRun:
    """One diagnostics request: the report plus when and how long it took."""

    timestamp: str
    elapsed_ms: int
    report: AggregateReport


@dataclass(frozen=True)
class ExpectedRange:
    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"expected range min {self.min} exceeds max {self.max}")


class Verdict(str, Enum):
    IN_RANGE = "in_range"
    TOO_LOW = "too_low"
    TOO_HIGH = "too_high"
    NO_EXPECTATION = "no_expectation"


@dataclass(frozen=True)
class Comparison:
    name: str
    expected: ExpectedRange
    actual: int
    verdict: Verdict
    failed: bool = False
