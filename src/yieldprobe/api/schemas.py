"""API schemas."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from yieldprobe.models.domain import Comparison, DiagnosticsRun, ProbeResult, ProbeSuccess, Verdict


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceSuccessOut(CamelModel):
    status: Literal["success"] = "success"
    count: int
    sample: Optional[str] = None
    total: Optional[int] = None
    by_partition: Optional[dict[str, Union[int, str]]] = None


class SourceErrorOut(CamelModel):
    status: Literal["error"] = "error"
    error: str


class SummaryOut(CamelModel):
    total_yields: int
    successful_sources: int
    failed_sources: int
    sources: int


class DiagnosticsResponse(CamelModel):
    success: bool = True
    timestamp: str
    execution_time: str
    results: dict[str, Union[SourceSuccessOut, SourceErrorOut]]
    summary: SummaryOut


class ExpectedRangeOut(CamelModel):
    min: int
    max: int


class ComparisonOut(CamelModel):
    name: str
    expected: ExpectedRangeOut
    actual: int
    verdict: Verdict
    failed: bool


class ReviewResponse(DiagnosticsResponse):
    comparisons: list[ComparisonOut]
    recommendations: list[str]


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    stack: Optional[str] = None


def result_out(result: ProbeResult) -> Union[SourceSuccessOut, SourceErrorOut]:
    if isinstance(result, ProbeSuccess):
        return SourceSuccessOut(
            count=result.count,
            sample=result.sample,
            total=result.total,
            by_partition=dict(result.by_partition) if result.by_partition is not None else None,
        )
    return SourceErrorOut(error=result.message)


def diagnostics_fields(run: DiagnosticsRun) -> dict:
    s = run.report.summary
    return {
        "timestamp": run.timestamp,
        "execution_time": f"{run.elapsed_ms}ms",
        "results": {name: result_out(r) for name, r in run.report.results.items()},
        "summary": SummaryOut(
            total_yields=s.total_yields,
            successful_sources=s.successful_sources,
            failed_sources=s.failed_sources,
            sources=s.sources,
        ),
    }


def comparison_out(c: Comparison) -> ComparisonOut:
    return ComparisonOut(
        name=c.name,
        expected=ExpectedRangeOut(min=c.expected.min, max=c.expected.max),
        actual=c.actual,
        verdict=c.verdict,
        failed=c.failed,
    )
