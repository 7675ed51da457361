"""Diagnostics API routes."""

from __future__ import annotations

from typing import Mapping, Sequence

import httpx
from fastapi import APIRouter, Depends, Response

from yieldprobe.api.deps import get_expectations, get_http_client, get_probes
from yieldprobe.api.schemas import (
    DiagnosticsResponse,
    ReviewResponse,
    comparison_out,
    diagnostics_fields,
)
from yieldprobe.config.settings import settings
from yieldprobe.models.domain import ExpectedRange
from yieldprobe.services.aggregator import run_diagnostics
from yieldprobe.services.classifier import classify, compare
from yieldprobe.services.probes import SourceProbe

# Errors raised here or in the dependencies are turned into the
# {success: false, error} envelope by the middleware in api/main.py.
router = APIRouter(tags=["diagnostics"])


@router.get("/diagnostics", response_model=DiagnosticsResponse, response_model_exclude_none=True)
@router.get("/debug", response_model=DiagnosticsResponse, response_model_exclude_none=True, include_in_schema=False)
async def get_diagnostics(
    probes: Sequence[SourceProbe] = Depends(get_probes),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    run = await run_diagnostics(probes, client)
    return DiagnosticsResponse(**diagnostics_fields(run))


@router.options("/diagnostics")
@router.options("/debug", include_in_schema=False)
def diagnostics_preflight() -> Response:
    return Response(status_code=200)


@router.get("/diagnostics/review", response_model=ReviewResponse, response_model_exclude_none=True)
async def review_diagnostics(
    probes: Sequence[SourceProbe] = Depends(get_probes),
    client: httpx.AsyncClient = Depends(get_http_client),
    expectations: Mapping[str, ExpectedRange] = Depends(get_expectations),
):
    run = await run_diagnostics(probes, client)
    return ReviewResponse(
        **diagnostics_fields(run),
        comparisons=[comparison_out(c) for c in compare(run.report, expectations)],
        recommendations=classify(run.report, expectations, total_floor=settings.healthy_total_floor),
    )
