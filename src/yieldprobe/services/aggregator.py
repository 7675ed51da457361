"""Run every source probe concurrently and fold the outcomes into one report."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Sequence

import httpx

from yieldprobe.config.settings import settings
from yieldprobe.models.domain import AggregateReport, DiagnosticsRun, ProbeFailure, ProbeResult
from yieldprobe.services.errors import AggregateFailure, describe_error
from yieldprobe.services.probes import SourceProbe, build_default_probes

logger = logging.getLogger(__name__)


async def _settle(probe: SourceProbe, client: httpx.AsyncClient) -> ProbeResult:
    # probe() already turns source errors into failures; this also covers
    # probes that do not follow that contract.
    try:
        return await probe.probe(client)
    except Exception as e:
        logger.exception("Probe %s raised out of probe()", probe.name)
        return ProbeFailure(message=describe_error(e))


async def collect_report(probes: Sequence[SourceProbe], client: httpx.AsyncClient) -> AggregateReport:
    names = [p.name for p in probes]
    if len(set(names)) != len(names):
        raise AggregateFailure(f"duplicate source names in probe configuration: {names}")

    outcomes = await asyncio.gather(*(_settle(p, client) for p in probes))
    # gather keeps argument order, so the report follows configuration order
    return AggregateReport.build(dict(zip(names, outcomes)))


async def run_diagnostics(
    probes: Sequence[SourceProbe] | None = None,
    client: httpx.AsyncClient | None = None,
) -> DiagnosticsRun:
    """
    Probe all sources and return the report with timing metadata.

    Design:
    - one shared AsyncClient; created here (and closed) if not injected
    - no probe can abort another; failures land in their own slot
    """
    probes = build_default_probes() if probes is None else probes

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=settings.http_timeout_s)
        close_client = True

    started = time.perf_counter()
    try:
        report = await collect_report(probes, client)
    finally:
        if close_client:
            await client.aclose()
    elapsed_ms = int(round((time.perf_counter() - started) * 1000))

    s = report.summary
    logger.info(
        "Diagnostics finished in %dms: %d/%d sources ok, %d yields",
        elapsed_ms,
        s.successful_sources,
        s.sources,
        s.total_yields,
    )
    return DiagnosticsRun(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        elapsed_ms=elapsed_ms,
        report=report,
    )
