"""API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx

from yieldprobe.config.expectations import DEFAULT_EXPECTATIONS, ExpectationTable
from yieldprobe.config.settings import settings
from yieldprobe.services.probes import SourceProbe, build_default_probes


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(timeout=settings.http_timeout_s) as client:
        yield client


def get_probes() -> tuple[SourceProbe, ...]:
    return build_default_probes()


def get_expectations() -> ExpectationTable:
    return DEFAULT_EXPECTATIONS
