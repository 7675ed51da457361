"""Global test fixtures."""

import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from yieldprobe.services.fetcher import RetryPolicy  # noqa: E402


async def _no_sleep(_: float) -> None:
    return None


@pytest.fixture()
def no_wait_policy() -> RetryPolicy:
    # Same attempt budget as production, without the pause between attempts.
    return RetryPolicy(max_attempts=2, delay_s=0.5, sleep=_no_sleep)


@pytest.fixture()
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
