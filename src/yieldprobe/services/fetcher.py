from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx

from yieldprobe.config.settings import settings
from yieldprobe.services.errors import FetchError, ParseError, SourceError, TransportError

logger = logging.getLogger(__name__)


def _retry_source_errors(exc: BaseException) -> bool:
    return isinstance(exc, (TransportError, ParseError))


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often and how patiently to retry one upstream call.

    - max_attempts counts the first try (2 == one retry)
    - delay_s is constant between attempts, never grows
    - retry_on decides whether an error is worth another attempt
    """

    max_attempts: int = 2
    delay_s: float = 0.5
    retry_on: Callable[[BaseException], bool] = _retry_source_errors
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay_s < 0:
            raise ValueError("delay_s must be >= 0")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(max_attempts=settings.retry_max_attempts, delay_s=settings.retry_delay_s)


async def _request_json(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    json_body: Any,
    timeout: Optional[float],
) -> Any:
    kwargs: dict[str, Any] = {}
    if json_body is not None:
        kwargs["json"] = json_body
    if timeout is not None:
        kwargs["timeout"] = timeout

    try:
        r = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        raise TransportError(f"request timed out: {type(e).__name__} {e}".rstrip()) from e
    except httpx.HTTPError as e:
        raise TransportError(f"{type(e).__name__}: {e}") from e

    if not r.is_success:
        raise TransportError(f"HTTP {r.status_code}", status_code=r.status_code)

    try:
        return r.json()
    except ValueError as e:
        raise ParseError(f"invalid JSON from {url}: {e}") from e


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    policy: RetryPolicy | None = None,
    *,
    method: str = "GET",
    json_body: Any = None,
    timeout: Optional[float] = None,
) -> Any:
    """
    Fetch a URL and return its parsed JSON body, retrying per `policy`.

    Design:
    - the client is injected, so tests swap in httpx.MockTransport
    - `timeout` is per call, so deadlines can be layered on from outside
    - errors the policy does not retry propagate untouched
    """
    policy = policy or RetryPolicy.from_settings()

    last_error: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await _request_json(client, url, method, json_body, timeout)
        except SourceError as e:
            if not policy.retry_on(e):
                raise
            last_error = e
            if attempt < policy.max_attempts:
                logger.warning(
                    "Retry %d/%d for %s in %.2fs: %s",
                    attempt,
                    policy.max_attempts,
                    url,
                    policy.delay_s,
                    e,
                )
                await policy.sleep(policy.delay_s)
            else:
                logger.error("Failed after %d attempts for %s: %s", policy.max_attempts, url, e)

    assert last_error is not None
    raise FetchError(url, policy.max_attempts, last_error) from last_error
