"""Source probes: one per upstream yield source."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import httpx

from yieldprobe.config.settings import settings
from yieldprobe.models.domain import ProbeFailure, ProbeResult, ProbeSuccess
from yieldprobe.services.errors import ParseError, PartialPartitionError, describe_error
from yieldprobe.services.fetcher import RetryPolicy, fetch_json

logger = logging.getLogger(__name__)

MIN_TVL_USD = 100_000
MAX_APY = 200
MIN_MARKET_LIQUIDITY = 10_000

EULER_PROJECTS = frozenset({"euler-v2", "euler"})
EULER_STABLE_TICKERS = ("USDC", "USDT", "DAI", "USDS", "PYUSD", "FRAX", "LUSD")
PENDLE_STABLE_MARKERS = ("USD", "DAI", "USDC", "USDT")
PENDLE_CHAINS: tuple[tuple[int, str], ...] = (
    (1, "Ethereum"),
    (42161, "Arbitrum"),
    (10, "Optimism"),
)
MORPHO_CHAIN_IDS = (1, 8453)


# --- typed accessors -------------------------------------------------------
# Upstream payloads are loosely shaped. A field that is missing or has the
# wrong type reads as None and never counts as a match.


def _num(item: Mapping[str, Any], key: str) -> Optional[float]:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _str(item: Mapping[str, Any], key: str) -> Optional[str]:
    value = item.get(key)
    return value if isinstance(value, str) else None


def _obj(item: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = item.get(key)
    return value if isinstance(value, dict) else {}


def _records(payload: Any, key: str, *, required: bool) -> list[dict]:
    """Pull a list of dict records out of `payload[key]`."""
    value = payload.get(key) if isinstance(payload, dict) else None
    if value is None:
        if required:
            raise ParseError(f"payload has no '{key}' list")
        return []
    if not isinstance(value, list):
        raise ParseError(f"payload field '{key}' is {type(value).__name__}, expected list")
    return [r for r in value if isinstance(r, dict)]


def qualifies_tvl_apy(pool: Mapping[str, Any]) -> bool:
    tvl = _num(pool, "tvlUsd")
    apy = _num(pool, "apy")
    return tvl is not None and apy is not None and tvl > MIN_TVL_USD and apy < MAX_APY


def qualifies_stable_pool(pool: Mapping[str, Any]) -> bool:
    return pool.get("stablecoin") is True and qualifies_tvl_apy(pool)


def qualifies_euler_pool(pool: Mapping[str, Any]) -> bool:
    if _str(pool, "project") not in EULER_PROJECTS or not qualifies_tvl_apy(pool):
        return False
    symbol = (_str(pool, "symbol") or "").upper()
    return any(t in symbol for t in EULER_STABLE_TICKERS)


def market_symbol(market: Mapping[str, Any]) -> str:
    return _str(_obj(market, "underlyingAsset"), "symbol") or _str(_obj(market, "pt"), "symbol") or ""


def qualifies_stable_market(market: Mapping[str, Any]) -> bool:
    symbol = market_symbol(market).upper()
    liquidity = _num(market, "totalActiveLiquidity") or 0.0
    return any(m in symbol for m in PENDLE_STABLE_MARKERS) and liquidity > MIN_MARKET_LIQUIDITY


# --- probes ----------------------------------------------------------------


class SourceProbe(ABC):
    """
    One upstream source.

    Subclasses only say how to query the source and how to turn its payload
    into a ProbeSuccess. Any exception on the way becomes a ProbeFailure for
    this source alone.
    """

    name: str

    @abstractmethod
    async def collect(self, client: httpx.AsyncClient) -> ProbeSuccess:
        """Query the source and normalize its payload."""

    async def probe(self, client: httpx.AsyncClient) -> ProbeResult:
        try:
            result = await self.collect(client)
        except Exception as e:
            message = describe_error(e)
            logger.warning("Probe %s failed: %s", self.name, message)
            return ProbeFailure(message=message)
        logger.info("Probe %s ok: count=%d", self.name, result.count)
        return result


@dataclass(frozen=True)
class PoolProbe(SourceProbe):
    """Stablecoin pools from a DeFiLlama-style pools listing."""

    name: str
    url: str
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    limit: Optional[int] = 50

    async def collect(self, client: httpx.AsyncClient) -> ProbeSuccess:
        pools = _records(await fetch_json(client, self.url, self.policy), "data", required=True)
        matched = [p for p in pools if qualifies_stable_pool(p)]
        count = len(matched) if self.limit is None else min(len(matched), self.limit)
        # sample comes from the raw feed, not the filtered set
        sample = _str(pools[0], "project") if pools else None
        return ProbeSuccess(count=count, sample=sample)


@dataclass(frozen=True)
class ProjectPoolProbe(SourceProbe):
    """Pools of one protocol (by project alias) out of the same pools listing."""

    name: str
    url: str
    policy: RetryPolicy = field(default_factory=RetryPolicy)

    async def collect(self, client: httpx.AsyncClient) -> ProbeSuccess:
        pools = _records(await fetch_json(client, self.url, self.policy), "data", required=True)
        candidates = [
            p for p in pools if _str(p, "project") in EULER_PROJECTS and qualifies_tvl_apy(p)
        ]
        count = sum(1 for p in candidates if qualifies_euler_pool(p))
        return ProbeSuccess(count=count, total=len(candidates))


def build_vault_query(first: int, chain_ids: Sequence[int]) -> str:
    chains = ", ".join(str(c) for c in chain_ids)
    return (
        "{\n"
        f"  vaultV2s(first: {first}, where: {{ chainId_in: [{chains}], whitelisted: true }}) {{\n"
        "    items {\n"
        "      address\n"
        "      name\n"
        "      symbol\n"
        "      totalAssetsUsd\n"
        "      avgNetApy\n"
        "      asset { symbol }\n"
        "      chain { network }\n"
        "    }\n"
        "  }\n"
        "}"
    )


@dataclass(frozen=True)
class VaultProbe(SourceProbe):
    """Curated vaults from a GraphQL endpoint, one query."""

    name: str
    url: str
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    first: int = 100
    chain_ids: tuple[int, ...] = MORPHO_CHAIN_IDS

    async def collect(self, client: httpx.AsyncClient) -> ProbeSuccess:
        payload = await fetch_json(
            client,
            self.url,
            self.policy,
            method="POST",
            json_body={"query": build_vault_query(self.first, self.chain_ids)},
        )
        data = _obj(payload, "data") if isinstance(payload, dict) else {}
        vaults = _records(_obj(data, "vaultV2s"), "items", required=False)
        if not vaults and isinstance(payload, dict) and payload.get("errors"):
            first_error = payload["errors"][0] if isinstance(payload["errors"], list) else payload["errors"]
            detail = first_error.get("message") if isinstance(first_error, dict) else first_error
            raise ParseError(f"GraphQL error: {detail}")

        count = sum(1 for v in vaults if (_num(v, "totalAssetsUsd") or 0.0) > MIN_TVL_USD)
        sample = _str(vaults[0], "name") if vaults else None
        return ProbeSuccess(count=count, total=len(vaults), sample=sample)


@dataclass(frozen=True)
class PartitionedMarketProbe(SourceProbe):
    """Markets fetched per chain; a failing chain is recorded, not fatal."""

    name: str
    base_url: str
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    partitions: tuple[tuple[int, str], ...] = PENDLE_CHAINS

    def partition_url(self, chain_id: int) -> str:
        return f"{self.base_url.rstrip('/')}/{chain_id}/markets"

    async def _count_partition(self, client: httpx.AsyncClient, chain_id: int, label: str) -> int | PartialPartitionError:
        try:
            payload = await fetch_json(client, self.partition_url(chain_id), self.policy)
            markets = _records(payload, "results", required=False)
        except Exception as e:
            logger.warning("Partition %s of %s failed: %s", label, self.name, e)
            return PartialPartitionError(label, e)
        return sum(1 for m in markets if qualifies_stable_market(m))

    async def collect(self, client: httpx.AsyncClient) -> ProbeSuccess:
        outcomes = await asyncio.gather(
            *(self._count_partition(client, chain_id, label) for chain_id, label in self.partitions)
        )

        by_partition: dict[str, int | str] = {}
        total = 0
        for (_, label), outcome in zip(self.partitions, outcomes):
            if isinstance(outcome, PartialPartitionError):
                by_partition[label] = str(outcome)
            else:
                by_partition[label] = outcome
                total += outcome
        return ProbeSuccess(count=total, by_partition=by_partition)


@dataclass(frozen=True)
class StaticProbe(SourceProbe):
    """A manually curated dataset: fixed count, no network."""

    name: str
    count: int

    async def collect(self, client: httpx.AsyncClient) -> ProbeSuccess:
        return ProbeSuccess(count=self.count)


def build_default_probes(policy: RetryPolicy | None = None) -> tuple[SourceProbe, ...]:
    """The configured sources, in report order."""
    policy = policy or RetryPolicy.from_settings()
    return (
        PoolProbe(name="defiLlama", url=settings.llama_pools_url, policy=policy),
        VaultProbe(name="morpho", url=settings.morpho_graphql_url, policy=policy),
        ProjectPoolProbe(name="euler", url=settings.llama_pools_url, policy=policy),
        PartitionedMarketProbe(name="pendle", base_url=settings.pendle_markets_base_url, policy=policy),
        StaticProbe(name="manual", count=settings.manual_count),
    )
