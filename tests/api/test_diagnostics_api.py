"""API tests for diagnostics endpoints."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from yieldprobe.api import routes_diagnostics as routes_mod
from yieldprobe.api.deps import get_expectations, get_http_client, get_probes
from yieldprobe.api.main import app
from yieldprobe.config.expectations import build_expectations
from yieldprobe.services.fetcher import RetryPolicy
from yieldprobe.services.probes import PartitionedMarketProbe, PoolProbe, StaticProbe


async def _no_sleep(_: float) -> None:
    return None


def _upstream(request: httpx.Request) -> httpx.Response:
    if request.url.host == "pools.test":
        return httpx.Response(
            200,
            json={"data": [{"project": "spark", "stablecoin": True, "tvlUsd": 2e6, "apy": 5}]},
        )
    if request.url.path == "/v1/1/markets":
        return httpx.Response(200, json={"results": [{"pt": {"symbol": "PT-USDC"}, "totalActiveLiquidity": 2e4}]})
    return httpx.Response(503)


@pytest.fixture()
def client():
    policy = RetryPolicy(max_attempts=2, delay_s=0.5, sleep=_no_sleep)

    async def _client_override():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_upstream)) as c:
            yield c

    app.dependency_overrides[get_http_client] = _client_override
    app.dependency_overrides[get_probes] = lambda: (
        PoolProbe(name="defiLlama", url="https://pools.test/pools", policy=policy),
        PoolProbe(name="broken", url="https://down.test/pools", policy=policy),
        PartitionedMarketProbe(
            name="pendle",
            base_url="https://markets.test/v1",
            policy=policy,
            partitions=((1, "Ethereum"), (10, "Optimism")),
        ),
        StaticProbe(name="manual", count=14),
    )
    app.dependency_overrides[get_expectations] = lambda: build_expectations(
        {"defiLlama": (1, 5), "pendle": (2, 30), "manual": (14, 14)}
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_get_diagnostics_envelope(client):
    res = client.get("/api/diagnostics")
    assert res.status_code == 200
    assert res.headers["cache-control"] == "no-cache"

    data = res.json()
    assert data["success"] is True
    assert data["executionTime"].endswith("ms")
    assert data["timestamp"].endswith("Z")
    assert list(data["results"]) == ["defiLlama", "broken", "pendle", "manual"]
    assert data["results"]["defiLlama"] == {"status": "success", "count": 1, "sample": "spark"}
    assert data["results"]["broken"] == {"status": "error", "error": "HTTP 503"}
    assert data["results"]["pendle"] == {
        "status": "success",
        "count": 1,
        "byPartition": {"Ethereum": 1, "Optimism": "error: HTTP 503"},
    }
    assert data["results"]["manual"] == {"status": "success", "count": 14}
    assert data["summary"] == {
        "totalYields": 16,
        "successfulSources": 3,
        "failedSources": 1,
        "sources": 4,
    }


def test_debug_alias_matches(client):
    res = client.get("/api/debug")
    assert res.status_code == 200
    assert res.json()["summary"]["sources"] == 4


def test_review_includes_comparisons_and_recommendations(client):
    res = client.get("/api/diagnostics/review")
    assert res.status_code == 200
    data = res.json()

    assert [c["name"] for c in data["comparisons"]] == ["defiLlama", "pendle", "manual"]
    pendle = data["comparisons"][1]
    assert pendle == {"name": "pendle", "expected": {"min": 2, "max": 30}, "actual": 1, "verdict": "too_low", "failed": False}

    recs = data["recommendations"]
    assert recs[0].startswith("broken: Error - HTTP 503")
    assert recs[1].startswith("pendle: Low count (1 vs expected 2-30)")
    assert recs[2].startswith("Overall: Total yields below")


def test_options_preflight_has_no_body(client):
    res = client.options("/api/diagnostics")
    assert res.status_code == 200
    assert res.content == b""
    assert res.headers["cache-control"] == "no-cache"


def test_cors_preflight_allows_any_origin(client):
    res = client.options(
        "/api/diagnostics",
        headers={"Origin": "https://dashboard.example", "Access-Control-Request-Method": "GET"},
    )
    assert res.status_code == 200
    assert res.headers.get("access-control-allow-origin") == "*"


def test_internal_failure_returns_error_envelope(client, monkeypatch):
    async def _boom(*args, **kwargs):
        raise RuntimeError("event loop on fire")

    monkeypatch.setattr(routes_mod, "run_diagnostics", _boom)
    res = client.get("/api/diagnostics")

    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "event loop on fire"}
    assert res.headers["cache-control"] == "no-cache"


def test_dependency_failure_returns_error_envelope(client):
    def _bad_config():
        raise ValueError("max_attempts must be >= 1")

    app.dependency_overrides[get_probes] = _bad_config
    res = client.get("/api/diagnostics", headers={"Origin": "https://dashboard.example"})

    assert res.status_code == 500
    assert res.headers["content-type"].startswith("application/json")
    assert res.json() == {"success": False, "error": "max_attempts must be >= 1"}
    assert res.headers["cache-control"] == "no-cache"
    assert res.headers["access-control-allow-origin"] == "*"


def test_internal_failure_can_include_stack(client, monkeypatch):
    async def _boom(*args, **kwargs):
        raise RuntimeError("nope")

    monkeypatch.setattr(routes_mod, "run_diagnostics", _boom)
    monkeypatch.setattr(routes_mod.settings, "include_stack", True)
    data = client.get("/api/diagnostics/review").json()

    assert data["success"] is False
    assert "RuntimeError: nope" in data["stack"]


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
