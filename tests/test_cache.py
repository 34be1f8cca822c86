"""Tests for HealthCache: freshness, shared refreshes, stale-on-error and the timer."""

from __future__ import annotations

import asyncio
import dataclasses
import logging

import pytest

from conftest import CHAIN_ID, GWEI, FakeChainClient, make_endpoint, make_registry
from config.runtime_schema import MonitorConfig
from rpc.cache import HealthCache
from rpc.errors import RefreshError
from rpc.failover import select_alternative
from rpc.models import CongestionLevel, EndpointStatus, GasPriceTrend


def _cache(registry, clock, **config) -> HealthCache:
    return HealthCache(registry, CHAIN_ID, config=MonitorConfig(**config), clock=clock)


class TestSnapshot:
    def test_healthy_chain_snapshot(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock)

        snapshot = asyncio.run(cache.get_snapshot())

        assert snapshot.chain_id == CHAIN_ID
        assert snapshot.status == EndpointStatus.HEALTHY
        assert snapshot.congestion_level == CongestionLevel.LOW
        assert snapshot.metrics.last_block_number == 1000
        assert snapshot.metrics.avg_block_time_sec == pytest.approx(5.0)
        assert snapshot.metrics.tx_success_rate_pct == 100.0
        assert snapshot.metrics.gas_price_wei == 10 * GWEI
        assert snapshot.metrics.gas_price_trend == GasPriceTrend.STABLE
        assert len(snapshot.endpoints) == 3

    def test_partial_outage_is_degraded(self, clock):
        registry = make_registry({
            "https://a.example": FakeChainClient(),
            "https://b.example": FakeChainClient(),
            "https://c.example": FakeChainClient(fail=True),
        })
        snapshot = asyncio.run(_cache(registry, clock).get_snapshot())

        assert snapshot.status == EndpointStatus.DEGRADED
        assert [e.url for e in snapshot.healthy_endpoints] == ["https://a.example", "https://b.example"]

    def test_no_endpoints_returns_none(self, clock):
        cache = _cache(make_registry({}), clock)
        assert asyncio.run(cache.get_snapshot()) is None

    def test_snapshot_is_isolated_from_later_probes(self, clock):
        client = FakeChainClient()
        registry = make_registry({"https://a.example": client, "https://b.example": FakeChainClient()})
        cache = _cache(registry, clock)

        first = asyncio.run(cache.get_snapshot())
        client.fail = True
        asyncio.run(cache.refresh())

        assert first.endpoints[0].status == EndpointStatus.HEALTHY
        assert registry.endpoints_for(CHAIN_ID)[0].status == EndpointStatus.DOWN
        with pytest.raises(dataclasses.FrozenInstanceError):
            first.status = EndpointStatus.DOWN

    def test_gas_price_trend_follows_previous_snapshot(self, clock):
        client = FakeChainClient(gas_price_wei=10 * GWEI)
        cache = _cache(make_registry({"https://a.example": client}), clock)

        asyncio.run(cache.refresh())
        client.gas_price_wei = 12 * GWEI
        snapshot = asyncio.run(cache.refresh())

        assert snapshot.metrics.gas_price_trend == GasPriceTrend.INCREASING

    def test_high_gas_is_high_congestion(self, clock):
        client = FakeChainClient(gas_price_wei=150 * GWEI)
        snapshot = asyncio.run(_cache(make_registry({"https://a.example": client}), clock).get_snapshot())
        assert snapshot.congestion_level == CongestionLevel.HIGH


class TestFreshness:
    def test_hit_inside_timeout(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock, cache_timeout_ms=10_000)

        async def scenario():
            first = await cache.get_snapshot()
            clock.advance(9.0)
            second = await cache.get_snapshot()
            return first, second

        first, second = asyncio.run(scenario())

        assert second is first
        assert cache.get_metrics()["hits"] == 1
        assert cache.get_metrics()["monitor"]["batches"] == 1

    def test_miss_after_timeout(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock, cache_timeout_ms=10_000)

        async def scenario():
            first = await cache.get_snapshot()
            clock.advance(10.0)
            second = await cache.get_snapshot()
            return first, second

        first, second = asyncio.run(scenario())

        assert second is not first
        assert cache.get_metrics()["misses"] == 2
        assert cache.get_metrics()["monitor"]["batches"] == 2

    def test_concurrent_requests_share_one_refresh(self, three_clients, clock):
        for client in three_clients.values():
            client.delay = 0.02
        cache = _cache(make_registry(three_clients), clock)

        async def scenario():
            return await asyncio.gather(*(cache.get_snapshot() for _ in range(5)))

        snapshots = asyncio.run(scenario())

        assert all(s is snapshots[0] for s in snapshots)
        assert cache.get_metrics()["monitor"]["batches"] == 1
        assert cache.get_metrics()["refreshes"] == 1

    def test_set_chain_drops_cached_snapshot(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock)
        asyncio.run(cache.get_snapshot())

        cache.set_chain(44787)

        assert cache.chain_id == 44787
        assert cache.snapshot is None
        assert asyncio.run(cache.get_snapshot()) is None

    def test_chain_switch_mid_refresh_is_not_published(self, clock):
        registry = make_registry({"https://a.example": FakeChainClient(delay=0.05)})
        cache = _cache(registry, clock)

        async def scenario():
            task = asyncio.ensure_future(cache.refresh())
            await asyncio.sleep(0.01)
            cache.set_chain(44787)
            return await task

        snapshot = asyncio.run(scenario())

        assert snapshot.chain_id == CHAIN_ID
        assert cache.snapshot is None

    def test_failure_after_chain_switch_is_logged_for_old_chain(self, clock, caplog):
        registry = make_registry({"https://a.example": FakeChainClient(fail_sampling=True, delay=0.05)})
        cache = _cache(registry, clock)

        async def scenario():
            task = asyncio.ensure_future(cache.refresh())
            await asyncio.sleep(0.01)
            cache.set_chain(44787)
            with pytest.raises(RefreshError):
                await task

        with caplog.at_level(logging.ERROR, logger="rpc.cache"):
            asyncio.run(scenario())

        assert cache.last_error is None
        assert cache.get_metrics()["failed_refreshes"] == 1
        assert f"Refresh failed for chain {CHAIN_ID}" in caplog.text
        assert "Refresh failed for chain 44787" not in caplog.text


class TestStaleOnError:
    def test_failed_refresh_keeps_previous_snapshot(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock)

        async def scenario():
            first = await cache.get_snapshot()
            for client in three_clients.values():
                client.fail_sampling = True
            clock.advance(60.0)
            with pytest.raises(RefreshError):
                await cache.get_snapshot()
            return first

        first = asyncio.run(scenario())

        assert cache.snapshot is first
        assert isinstance(cache.last_error, RefreshError)
        assert cache.get_metrics()["failed_refreshes"] == 1

    def test_sampling_falls_back_to_next_endpoint(self, clock):
        first = FakeChainClient(fail_sampling=True)
        second = FakeChainClient(latest=2000, gas_price_wei=20 * GWEI)
        registry = make_registry({"https://a.example": first, "https://b.example": second})

        snapshot = asyncio.run(_cache(registry, clock).get_snapshot())

        # Probe still succeeds on the first endpoint; only sampling falls through
        assert snapshot.status == EndpointStatus.HEALTHY
        assert snapshot.metrics.last_block_number == 2000
        assert snapshot.metrics.gas_price_wei == 20 * GWEI

    def test_all_sampling_failures_raise_refresh_error(self, clock):
        registry = make_registry({
            "https://a.example": FakeChainClient(fail_sampling=True),
            "https://b.example": FakeChainClient(fail_sampling=True),
        })

        with pytest.raises(RefreshError) as exc_info:
            asyncio.run(_cache(registry, clock).get_snapshot())

        assert exc_info.value.tried == ["https://a.example", "https://b.example"]
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_success_clears_last_error(self, clock):
        client = FakeChainClient(fail_sampling=True)
        cache = _cache(make_registry({"https://a.example": client}), clock)

        async def scenario():
            with pytest.raises(RefreshError):
                await cache.refresh()
            client.fail_sampling = False
            return await cache.refresh()

        snapshot = asyncio.run(scenario())

        assert snapshot.status == EndpointStatus.HEALTHY
        assert cache.last_error is None

    def test_hung_sampling_falls_back_to_next_endpoint(self, clock):
        registry = make_registry({
            "https://a.example": FakeChainClient(sampling_delay=3600),
            "https://b.example": FakeChainClient(latest=2000),
        })
        cache = _cache(registry, clock, sample_timeout_ms=100)

        snapshot = asyncio.run(asyncio.wait_for(cache.get_snapshot(), 2.0))

        assert snapshot.status == EndpointStatus.HEALTHY
        assert snapshot.metrics.last_block_number == 2000

    def test_every_sampling_endpoint_hung_raises_refresh_error(self, clock):
        registry = make_registry({"https://a.example": FakeChainClient(sampling_delay=3600)})
        cache = _cache(registry, clock, sample_timeout_ms=100)

        with pytest.raises(RefreshError) as exc_info:
            asyncio.run(asyncio.wait_for(cache.get_snapshot(), 2.0))

        assert exc_info.value.tried == ["https://a.example"]
        assert isinstance(exc_info.value.__cause__, asyncio.TimeoutError)


class TestOutage:
    def test_all_endpoints_down_publishes_down_snapshot(self, clock):
        registry = make_registry({
            "https://a.example": FakeChainClient(fail=True),
            "https://b.example": FakeChainClient(fail=True),
        })
        cache = _cache(registry, clock)

        snapshot = asyncio.run(cache.get_snapshot())

        assert snapshot.status == EndpointStatus.DOWN
        assert snapshot.congestion_level == CongestionLevel.LOW
        assert snapshot.metrics.last_block_number == 0
        assert snapshot.metrics.gas_price_wei == 0
        assert snapshot.healthy_endpoints == []
        assert cache.snapshot is snapshot
        assert cache.last_error is None
        assert [(a.type.value, a.severity.value, a.endpoint_url) for a in cache.get_alerts()] == [
            ("rpc_failure", "high", "https://a.example"),
            ("rpc_failure", "high", "https://b.example"),
        ]

    def test_outage_replaces_healthy_snapshot(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock)

        async def scenario():
            first = await cache.get_snapshot()
            for client in three_clients.values():
                client.fail = True
            clock.advance(60.0)
            return first, await cache.get_snapshot()

        first, second = asyncio.run(scenario())

        assert first.status == EndpointStatus.HEALTHY
        assert second.status == EndpointStatus.DOWN
        assert cache.snapshot is second
        assert cache.get_metrics()["failed_refreshes"] == 0
        # Only the healthy refresh sampled the chain
        assert sum(c.calls["get_gas_price"] for c in three_clients.values()) == 1


class TestBackgroundRefresh:
    def test_timer_refreshes_until_stopped(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock, refresh_interval_ms=100)

        async def scenario():
            cache.start()
            assert cache.is_running
            await asyncio.sleep(0.35)
            await cache.stop()
            stopped_at = cache.get_metrics()["refreshes"]
            await asyncio.sleep(0.25)
            return stopped_at

        stopped_at = asyncio.run(scenario())

        assert stopped_at >= 2
        assert cache.get_metrics()["refreshes"] == stopped_at
        assert cache.is_running is False

    def test_timer_survives_failed_refreshes(self, clock):
        client = FakeChainClient(fail_sampling=True)
        cache = _cache(make_registry({"https://a.example": client}), clock, refresh_interval_ms=100)

        async def scenario():
            async with cache:
                await asyncio.sleep(0.25)
                assert cache.is_running
                client.fail_sampling = False
                await asyncio.sleep(0.2)

        asyncio.run(scenario())

        assert cache.get_metrics()["failed_refreshes"] >= 1
        assert cache.snapshot is not None
        assert cache.is_running is False

    def test_stop_is_bounded_by_sample_timeout(self, clock):
        registry = make_registry({"https://a.example": FakeChainClient(sampling_delay=3600)})
        cache = _cache(registry, clock, sample_timeout_ms=100)

        async def scenario():
            cache.start()
            await asyncio.sleep(0.02)
            await asyncio.wait_for(cache.stop(), 2.0)

        asyncio.run(scenario())

        assert cache.is_running is False
        assert isinstance(cache.last_error, RefreshError)

    def test_stop_without_start_is_noop(self, three_clients, clock):
        cache = _cache(make_registry(three_clients), clock)
        asyncio.run(cache.stop())
        assert cache.is_running is False


def test_degraded_chain_failover_picks_lower_score():
    current = make_endpoint("https://down.example", status=EndpointStatus.DOWN)
    steady = make_endpoint("https://steady.example", response_time_ms=100, success_rate_pct=98)
    slower = make_endpoint("https://slower.example", response_time_ms=150, success_rate_pct=98)

    assert select_alternative(current, [current, slower, steady]) is steady


def test_alerts_for_partial_outage(clock):
    registry = make_registry({
        "https://a.example": FakeChainClient(),
        "https://b.example": FakeChainClient(fail=True),
    })
    cache = _cache(registry, clock)
    assert cache.get_alerts() == []

    asyncio.run(cache.get_snapshot())
    alerts = cache.get_alerts()

    assert [(a.type.value, a.severity.value, a.endpoint_url) for a in alerts] == [
        ("rpc_failure", "medium", "https://b.example"),
    ]
