"""
rpc/cache.py

HealthCache - кэш снапшотов здоровья сети с периодическим обновлением.
"""
import asyncio
import contextlib
import functools
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config.runtime_schema import MonitorConfig
from .alerts import NetworkHealthAlert, evaluate_alerts
from .congestion import average_response_time, estimate_congestion, gas_price_trend
from .models import CongestionLevel, NetworkHealthMetrics, NetworkHealthSnapshot
from .monitor import HealthMonitor, aggregate_status
from .prober import EndpointProber
from .registry import EndpointRegistry
from .sampler import ChainSampler

logger = logging.getLogger(__name__)


class HealthCache:
    """
    Time-boxed cache around HealthMonitor for one active chain.

    Features:
    - get_snapshot() reuses the last snapshot inside cache_timeout_ms
    - Concurrent refreshes share one in-flight task (no duplicate probe batches)
    - Background task refreshes every refresh_interval_ms, cancelled by stop()
    - Stale-on-error: a failed refresh keeps the previous snapshot
    - No endpoint reachable: publishes a DOWN snapshot with empty chain metrics

    Usage:
        cache = HealthCache(registry, chain_id=42220)
        async with cache:
            snapshot = await cache.get_snapshot()
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        chain_id: int,
        config: Optional[MonitorConfig] = None,
        monitor: Optional[HealthMonitor] = None,
        sampler: Optional[ChainSampler] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize HealthCache.

        Args:
            registry: Endpoint registry (source of endpoints and clients)
            chain_id: Active chain
            config: Cache/refresh/probe settings (defaults if None)
            monitor: HealthMonitor override (built from registry if None)
            sampler: ChainSampler override (built from registry if None)
            clock: Monotonic clock in seconds, used for cache freshness
        """
        self._config = config or MonitorConfig()
        self._registry = registry
        self._chain_id = chain_id
        self._monitor = monitor or HealthMonitor(
            EndpointProber(registry.client_for, timeout_ms=self._config.probe_timeout_ms)
        )
        self._sampler = sampler or ChainSampler(
            registry.client_for,
            block_sample_size=self._config.block_sample_size,
            timeout_ms=self._config.sample_timeout_ms,
        )
        self._clock = clock

        self._snapshot: Optional[NetworkHealthSnapshot] = None
        self._captured_at_mono: Optional[float] = None
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_chain: Optional[int] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._last_error: Optional[BaseException] = None

        # Metrics
        self._hits = 0
        self._misses = 0
        self._refreshes = 0
        self._failed_refreshes = 0

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def snapshot(self) -> Optional[NetworkHealthSnapshot]:
        """Last published snapshot, without refreshing."""
        return self._snapshot

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def set_chain(self, chain_id: int) -> None:
        """Switch the active chain and drop the cached snapshot."""
        if chain_id == self._chain_id:
            return
        logger.info(f"[health_cache] Active chain {self._chain_id} -> {chain_id}")
        self._chain_id = chain_id
        self.invalidate()

    def invalidate(self) -> None:
        self._snapshot = None
        self._captured_at_mono = None

    def _is_fresh(self) -> bool:
        if self._snapshot is None or self._captured_at_mono is None:
            return False
        elapsed_ms = (self._clock() - self._captured_at_mono) * 1000
        return elapsed_ms < self._config.cache_timeout_ms

    async def get_snapshot(self) -> Optional[NetworkHealthSnapshot]:
        """
        Get the health snapshot for the active chain.

        Returns:
            Cached snapshot if fresh, otherwise a newly refreshed one;
            None if the chain has no endpoints configured

        Raises:
            RefreshError: if sampling fails on every active endpoint
                (previous snapshot is kept)
        """
        if not self._registry.endpoints_for(self._chain_id):
            return None

        if self._is_fresh():
            self._hits += 1
            logger.debug(f"[health_cache] Cache hit for chain {self._chain_id}")
            return self._snapshot

        self._misses += 1
        return await self.refresh()

    async def refresh(self) -> Optional[NetworkHealthSnapshot]:
        """Force a refresh; joins the in-flight refresh for the same chain if one is running."""
        task = self._inflight
        if task is None or task.done() or self._inflight_chain != self._chain_id:
            task = asyncio.ensure_future(self._do_refresh())
            task.add_done_callback(functools.partial(self._on_refresh_done, self._chain_id))
            self._inflight = task
            self._inflight_chain = self._chain_id
        return await asyncio.shield(task)

    def _on_refresh_done(self, chain_id: int, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._failed_refreshes += 1
            if chain_id == self._chain_id:
                self._last_error = error
            logger.error(f"[health_cache] Refresh failed for chain {chain_id}, keeping previous snapshot: {error}")

    async def _do_refresh(self) -> Optional[NetworkHealthSnapshot]:
        chain_id = self._chain_id
        endpoints = self._registry.endpoints_for(chain_id)
        if not endpoints:
            return None

        await self._monitor.check_all(endpoints)
        if not any(e.is_active for e in endpoints):
            # Nothing answered: publish DOWN with empty chain metrics
            snapshot = NetworkHealthSnapshot.capture(
                chain_id=chain_id,
                status=aggregate_status(endpoints),
                congestion_level=CongestionLevel.LOW,
                metrics=NetworkHealthMetrics(),
                endpoints=endpoints,
                captured_at=datetime.now(timezone.utc),
            )
            return self._publish(chain_id, snapshot, f"all {len(endpoints)} endpoints unreachable")

        sample = await self._sampler.sample(chain_id, endpoints)

        previous = self._snapshot
        previous_gas = previous.metrics.gas_price_wei if previous and previous.chain_id == chain_id else None
        avg_response = average_response_time(endpoints)

        metrics = NetworkHealthMetrics(
            avg_response_time_ms=avg_response,
            tx_success_rate_pct=sample.tx_success_rate_pct,
            avg_block_time_sec=sample.avg_block_time_sec,
            gas_price_trend=gas_price_trend(previous_gas, sample.gas_price_wei),
            last_block_number=sample.last_block_number,
            gas_price_wei=sample.gas_price_wei,
        )
        snapshot = NetworkHealthSnapshot.capture(
            chain_id=chain_id,
            status=aggregate_status(endpoints),
            congestion_level=estimate_congestion(sample.gas_price_wei, avg_response),
            metrics=metrics,
            endpoints=endpoints,
            captured_at=datetime.now(timezone.utc),
        )

        return self._publish(
            chain_id, snapshot,
            f"avg={avg_response:.0f}ms, block={sample.last_block_number} via {sample.source_url}",
        )

    def _publish(self, chain_id: int, snapshot: NetworkHealthSnapshot, detail: str) -> NetworkHealthSnapshot:
        if chain_id != self._chain_id:
            # Chain switched mid-refresh; do not publish for the new chain
            return snapshot

        self._snapshot = snapshot
        self._captured_at_mono = self._clock()
        self._last_error = None
        self._refreshes += 1
        logger.info(
            f"[health_cache] Chain {chain_id}: {snapshot.status.value}, "
            f"congestion={snapshot.congestion_level.value}, {detail}"
        )
        return snapshot

    def get_alerts(self) -> List[NetworkHealthAlert]:
        """Alerts for the last published snapshot (empty if none)."""
        if self._snapshot is None:
            return []
        return evaluate_alerts(self._snapshot, self._config)

    # -------------------------------------------------------------------------
    # Background refresh
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start periodic refreshing. Must be called from a running event loop."""
        if self.is_running:
            return
        self._timer_task = asyncio.ensure_future(self._refresh_loop())
        logger.info(f"[health_cache] Background refresh started (every {self._config.refresh_interval_ms}ms)")

    async def stop(self) -> None:
        """Cancel periodic refreshing and wait for the loop to exit.

        A refresh already in flight is shared with other callers, so it is
        allowed to finish rather than cancelled.
        """
        task = self._timer_task
        self._timer_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        inflight = self._inflight
        if inflight is not None and not inflight.done():
            await asyncio.wait([inflight])
        logger.info("[health_cache] Background refresh stopped")

    async def _refresh_loop(self) -> None:
        interval_sec = self._config.refresh_interval_ms / 1000.0
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug(f"[health_cache] Scheduled refresh failed: {e}")
            await asyncio.sleep(interval_sec)

    async def __aenter__(self) -> "HealthCache":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def get_metrics(self) -> Dict[str, Any]:
        """Get cache metrics."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total > 0 else 0.0,
            "refreshes": self._refreshes,
            "failed_refreshes": self._failed_refreshes,
            "running": self.is_running,
            "monitor": self._monitor.get_metrics(),
        }
