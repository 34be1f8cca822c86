"""
rpc/monitor.py

Health Monitor - параллельная проверка latency и availability эндпоинтов.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .models import Endpoint, EndpointStatus, ProbeResult
from .prober import EndpointProber

logger = logging.getLogger(__name__)


def aggregate_status(endpoints: Sequence[Endpoint]) -> EndpointStatus:
    """
    Derive chain status from endpoint statuses.

    HEALTHY if every endpoint is healthy, DOWN if none is (or there are no
    endpoints at all), DEGRADED otherwise.
    """
    healthy = sum(1 for e in endpoints if e.status == EndpointStatus.HEALTHY)
    if endpoints and healthy == len(endpoints):
        return EndpointStatus.HEALTHY
    if healthy == 0:
        return EndpointStatus.DOWN
    return EndpointStatus.DEGRADED


def apply_probe_result(endpoint: Endpoint, result: ProbeResult, checked_at: Optional[datetime] = None) -> Endpoint:
    """Write a probe outcome into the endpoint record (last-probe semantics)."""
    metrics = endpoint.metrics
    metrics.response_time_ms = result.latency_ms
    metrics.last_checked_at = checked_at or datetime.now(timezone.utc)

    if result.success:
        metrics.success_rate_pct = 100.0
        metrics.error_count = 0
        endpoint.status = EndpointStatus.HEALTHY
        endpoint.is_active = True
    else:
        metrics.success_rate_pct = 0.0
        metrics.error_count += 1
        endpoint.status = EndpointStatus.DOWN
        endpoint.is_active = False

    return endpoint


class HealthMonitor:
    """
    Мониторинг здоровья RPC эндпоинтов.

    Features:
    - Concurrent fan-out: one probe per endpoint, joined before returning
    - Each endpoint record is updated independently (no cross-endpoint locks)
    - Probe failures are encoded in endpoint status, never raised
    """

    def __init__(self, prober: EndpointProber):
        self._prober = prober

        # Metrics
        self._probes = 0
        self._failures = 0
        self._batches = 0

    async def check_endpoint(self, endpoint: Endpoint) -> Endpoint:
        """
        Probe one endpoint and update its record.

        Args:
            endpoint: Endpoint record (mutated in place)

        Returns:
            The same endpoint record
        """
        was_down = endpoint.status == EndpointStatus.DOWN
        result = await self._prober.probe(endpoint)
        apply_probe_result(endpoint, result)

        self._probes += 1
        if not result.success:
            self._failures += 1
            logger.warning(
                f"[health_monitor] {endpoint.url} is down "
                f"(errors={endpoint.metrics.error_count}, {result.error})"
            )
        elif was_down:
            logger.info(f"[health_monitor] {endpoint.url} recovered in {result.latency_ms:.0f}ms")

        return endpoint

    async def check_all(self, endpoints: List[Endpoint]) -> None:
        """
        Probe all endpoints concurrently.

        Completes when every probe has resolved, whatever the outcomes.
        """
        if not endpoints:
            return

        self._batches += 1
        await asyncio.gather(*(self.check_endpoint(e) for e in endpoints))

        healthy = sum(1 for e in endpoints if e.status == EndpointStatus.HEALTHY)
        logger.debug(f"[health_monitor] Checked {len(endpoints)} endpoints, {healthy} healthy")
        if healthy == 0:
            logger.error(f"[health_monitor] No healthy endpoints out of {len(endpoints)}!")

    def get_metrics(self) -> Dict[str, Any]:
        """Get monitoring metrics."""
        return {
            "batches": self._batches,
            "probes": self._probes,
            "failures": self._failures,
            "failure_rate": self._failures / self._probes if self._probes else 0.0,
        }
