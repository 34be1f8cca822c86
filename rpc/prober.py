"""
rpc/prober.py

Endpoint Prober - one lightweight liveness probe (latest block number).

HARD RULES:
1. Never raises: failures are returned as data.
2. Failed probes still report latency (time-to-failure).
3. Pure measurement: the caller updates endpoint state.
"""
import asyncio
import logging
import time
from typing import Callable

from .models import ChainClient, Endpoint, ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_MS = 5000


class EndpointProber:
    """Measures roundtrip time of get_latest_block_number against one endpoint."""

    def __init__(
        self,
        client_provider: Callable[[Endpoint], ChainClient],
        timeout_ms: float = DEFAULT_PROBE_TIMEOUT_MS,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Args:
            client_provider: Resolves the chain client for an endpoint
                             (usually EndpointRegistry.client_for)
            timeout_ms: Upper bound for a single probe
            clock: Monotonic clock in seconds
        """
        self._client_provider = client_provider
        self._timeout_sec = timeout_ms / 1000.0
        self._clock = clock

    async def probe(self, endpoint: Endpoint) -> ProbeResult:
        start = self._clock()
        try:
            client = self._client_provider(endpoint)
            block_number = await asyncio.wait_for(
                client.get_latest_block_number(), timeout=self._timeout_sec
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            latency_ms = (self._clock() - start) * 1000
            logger.warning(f"[prober] {endpoint.url} timed out after {latency_ms:.0f}ms")
            return ProbeResult(
                url=endpoint.url, success=False, latency_ms=latency_ms, error="timeout"
            )
        except Exception as e:
            latency_ms = (self._clock() - start) * 1000
            logger.warning(f"[prober] {endpoint.url} probe failed: {e}")
            return ProbeResult(url=endpoint.url, success=False, latency_ms=latency_ms, error=str(e))

        latency_ms = (self._clock() - start) * 1000
        return ProbeResult(
            url=endpoint.url,
            success=True,
            latency_ms=latency_ms,
            block_number=int(block_number),
        )
