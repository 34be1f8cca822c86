"""
rpc/sampler.py

Chain Sampler - gas price, tx-count proxy and recent block timing from the
first active endpoint that answers, falling back to the next one on failure.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .congestion import average_block_time, tx_success_rate_proxy
from .errors import RefreshError
from .models import BlockInfo, ChainClient, Endpoint

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SAMPLE_SIZE = 10
DEFAULT_SAMPLE_TIMEOUT_MS = 10_000


@dataclass(frozen=True)
class ChainSample:
    source_url: str
    gas_price_wei: int
    tx_success_rate_pct: float
    blocks: Tuple[BlockInfo, ...]  # newest first

    @property
    def last_block_number(self) -> int:
        return self.blocks[0].number if self.blocks else 0

    @property
    def avg_block_time_sec(self) -> float:
        return average_block_time(self.blocks)


class ChainSampler:
    """Collects chain-level metrics for a health snapshot."""

    def __init__(
        self,
        client_provider: Callable[[Endpoint], ChainClient],
        block_sample_size: int = DEFAULT_BLOCK_SAMPLE_SIZE,
        timeout_ms: int = DEFAULT_SAMPLE_TIMEOUT_MS,
    ):
        self._client_provider = client_provider
        self._block_sample_size = block_sample_size
        self._timeout_sec = timeout_ms / 1000.0

    async def fetch_blocks(self, client: ChainClient, count: Optional[int] = None) -> List[BlockInfo]:
        """Fetch the `count` most recent blocks, newest first."""
        count = count or self._block_sample_size
        latest = await client.get_latest_block_number()
        numbers = [latest - i for i in range(count) if latest - i >= 0]
        blocks = await asyncio.gather(*(client.get_block(n) for n in numbers))
        return list(blocks)

    async def sample_endpoint(self, endpoint: Endpoint) -> ChainSample:
        client = self._client_provider(endpoint)
        gas_price = await client.get_gas_price()
        latest_block = await client.get_latest_block()
        blocks = await self.fetch_blocks(client)
        return ChainSample(
            source_url=endpoint.url,
            gas_price_wei=int(gas_price),
            tx_success_rate_pct=tx_success_rate_proxy(len(latest_block.transactions)),
            blocks=tuple(blocks),
        )

    async def sample(self, chain_id: int, endpoints: Sequence[Endpoint]) -> ChainSample:
        """
        Sample chain data from active endpoints in order.

        Raises:
            RefreshError: if every active endpoint fails or times out (or none is active)
        """
        tried: List[str] = []
        last_error: Optional[BaseException] = None

        for endpoint in endpoints:
            if not endpoint.is_active:
                continue
            tried.append(endpoint.url)
            try:
                return await asyncio.wait_for(self.sample_endpoint(endpoint), self._timeout_sec)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(f"[sampler] Timed out after {self._timeout_sec:.1f}s on {endpoint.url}, trying next endpoint")
            except Exception as e:
                last_error = e
                logger.warning(f"[sampler] Failed to fetch data from {endpoint.url}, trying next endpoint: {e}")

        raise RefreshError(chain_id, tried) from last_error
