import asyncio
from collections import Counter
from typing import Dict, Optional

import pytest

from rpc.errors import UnsupportedChainError
from rpc.models import BlockInfo, ChainClient, Endpoint, EndpointMetrics, EndpointStatus, LatestBlock
from rpc.registry import EndpointRegistry

GWEI = 10**9
CHAIN_ID = 42220


class FakeChainClient(ChainClient):
    """Scripted chain client: no network, configurable failures and delays."""

    def __init__(
        self,
        latest: int = 1000,
        block_time_sec: int = 5,
        gas_price_wei: int = 10 * GWEI,
        tx_count: int = 10,
        fail: bool = False,
        fail_sampling: bool = False,
        delay: float = 0.0,
        sampling_delay: float = 0.0,
        barrier: Optional["ProbeBarrier"] = None,
    ):
        self.latest = latest
        self.block_time_sec = block_time_sec
        self.gas_price_wei = gas_price_wei
        self.tx_count = tx_count
        self.fail = fail
        self.fail_sampling = fail_sampling
        self.delay = delay
        self.sampling_delay = sampling_delay
        self.barrier = barrier
        self.calls = Counter()

    async def get_latest_block_number(self) -> int:
        self.calls["get_latest_block_number"] += 1
        if self.barrier is not None:
            await self.barrier.arrive()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("connection refused")
        return self.latest

    async def get_block(self, number: int) -> BlockInfo:
        self.calls["get_block"] += 1
        if self.fail or self.fail_sampling:
            raise ConnectionError("block fetch failed")
        return BlockInfo(number=number, timestamp_sec=1_700_000_000 + number * self.block_time_sec)

    async def get_gas_price(self) -> int:
        self.calls["get_gas_price"] += 1
        if self.sampling_delay:
            await asyncio.sleep(self.sampling_delay)
        if self.fail or self.fail_sampling:
            raise ConnectionError("gas price unavailable")
        return self.gas_price_wei

    async def get_latest_block(self) -> LatestBlock:
        self.calls["get_latest_block"] += 1
        if self.fail or self.fail_sampling:
            raise ConnectionError("latest block unavailable")
        return LatestBlock(number=self.latest, transactions=tuple(range(self.tx_count)))


class ProbeBarrier:
    """Blocks every probe until `parties` probes are in flight at once."""

    def __init__(self, parties: int):
        self.parties = parties
        self.arrived = 0
        self._event = asyncio.Event()

    async def arrive(self) -> None:
        self.arrived += 1
        if self.arrived >= self.parties:
            self._event.set()
        await self._event.wait()


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def make_endpoint(
    url: str,
    status: EndpointStatus = EndpointStatus.HEALTHY,
    response_time_ms: float = 100.0,
    success_rate_pct: float = 100.0,
    is_active: Optional[bool] = None,
    chain_id: int = CHAIN_ID,
) -> Endpoint:
    if is_active is None:
        is_active = status != EndpointStatus.DOWN
    return Endpoint(
        url=url,
        chain_id=chain_id,
        status=status,
        metrics=EndpointMetrics(response_time_ms=response_time_ms, success_rate_pct=success_rate_pct),
        is_active=is_active,
    )


def make_registry(clients: Dict[str, FakeChainClient], chain_id: int = CHAIN_ID) -> EndpointRegistry:
    def factory(endpoint: Endpoint) -> ChainClient:
        try:
            return clients[endpoint.url]
        except KeyError:
            raise UnsupportedChainError(endpoint.chain_id)

    registry = EndpointRegistry(factory)
    for url in clients:
        registry.add_url(url, chain_id)
    return registry


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def three_clients() -> Dict[str, FakeChainClient]:
    return {
        "https://rpc-a.example": FakeChainClient(),
        "https://rpc-b.example": FakeChainClient(),
        "https://rpc-c.example": FakeChainClient(),
    }
