"""
rpc/models.py

Data structures for endpoint health monitoring: endpoint records, probe
results, chain client interface and the aggregate health snapshot.
"""
import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class EndpointStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


class CongestionLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GasPriceTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass
class EndpointMetrics:
    """Last-probe metrics for one endpoint."""
    response_time_ms: float = 0.0
    success_rate_pct: float = 100.0  # 100 after a successful probe, 0 after a failure
    error_count: int = 0             # consecutive failed probes
    last_checked_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response_time_ms": self.response_time_ms,
            "success_rate_pct": self.success_rate_pct,
            "error_count": self.error_count,
            "last_checked_at": self.last_checked_at.isoformat() if self.last_checked_at else None,
        }


@dataclass
class Endpoint:
    """
    One RPC provider for a chain.

    Mutated in place by HealthMonitor only. Invariant: status DOWN implies
    is_active False.
    """
    url: str
    chain_id: int
    status: EndpointStatus = EndpointStatus.HEALTHY
    metrics: EndpointMetrics = field(default_factory=EndpointMetrics)
    is_active: bool = True

    @property
    def score(self) -> float:
        """Failover score, lower is better."""
        return self.metrics.response_time_ms + (100.0 - self.metrics.success_rate_pct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "chain_id": self.chain_id,
            "status": self.status.value,
            "metrics": self.metrics.to_dict(),
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single liveness probe."""
    url: str
    success: bool
    latency_ms: float
    block_number: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class BlockInfo:
    number: int
    timestamp_sec: int


@dataclass(frozen=True)
class LatestBlock:
    number: int
    transactions: Tuple[Any, ...] = ()


class ChainClient(ABC):
    """
    Raw chain client for one endpoint.

    Transport is supplied by the caller; the health subsystem uses only these
    four primitive calls.
    """

    @abstractmethod
    async def get_latest_block_number(self) -> int:
        pass

    @abstractmethod
    async def get_block(self, number: int) -> BlockInfo:
        pass

    @abstractmethod
    async def get_gas_price(self) -> int:
        """Current gas price in wei."""
        pass

    @abstractmethod
    async def get_latest_block(self) -> LatestBlock:
        pass


@dataclass(frozen=True)
class NetworkHealthMetrics:
    avg_response_time_ms: float = 0.0
    tx_success_rate_pct: float = 0.0
    avg_block_time_sec: float = 0.0
    gas_price_trend: GasPriceTrend = GasPriceTrend.STABLE
    last_block_number: int = 0
    gas_price_wei: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avg_response_time_ms": self.avg_response_time_ms,
            "tx_success_rate_pct": self.tx_success_rate_pct,
            "avg_block_time_sec": self.avg_block_time_sec,
            "gas_price_trend": self.gas_price_trend.value,
            "last_block_number": self.last_block_number,
            "gas_price_wei": self.gas_price_wei,
        }


@dataclass(frozen=True)
class NetworkHealthSnapshot:
    """
    Aggregate health view for one chain at one point in time.

    Endpoint records are copied at capture time, so later probe cycles never
    mutate a published snapshot.
    """
    chain_id: int
    status: EndpointStatus
    congestion_level: CongestionLevel
    metrics: NetworkHealthMetrics
    endpoints: Tuple[Endpoint, ...]
    captured_at: datetime

    @classmethod
    def capture(
        cls,
        chain_id: int,
        status: EndpointStatus,
        congestion_level: CongestionLevel,
        metrics: NetworkHealthMetrics,
        endpoints: List[Endpoint],
        captured_at: datetime,
    ) -> "NetworkHealthSnapshot":
        return cls(
            chain_id=chain_id,
            status=status,
            congestion_level=congestion_level,
            metrics=metrics,
            endpoints=tuple(copy.deepcopy(e) for e in endpoints),
            captured_at=captured_at,
        )

    @property
    def healthy_endpoints(self) -> List[Endpoint]:
        return [e for e in self.endpoints if e.status == EndpointStatus.HEALTHY]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "status": self.status.value,
            "congestion_level": self.congestion_level.value,
            "metrics": self.metrics.to_dict(),
            "endpoints": [e.to_dict() for e in self.endpoints],
            "captured_at": self.captured_at.isoformat(),
        }
