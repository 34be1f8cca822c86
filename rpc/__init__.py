"""
rpc package

Endpoint probing, health monitoring, congestion estimation, failover and
snapshot caching for blockchain RPC endpoints.
"""
from .alerts import AlertSeverity, AlertType, NetworkHealthAlert, evaluate_alerts
from .cache import HealthCache
from .congestion import estimate_congestion
from .errors import RefreshError, RpcHealthError, UnsupportedChainError
from .failover import FailoverManager, select_alternative
from .models import (
    BlockInfo,
    ChainClient,
    CongestionLevel,
    Endpoint,
    EndpointMetrics,
    EndpointStatus,
    GasPriceTrend,
    LatestBlock,
    NetworkHealthMetrics,
    NetworkHealthSnapshot,
    ProbeResult,
)
from .monitor import HealthMonitor, aggregate_status
from .prober import EndpointProber
from .registry import EndpointRegistry
from .sampler import ChainSample, ChainSampler

__all__ = [
    'AlertSeverity',
    'AlertType',
    'BlockInfo',
    'ChainClient',
    'ChainSample',
    'ChainSampler',
    'CongestionLevel',
    'Endpoint',
    'EndpointMetrics',
    'EndpointProber',
    'EndpointRegistry',
    'EndpointStatus',
    'FailoverManager',
    'GasPriceTrend',
    'HealthCache',
    'HealthMonitor',
    'LatestBlock',
    'NetworkHealthAlert',
    'NetworkHealthMetrics',
    'NetworkHealthSnapshot',
    'ProbeResult',
    'RefreshError',
    'RpcHealthError',
    'UnsupportedChainError',
    'aggregate_status',
    'estimate_congestion',
    'evaluate_alerts',
    'select_alternative',
]
