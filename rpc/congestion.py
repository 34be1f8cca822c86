"""rpc/congestion.py - Congestion Estimation

Pure functions converting gas price and RPC latency into a coarse congestion
level, plus the helpers the health cache uses to build snapshot metrics.

Thresholds (strict comparisons, the higher implied level wins):
    HIGH   : gas > 100 Gwei  or  avg response > 5000 ms
    MEDIUM : gas > 50 Gwei   or  avg response > 2000 ms
    LOW    : otherwise
"""

from __future__ import annotations

from typing import Optional, Sequence

from .models import BlockInfo, CongestionLevel, Endpoint, GasPriceTrend

WEI_PER_GWEI = 10**9

HIGH_GAS_GWEI = 100.0
MEDIUM_GAS_GWEI = 50.0
HIGH_RESPONSE_MS = 5000.0
MEDIUM_RESPONSE_MS = 2000.0

GAS_TREND_BAND = 0.05  # +-5% counts as stable


def estimate_congestion(gas_price_wei: int, avg_response_ms: float) -> CongestionLevel:
    gas_gwei = gas_price_wei / WEI_PER_GWEI
    if gas_gwei > HIGH_GAS_GWEI or avg_response_ms > HIGH_RESPONSE_MS:
        return CongestionLevel.HIGH
    if gas_gwei > MEDIUM_GAS_GWEI or avg_response_ms > MEDIUM_RESPONSE_MS:
        return CongestionLevel.MEDIUM
    return CongestionLevel.LOW


def average_response_time(endpoints: Sequence[Endpoint]) -> float:
    """Mean last-probe response time; 0.0 for an empty pool."""
    if not endpoints:
        return 0.0
    return sum(e.metrics.response_time_ms for e in endpoints) / len(endpoints)


def average_block_time(blocks: Sequence[BlockInfo]) -> float:
    """Average seconds between consecutive blocks, newest first.

    Returns 0.0 when fewer than two blocks are available.
    """
    if len(blocks) < 2:
        return 0.0
    diffs = [
        newer.timestamp_sec - older.timestamp_sec
        for newer, older in zip(blocks, blocks[1:])
    ]
    return sum(diffs) / len(diffs)


def gas_price_trend(previous_wei: Optional[int], current_wei: int) -> GasPriceTrend:
    """Compare the current gas price with the previous sample."""
    if not previous_wei:
        return GasPriceTrend.STABLE
    change = (current_wei - previous_wei) / previous_wei
    if change > GAS_TREND_BAND:
        return GasPriceTrend.INCREASING
    if change < -GAS_TREND_BAND:
        return GasPriceTrend.DECREASING
    return GasPriceTrend.STABLE


def tx_success_rate_proxy(tx_count: int) -> float:
    """Crude success-rate proxy from the latest block's transaction count."""
    return float(min(100, tx_count * 10))
