"""rpc/alerts.py

Health alerts derived from a NetworkHealthSnapshot.

Alert types:
- rpc_failure: endpoint down, or success rate under threshold
- slow_response: endpoint latency over threshold
- high_congestion: chain congestion level HIGH (MEDIUM -> low severity)
- block_delay: average block time over threshold

Pure: takes a snapshot and thresholds, returns alerts. Delivery is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from config.runtime_schema import MonitorConfig
from .models import CongestionLevel, EndpointStatus, NetworkHealthSnapshot


class AlertType(str, Enum):
    RPC_FAILURE = "rpc_failure"
    SLOW_RESPONSE = "slow_response"
    HIGH_CONGESTION = "high_congestion"
    BLOCK_DELAY = "block_delay"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class NetworkHealthAlert:
    type: AlertType
    severity: AlertSeverity
    message: str
    chain_id: int
    endpoint_url: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "chain_id": self.chain_id,
            "endpoint_url": self.endpoint_url,
            "timestamp": self.timestamp.isoformat(),
        }


def evaluate_alerts(
    snapshot: NetworkHealthSnapshot,
    config: Optional[MonitorConfig] = None,
) -> List[NetworkHealthAlert]:
    """Build alerts for one snapshot.

    Args:
        snapshot: Published health snapshot.
        config: Thresholds (defaults if None).

    Returns:
        Alerts ordered endpoint-level first, then chain-level.
    """
    if config is None:
        config = MonitorConfig()

    alerts: List[NetworkHealthAlert] = []
    chain_id = snapshot.chain_id

    for endpoint in snapshot.endpoints:
        metrics = endpoint.metrics
        if endpoint.status == EndpointStatus.DOWN:
            severity = AlertSeverity.HIGH if snapshot.status == EndpointStatus.DOWN else AlertSeverity.MEDIUM
            alerts.append(NetworkHealthAlert(
                type=AlertType.RPC_FAILURE,
                severity=severity,
                message=f"RPC endpoint {endpoint.url} is down ({metrics.error_count} consecutive errors)",
                chain_id=chain_id,
                endpoint_url=endpoint.url,
            ))
            continue

        if metrics.success_rate_pct < config.alert_success_rate_pct:
            alerts.append(NetworkHealthAlert(
                type=AlertType.RPC_FAILURE,
                severity=AlertSeverity.MEDIUM,
                message=f"RPC endpoint {endpoint.url} success rate {metrics.success_rate_pct:.0f}%",
                chain_id=chain_id,
                endpoint_url=endpoint.url,
            ))

        if metrics.response_time_ms > config.alert_response_time_ms:
            alerts.append(NetworkHealthAlert(
                type=AlertType.SLOW_RESPONSE,
                severity=AlertSeverity.LOW,
                message=f"RPC endpoint {endpoint.url} responded in {metrics.response_time_ms:.0f}ms",
                chain_id=chain_id,
                endpoint_url=endpoint.url,
            ))

    if snapshot.congestion_level == CongestionLevel.HIGH:
        alerts.append(NetworkHealthAlert(
            type=AlertType.HIGH_CONGESTION,
            severity=AlertSeverity.HIGH,
            message="Network congestion is high",
            chain_id=chain_id,
        ))
    elif snapshot.congestion_level == CongestionLevel.MEDIUM:
        alerts.append(NetworkHealthAlert(
            type=AlertType.HIGH_CONGESTION,
            severity=AlertSeverity.LOW,
            message="Network congestion is elevated",
            chain_id=chain_id,
        ))

    block_time = snapshot.metrics.avg_block_time_sec
    if block_time > config.alert_block_time_sec:
        alerts.append(NetworkHealthAlert(
            type=AlertType.BLOCK_DELAY,
            severity=AlertSeverity.MEDIUM,
            message=f"Average block time {block_time:.1f}s exceeds {config.alert_block_time_sec:.0f}s",
            chain_id=chain_id,
        ))

    return alerts
