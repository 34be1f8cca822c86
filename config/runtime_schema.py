"""config/runtime_schema.py

Defines the configuration schema for endpoint monitoring and error recovery.
Implements manual validation to avoid Pydantic dependency.
"""

from dataclasses import dataclass
from typing import Any, Optional


def _validate_range(name: str, value: Any, min_val: float, max_val: Optional[float] = None) -> None:
    try:
        val = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric, got {value}")

    if val < min_val:
        raise ValueError(f"{name} {val} is below minimum {min_val}")
    if max_val is not None and val > max_val:
        raise ValueError(f"{name} {val} is above maximum {max_val}")


@dataclass(frozen=True)
class MonitorConfig:
    """
    Health polling, cache and alerting parameters.
    All durations are in milliseconds.
    """
    # Health Cache
    cache_timeout_ms: int = 10_000
    refresh_interval_ms: int = 30_000

    # Prober
    probe_timeout_ms: int = 5_000

    # Chain Sampler
    block_sample_size: int = 10
    sample_timeout_ms: int = 10_000

    # Alert thresholds
    alert_response_time_ms: float = 2_000.0
    alert_success_rate_pct: float = 50.0
    alert_block_time_sec: float = 15.0

    def __post_init__(self):
        _validate_range("cache_timeout_ms", self.cache_timeout_ms, 0, None)
        _validate_range("refresh_interval_ms", self.refresh_interval_ms, 100, None)
        _validate_range("probe_timeout_ms", self.probe_timeout_ms, 1, 120_000)
        _validate_range("block_sample_size", self.block_sample_size, 2, 100)
        _validate_range("sample_timeout_ms", self.sample_timeout_ms, 1, 120_000)
        _validate_range("alert_response_time_ms", self.alert_response_time_ms, 0, None)
        _validate_range("alert_success_rate_pct", self.alert_success_rate_pct, 0, 100)
        _validate_range("alert_block_time_sec", self.alert_block_time_sec, 0, None)


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff schedule for the retry engine."""
    max_attempts: int = 3
    initial_delay_ms: float = 1_000.0
    backoff_multiplier: float = 2.0
    max_delay_ms: float = 30_000.0
    jitter_ratio: float = 0.0  # 0 = deterministic delays

    def __post_init__(self):
        _validate_range("max_attempts", self.max_attempts, 1, None)
        _validate_range("initial_delay_ms", self.initial_delay_ms, 0, None)
        _validate_range("backoff_multiplier", self.backoff_multiplier, 1.0, None)
        _validate_range("max_delay_ms", self.max_delay_ms, 0, None)
        _validate_range("jitter_ratio", self.jitter_ratio, 0.0, 1.0)


@dataclass(frozen=True)
class RecoveryConfig:
    """Consent gate and orchestrator parameters."""
    consent_timeout_ms: int = 3_000
    consent_default: bool = True

    def __post_init__(self):
        _validate_range("consent_timeout_ms", self.consent_timeout_ms, 0, 600_000)
        if not isinstance(self.consent_default, bool):
            raise ValueError(f"consent_default must be a bool, got {self.consent_default!r}")
