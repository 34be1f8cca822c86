"""config/loader.py

YAML loader for endpoint pools and monitoring/recovery settings.

Design goals:
- No extra deps beyond PyYAML.
- Deterministic config hash (sha256 of file bytes) for logging.
- Validates only the minimal contract; value ranges are checked by runtime_schema.

Expected layout:

    version: 1
    monitor:   {cache_timeout_ms: 10000, refresh_interval_ms: 30000, ...}
    retry:     {max_attempts: 3, initial_delay_ms: 1000, ...}
    recovery:  {consent_timeout_ms: 3000, consent_default: true}
    chains:
      42220:
        endpoints:
          - https://forno.celo.org
          - url: https://rpc.ankr.com/celo
"""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

import yaml

from config.chains import default_endpoint_urls
from config.runtime_schema import MonitorConfig, RecoveryConfig, RetryConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "HEALTH_CONFIG_PATH"

T = TypeVar("T")


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class LoadedConfig:
    path: str
    config_hash: str  # sha256 hex
    version: str
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    recovery: RecoveryConfig = field(default_factory=RecoveryConfig)
    endpoints: Dict[int, List[str]] = field(default_factory=dict)


def _sha256_file(path: Path) -> str:
    b = path.read_bytes()
    return hashlib.sha256(b).hexdigest()


def _require(d: Dict[str, Any], key: str) -> Any:
    if key not in d:
        raise ConfigError(f"Missing required key: {key}")
    return d[key]


def _build_section(cls: Type[T], raw: Any, section: str) -> T:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"{section} must be a mapping")

    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in {section}: {', '.join(map(str, unknown))}")

    try:
        return cls(**raw)
    except ValueError as e:
        raise ConfigError(f"Invalid {section}: {e}") from e


def _parse_endpoints(raw: Any) -> Dict[int, List[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("chains must be a mapping of chain_id -> {endpoints: [...]}")

    result: Dict[int, List[str]] = {}
    for key, chain_cfg in raw.items():
        try:
            chain_id = int(key)
        except (TypeError, ValueError):
            raise ConfigError(f"chain id must be an integer, got: {key}")

        if chain_cfg is None:
            entries = []
        elif isinstance(chain_cfg, dict):
            entries = chain_cfg.get("endpoints") or []
        else:
            raise ConfigError(f"chains.{chain_id} must be a mapping")
        if not isinstance(entries, list):
            raise ConfigError(f"chains.{chain_id}.endpoints must be a list")

        urls: List[str] = []
        for entry in entries:
            url = entry.get("url") if isinstance(entry, dict) else entry
            if not isinstance(url, str) or not url.strip():
                raise ConfigError(f"chains.{chain_id}.endpoints contains an invalid entry: {entry!r}")
            url = url.strip()
            if url in urls:
                raise ConfigError(f"Duplicate endpoint for chain {chain_id}: {url}")
            urls.append(url)

        if not urls:
            urls = default_endpoint_urls(chain_id)
            if not urls:
                raise ConfigError(f"No endpoints configured for chain {chain_id} and no defaults known")
            logger.info(f"[config] Chain {chain_id}: using default endpoints {urls}")

        result[chain_id] = urls
    return result


def load_health_config(path: Optional[str] = None) -> LoadedConfig:
    """Load and minimally validate the health/recovery config.

    Args:
        path: YAML file path. Falls back to $HEALTH_CONFIG_PATH.

    Raises:
        ConfigError: missing file, malformed YAML or invalid values.
    """
    path = path or os.environ.get(CONFIG_PATH_ENV)
    if not path:
        raise ConfigError(f"No config path given and {CONFIG_PATH_ENV} is not set")

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config not found: {p}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML in {p}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{p.name} must be a YAML mapping (dict at top-level)")

    version = str(_require(raw, "version"))

    loaded = LoadedConfig(
        path=str(p),
        config_hash=_sha256_file(p),
        version=version,
        monitor=_build_section(MonitorConfig, raw.get("monitor"), "monitor"),
        retry=_build_section(RetryConfig, raw.get("retry"), "retry"),
        recovery=_build_section(RecoveryConfig, raw.get("recovery"), "recovery"),
        endpoints=_parse_endpoints(raw.get("chains")),
    )
    logger.info(
        f"[config] Loaded {p} (version={version}, chains={sorted(loaded.endpoints)}, "
        f"hash={loaded.config_hash[:12]})"
    )
    return loaded
