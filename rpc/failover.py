"""
rpc/failover.py

Failover - выбор лучшего здорового эндпоинта взамен деградировавшего.
"""
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from .models import Endpoint, EndpointStatus

logger = logging.getLogger(__name__)


def select_alternative(current: Optional[Endpoint], pool: Sequence[Endpoint]) -> Optional[Endpoint]:
    """
    Pick the best healthy alternative to `current`.

    Candidates are HEALTHY, active and have a different URL. Score is
    response_time_ms + (100 - success_rate_pct), lower wins; ties keep pool
    order (sorted() is stable).

    Returns:
        Best alternative or None if no candidate qualifies
    """
    current_url = current.url if current is not None else None
    candidates = [
        e for e in pool
        if e.status == EndpointStatus.HEALTHY and e.is_active and e.url != current_url
    ]
    if not candidates:
        return None
    return sorted(candidates, key=lambda e: e.score)[0]


class FailoverManager:
    """
    Менеджер переключения между RPC провайдерами.

    Features:
    - Keeps the active endpoint while it stays healthy
    - Switches to select_alternative() when it degrades or fails
    - Deterministic selection (no randomness)
    """

    def __init__(self, pool: Sequence[Endpoint]):
        """
        Args:
            pool: Live endpoint records (shared with HealthMonitor)
        """
        self._pool = pool
        self._active: Optional[Endpoint] = None
        self._last_switch_time: Optional[float] = None
        self._switch_count = 0

    def get_active_endpoint(self) -> Optional[Endpoint]:
        """
        Получить активный эндпоинт.

        Returns:
            Current endpoint while it is healthy, otherwise the best alternative
        """
        if self._active is not None and self._is_usable(self._active):
            return self._active

        best = select_alternative(self._active, self._pool)
        if best is not self._active:
            self._switch(best)
        return best

    def report_failure(self, url: str) -> Optional[Endpoint]:
        """
        Report a failed request on an endpoint and switch if it is the active one.

        Returns:
            The endpoint to use from now on (may be None)
        """
        if self._active is None or self._active.url != url:
            return self._active

        best = select_alternative(self._active, self._pool)
        self._switch(best)
        return best

    def _switch(self, new: Optional[Endpoint]) -> None:
        old_url = self._active.url if self._active is not None else None
        self._active = new
        self._last_switch_time = time.time()
        self._switch_count += 1

        if new is not None:
            logger.warning(f"[failover] Switching from {old_url} to {new.url}")
        else:
            logger.error("[failover] No healthy endpoints available!")

    @staticmethod
    def _is_usable(endpoint: Endpoint) -> bool:
        return endpoint.status == EndpointStatus.HEALTHY and endpoint.is_active

    def get_healthy_endpoints(self) -> List[Endpoint]:
        return [e for e in self._pool if self._is_usable(e)]

    def get_status(self) -> Dict[str, Any]:
        """Get failover manager status."""
        return {
            "active_endpoint": self._active.url if self._active else None,
            "endpoints": {e.url: {"status": e.status.value, "score": e.score} for e in self._pool},
            "switch_count": self._switch_count,
            "last_switch": self._last_switch_time,
        }
