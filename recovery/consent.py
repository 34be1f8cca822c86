"""
recovery/consent.py

Consent Gate - asynchronous approval for recovery actions that require it.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config.runtime_schema import RecoveryConfig
from .models import RecoveryAction

logger = logging.getLogger(__name__)

ConsentDecider = Callable[[RecoveryAction, str], Awaitable[bool]]


class ConsentGate:
    """
    Asks an injected decider (UI prompt, CLI, policy) for approval.

    - Actions without requires_consent are approved immediately
    - A missing decider or a decider that does not answer within the timeout
      resolves to the configured fallback (True by default)
    - A decider that raises counts as a denial
    """

    def __init__(
        self,
        decider: Optional[ConsentDecider] = None,
        config: Optional[RecoveryConfig] = None,
    ):
        self._decider = decider
        self._config = config or RecoveryConfig()

    @property
    def default_timeout_ms(self) -> int:
        return self._config.consent_timeout_ms

    async def request_consent(
        self,
        action: RecoveryAction,
        reason: str,
        timeout_ms: Optional[float] = None,
    ) -> bool:
        """
        Request approval for an action.

        Args:
            action: Recovery action to approve
            reason: Human-readable reason shown to the approver
            timeout_ms: Wait bound (config default if None)

        Returns:
            True if approved (or no approval needed)
        """
        if not action.requires_consent:
            return True

        fallback = self._config.consent_default
        if timeout_ms is None:
            timeout_ms = self._config.consent_timeout_ms

        logger.info(f"[consent] Requesting consent for: {action.description} ({reason})")

        if self._decider is None:
            logger.info(f"[consent] No approver configured, using default={fallback}")
            return fallback

        try:
            decision = await asyncio.wait_for(self._decider(action, reason), timeout=timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            logger.warning(f"[consent] No decision within {timeout_ms:.0f}ms, using default={fallback}")
            return fallback
        except Exception as e:
            logger.error(f"[consent] Approver failed, treating as denied: {e}")
            return False

        logger.info(f"[consent] {action.type.value}: {'approved' if decision else 'denied'}")
        return bool(decision)
