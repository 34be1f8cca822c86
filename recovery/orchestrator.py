"""
recovery/orchestrator.py

Recovery Orchestrator - classify an error, build the user message and try the
automatic recovery actions in catalog order until one succeeds.

HARD RULES:
- Never raises: failures end up in RecoveryAttempt.detail / recovered=False
- Stops at the first successful automatic action
- Manual actions are never executed automatically
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from config.runtime_schema import RetryConfig
from rpc.failover import select_alternative
from rpc.models import Endpoint
from .catalog import message_for
from .classifier import classify_error
from .consent import ConsentGate
from .models import (
    ErrorCategory,
    RecoveryAction,
    RecoveryActionType,
    RecoveryAttempt,
    RecoveryResult,
)
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

Callback = Callable[..., Union[None, Awaitable[None]]]

GUIDANCE_ACTIONS = (
    RecoveryActionType.INSTALL_WALLET,
    RecoveryActionType.UPDATE_ENVIRONMENT,
    RecoveryActionType.MANUAL_GUIDANCE,
)


def log_recovery_attempt(attempt: RecoveryAttempt) -> None:
    """Structured log line for one recovery attempt."""
    logger.info(f"[recovery] Recovery attempt: {attempt.to_dict()}")


async def _invoke(callback: Optional[Callback], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class RecoveryOrchestrator:
    """
    Top-level error recovery coordinator.

    Usage:
        orchestrator = RecoveryOrchestrator(
            on_switch_endpoint=lambda endpoint: client.use(endpoint.url),
            on_recovered=lambda: ui.clear_error(),
        )
        result = await orchestrator.recover(error, candidate_endpoints=pool)
    """

    def __init__(
        self,
        consent_gate: Optional[ConsentGate] = None,
        retry_config: Optional[RetryConfig] = None,
        retry_operation: Optional[Callable[[], Awaitable[Any]]] = None,
        on_retry: Optional[Callback] = None,
        on_switch_endpoint: Optional[Callback] = None,
        on_recovered: Optional[Callback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize RecoveryOrchestrator.

        Args:
            consent_gate: Approval step for actions that require consent
            retry_config: Backoff schedule for retry_operation
            retry_operation: Caller's operation to re-run on RETRY; when given,
                             RETRY succeeds only if the operation does
            on_retry: Called on RETRY when no retry_operation is given; RETRY is
                      then reported as succeeded at face value
            on_switch_endpoint: Called with the selected alternative Endpoint
            on_recovered: Called once recovery succeeds
            sleep: Awaitable sleep used between retry attempts
        """
        self.consent_gate = consent_gate or ConsentGate()
        self._retry_config = retry_config or RetryConfig()
        self._retry_operation = retry_operation
        self._on_retry = on_retry
        self._on_switch_endpoint = on_switch_endpoint
        self._on_recovered = on_recovered
        self._sleep = sleep

    @property
    def can_retry(self) -> bool:
        """Whether RETRY has anything to run or signal."""
        return self._retry_operation is not None or self._on_retry is not None

    async def recover(
        self,
        error: Union[BaseException, str],
        context_hint: Optional[str] = None,
        candidate_endpoints: Optional[Sequence[Endpoint]] = None,
        current_endpoint: Optional[Endpoint] = None,
    ) -> RecoveryResult:
        """
        Attempt automatic recovery from an error.

        RETRY runs only when retry_operation or on_retry is configured;
        otherwise it is skipped. For categories whose only automatic action
        is RETRY (Wallet) that means recovered=False with no attempts.

        Args:
            error: The triggering error
            context_hint: Optional category name overriding classification
            candidate_endpoints: Pool for SWITCH_ENDPOINT
            current_endpoint: Endpoint that failed (defaults to the first candidate)

        Returns:
            RecoveryResult with recovered flag, user message and attempts made
        """
        category = classify_error(error, context_hint)
        message = message_for(category)
        attempts = []
        reason = f"Attempting to recover from {category.value} error"

        for action in message.actions:
            if not action.automatic:
                continue

            if action.type == RecoveryActionType.RETRY and not self.can_retry:
                logger.debug("[recovery] Nothing to retry, skipping RETRY")
                continue

            consent = await self.consent_gate.request_consent(
                action, reason, self.consent_gate.default_timeout_ms
            )
            if not consent:
                logger.info(f"[recovery] Consent denied for {action.type.value}, skipping")
                continue

            attempt = await self.execute_action(
                action, category, error, candidate_endpoints, current_endpoint
            )
            attempts.append(attempt)

            if attempt.succeeded:
                await self.notify_recovered()
                return RecoveryResult(recovered=True, category=category, message=message, attempts=attempts)

        logger.warning(
            f"[recovery] Could not recover from {category.value} error automatically "
            f"({len(attempts)} attempt(s)): {error}"
        )
        return RecoveryResult(recovered=False, category=category, message=message, attempts=attempts)

    async def execute_action(
        self,
        action: RecoveryAction,
        category: ErrorCategory,
        error: Union[BaseException, str],
        candidate_endpoints: Optional[Sequence[Endpoint]] = None,
        current_endpoint: Optional[Endpoint] = None,
    ) -> RecoveryAttempt:
        """Execute one action (no consent check) and return the logged attempt."""
        attempt = RecoveryAttempt(error_category=category, action=action, error_message=str(error))

        try:
            if action.type == RecoveryActionType.RETRY:
                await self._execute_retry(attempt)
            elif action.type == RecoveryActionType.SWITCH_ENDPOINT:
                await self._execute_switch(attempt, candidate_endpoints, current_endpoint)
            elif action.type in GUIDANCE_ACTIONS:
                attempt.succeeded = True
                attempt.detail = "User guidance provided"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            attempt.succeeded = False
            attempt.detail = f"Recovery failed: {e}"

        log_recovery_attempt(attempt)
        return attempt

    async def _execute_retry(self, attempt: RecoveryAttempt) -> None:
        if self._retry_operation is not None:
            try:
                await retry_with_backoff(self._retry_operation, self._retry_config, sleep=self._sleep)
            except Exception as e:
                attempt.detail = f"Retry failed: {e}"
                return
            attempt.succeeded = True
            attempt.detail = "Retried operation succeeded"
            return

        await _invoke(self._on_retry)
        attempt.succeeded = True
        attempt.detail = "Retry requested"

    async def _execute_switch(
        self,
        attempt: RecoveryAttempt,
        candidate_endpoints: Optional[Sequence[Endpoint]],
        current_endpoint: Optional[Endpoint],
    ) -> None:
        if not candidate_endpoints:
            attempt.detail = "No candidate endpoints supplied"
            return

        current = current_endpoint if current_endpoint is not None else candidate_endpoints[0]
        alternative = select_alternative(current, candidate_endpoints)
        if alternative is None:
            attempt.detail = "No alternative endpoint available"
            return

        await _invoke(self._on_switch_endpoint, alternative)
        attempt.succeeded = True
        attempt.detail = f"Switched to {alternative.url}"
        logger.warning(f"[recovery] Switched endpoint {current.url} -> {alternative.url}")

    async def notify_recovered(self) -> None:
        try:
            await _invoke(self._on_recovered)
        except Exception as e:
            logger.error(f"[recovery] on_recovered callback failed: {e}")
