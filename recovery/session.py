"""
recovery/session.py

RecoverySession - stateful recovery for one current error.

Tracks the error, its user message, the attempt log and the success flag.
A new error supersedes the previous one (its attempts are discarded); clearing
the error resets the session.
"""
import logging
from typing import List, Optional, Sequence, Union

from rpc.models import Endpoint
from .catalog import message_for
from .classifier import classify_error
from .models import (
    ErrorCategory,
    RecoveryAction,
    RecoveryActionType,
    RecoveryAttempt,
    RecoveryResult,
    UserMessage,
)
from .orchestrator import RecoveryOrchestrator

logger = logging.getLogger(__name__)

MANUAL_CONSENT_TIMEOUT_MS = 5000


class RecoverySession:
    """
    Drives a RecoveryOrchestrator for the error currently shown to the user.

    Usage:
        session = RecoverySession(orchestrator, candidate_endpoints=pool)
        await session.handle_error(error, context_hint="network")
        if not session.success:
            await session.switch_endpoint()
    """

    def __init__(
        self,
        orchestrator: RecoveryOrchestrator,
        candidate_endpoints: Optional[Sequence[Endpoint]] = None,
        current_endpoint: Optional[Endpoint] = None,
        auto_recover: bool = True,
    ):
        self._orchestrator = orchestrator
        self.candidate_endpoints = candidate_endpoints
        self.current_endpoint = current_endpoint
        self.auto_recover = auto_recover

        self.error: Optional[Union[BaseException, str]] = None
        self.context_hint: Optional[str] = None
        self.category: Optional[ErrorCategory] = None
        self.message: Optional[UserMessage] = None
        self.success = False
        self.in_progress = False
        self._attempts: List[RecoveryAttempt] = []
        self._generation = 0

    @property
    def attempts(self) -> List[RecoveryAttempt]:
        return list(self._attempts)

    def reset(self) -> None:
        """Clear error, message and attempt log."""
        self._generation += 1
        self.error = None
        self.context_hint = None
        self.category = None
        self.message = None
        self.success = False
        self.in_progress = False
        self._attempts = []

    async def handle_error(
        self,
        error: Optional[Union[BaseException, str]],
        context_hint: Optional[str] = None,
    ) -> Optional[RecoveryResult]:
        """
        Set the current error and run automatic recovery if enabled.

        Passing None clears the session.

        Returns:
            RecoveryResult of the automatic run, or None if none ran
        """
        self.reset()
        if error is None:
            return None

        generation = self._generation
        self.error = error
        self.context_hint = context_hint
        self.category = classify_error(error, context_hint)
        self.message = message_for(self.category)

        if not self.auto_recover or not self.message.automatic_actions:
            return None

        self.in_progress = True
        try:
            result = await self._orchestrator.recover(
                error,
                context_hint,
                candidate_endpoints=self.candidate_endpoints,
                current_endpoint=self.current_endpoint,
            )
        finally:
            if generation == self._generation:
                self.in_progress = False

        if generation != self._generation:
            logger.info("[recovery] Error superseded during automatic recovery, discarding result")
            return result

        self._attempts.extend(result.attempts)
        self.success = result.recovered
        return result

    async def trigger_action(self, action: RecoveryAction) -> Optional[RecoveryAttempt]:
        """
        Execute a recovery action the user picked (manual or automatic).

        Returns:
            The recorded attempt, or None if there is no error or consent was denied
        """
        if self.error is None or self.message is None or self.category is None:
            return None

        if action.requires_consent:
            approved = await self._orchestrator.consent_gate.request_consent(
                action,
                f"Attempting to recover from error: {self.message.title}",
                MANUAL_CONSENT_TIMEOUT_MS,
            )
            if not approved:
                return None

        generation = self._generation
        self.in_progress = True
        try:
            attempt = await self._orchestrator.execute_action(
                action,
                self.category,
                self.error,
                candidate_endpoints=self.candidate_endpoints,
                current_endpoint=self.current_endpoint,
            )
        finally:
            if generation == self._generation:
                self.in_progress = False

        if generation != self._generation:
            return attempt

        self._attempts.append(attempt)
        if attempt.succeeded:
            self.success = True
            await self._orchestrator.notify_recovered()
        return attempt

    async def _trigger_type(self, action_type: RecoveryActionType) -> Optional[RecoveryAttempt]:
        if self.message is None:
            return None
        action = self.message.find_action(action_type)
        if action is None:
            return None
        return await self.trigger_action(action)

    async def retry(self) -> Optional[RecoveryAttempt]:
        """Trigger the message's RETRY action, if it has one."""
        return await self._trigger_type(RecoveryActionType.RETRY)

    async def switch_endpoint(self) -> Optional[RecoveryAttempt]:
        """Trigger the message's SWITCH_ENDPOINT action, if it has one."""
        return await self._trigger_type(RecoveryActionType.SWITCH_ENDPOINT)
