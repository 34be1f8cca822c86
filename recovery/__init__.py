"""
recovery package

Error classification, recovery catalog, retry/backoff, consent and the
recovery orchestrator.
"""
from .catalog import message_for
from .classifier import classify_error
from .consent import ConsentGate
from .environment import check_client_compatibility, wallet_guidance
from .models import (
    ErrorCategory,
    RecoveryAction,
    RecoveryActionType,
    RecoveryAttempt,
    RecoveryResult,
    Severity,
    UserMessage,
)
from .orchestrator import RecoveryOrchestrator
from .retry import backoff_delays, retry_with_backoff
from .session import RecoverySession

__all__ = [
    'ConsentGate',
    'ErrorCategory',
    'RecoveryAction',
    'RecoveryActionType',
    'RecoveryAttempt',
    'RecoveryOrchestrator',
    'RecoveryResult',
    'RecoverySession',
    'Severity',
    'UserMessage',
    'backoff_delays',
    'check_client_compatibility',
    'classify_error',
    'message_for',
    'retry_with_backoff',
    'wallet_guidance',
]
