"""
recovery/models.py

Data structures for error classification and recovery.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ErrorCategory(str, Enum):
    NETWORK = "network"
    WALLET = "wallet"
    TRANSACTION = "transaction"
    BROWSER = "browser"


class RecoveryActionType(str, Enum):
    RETRY = "retry"
    SWITCH_ENDPOINT = "switch_endpoint"
    INSTALL_WALLET = "install_wallet"
    UPDATE_ENVIRONMENT = "update_environment"
    MANUAL_GUIDANCE = "manual_guidance"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class RecoveryAction:
    type: RecoveryActionType
    description: str
    automatic: bool
    requires_consent: bool
    action_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "automatic": self.automatic,
            "requires_consent": self.requires_consent,
            "action_url": self.action_url,
        }


@dataclass(frozen=True)
class UserMessage:
    title: str
    body: str
    severity: Severity
    actions: Tuple[RecoveryAction, ...] = ()

    @property
    def automatic_actions(self) -> List[RecoveryAction]:
        return [a for a in self.actions if a.automatic]

    def find_action(self, action_type: RecoveryActionType) -> Optional[RecoveryAction]:
        for action in self.actions:
            if action.type == action_type:
                return action
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "severity": self.severity.value,
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class RecoveryAttempt:
    """One executed recovery action. Append-only within a recovery session."""
    error_category: ErrorCategory
    action: RecoveryAction
    succeeded: bool = False
    detail: Optional[str] = None
    error_message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "category": self.error_category.value,
            "action": self.action.type.value,
            "success": self.succeeded,
            "error": self.error_message,
            "details": self.detail,
        }


@dataclass
class RecoveryResult:
    recovered: bool
    category: ErrorCategory
    message: UserMessage
    attempts: List[RecoveryAttempt] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recovered": self.recovered,
            "category": self.category.value,
            "message": self.message.to_dict(),
            "attempts": [a.to_dict() for a in self.attempts],
        }
