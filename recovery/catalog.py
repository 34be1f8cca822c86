"""recovery/catalog.py

Recovery Catalog: static category -> UserMessage mapping.
Action order matters: the orchestrator tries automatic actions in this order.
"""

from __future__ import annotations

from typing import Dict

from .models import ErrorCategory, RecoveryAction, RecoveryActionType, Severity, UserMessage

WALLET_DOWNLOAD_URL = "https://metamask.io/download/"
BROWSER_DOWNLOAD_URL = "https://www.google.com/chrome/"


_CATALOG: Dict[ErrorCategory, UserMessage] = {
    ErrorCategory.NETWORK: UserMessage(
        title="Network Connection Issue",
        body=(
            "Unable to connect to the Celo network. This might be due to network "
            "congestion or RPC endpoint issues."
        ),
        severity=Severity.ERROR,
        actions=(
            RecoveryAction(
                type=RecoveryActionType.RETRY,
                description="Retry the operation",
                automatic=True,
                requires_consent=False,
            ),
            RecoveryAction(
                type=RecoveryActionType.SWITCH_ENDPOINT,
                description="Try a different RPC endpoint",
                automatic=True,
                requires_consent=False,
            ),
        ),
    ),
    ErrorCategory.WALLET: UserMessage(
        title="Wallet Connection Issue",
        body="There was a problem with your wallet connection.",
        severity=Severity.ERROR,
        actions=(
            RecoveryAction(
                type=RecoveryActionType.RETRY,
                description="Retry wallet connection",
                automatic=True,
                requires_consent=False,
            ),
            RecoveryAction(
                type=RecoveryActionType.INSTALL_WALLET,
                description="Install or connect a wallet",
                automatic=False,
                requires_consent=False,
                action_url=WALLET_DOWNLOAD_URL,
            ),
        ),
    ),
    ErrorCategory.TRANSACTION: UserMessage(
        title="Transaction Error",
        body="Your transaction could not be processed.",
        severity=Severity.ERROR,
        actions=(
            RecoveryAction(
                type=RecoveryActionType.RETRY,
                description="Retry the transaction",
                automatic=False,
                requires_consent=True,
            ),
            RecoveryAction(
                type=RecoveryActionType.MANUAL_GUIDANCE,
                description="Check transaction details and try again",
                automatic=False,
                requires_consent=False,
            ),
        ),
    ),
    ErrorCategory.BROWSER: UserMessage(
        title="Browser Compatibility Issue",
        body="Your browser may not fully support all features.",
        severity=Severity.ERROR,
        actions=(
            RecoveryAction(
                type=RecoveryActionType.UPDATE_ENVIRONMENT,
                description="Update your browser or try a different one",
                automatic=False,
                requires_consent=False,
                action_url=BROWSER_DOWNLOAD_URL,
            ),
        ),
    ),
}


def message_for(category: ErrorCategory) -> UserMessage:
    """User-facing message and ordered recovery actions for a category."""
    return _CATALOG[category]
