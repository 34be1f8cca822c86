"""recovery/environment.py

Client environment checks behind the UPDATE_ENVIRONMENT and INSTALL_WALLET
actions. Pure: the caller supplies the user agent and wallet detection flags.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .catalog import WALLET_DOWNLOAD_URL

# Minimum major versions with reliable Web3 support
MIN_BROWSER_VERSIONS = {
    "Chrome": 90,
    "Firefox": 88,
    "Safari": 14,
}

_VERSION_PATTERNS = {
    "Chrome": re.compile(r"Chrome/(\d+)"),
    "Firefox": re.compile(r"Firefox/(\d+)"),
    "Safari": re.compile(r"Version/(\d+)"),
}

_MOBILE_RE = re.compile(r"Android|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)


@dataclass(frozen=True)
class CompatibilityReport:
    compatible: bool
    suggestions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class WalletGuidance:
    installed: bool
    guidance: str
    download_url: Optional[str] = None


def _major_version(user_agent: str, browser: str) -> int:
    match = _VERSION_PATTERNS[browser].search(user_agent)
    return int(match.group(1)) if match else 0


def check_client_compatibility(user_agent: str, has_injected_provider: bool) -> CompatibilityReport:
    """Check a client's user agent and wallet provider for known problems.

    Args:
        user_agent: Raw User-Agent header.
        has_injected_provider: Whether an injected Web3 provider was detected.
    """
    suggestions: List[str] = []

    if not has_injected_provider:
        suggestions.append("Install a Web3-compatible wallet like MetaMask")

    # Chrome UAs also contain "Safari", so order matters
    for browser in ("Chrome", "Firefox", "Safari"):
        if browser in user_agent:
            minimum = MIN_BROWSER_VERSIONS[browser]
            if _major_version(user_agent, browser) < minimum:
                suggestions.append(f"Update {browser} to version {minimum} or later")
            break

    if _MOBILE_RE.search(user_agent):
        suggestions.append(
            "For best experience, use a desktop browser or ensure your mobile browser supports Web3"
        )

    return CompatibilityReport(compatible=not suggestions, suggestions=suggestions)


def wallet_guidance(has_injected_provider: bool, is_metamask: bool = False) -> WalletGuidance:
    """Installation/connection guidance for the detected wallet situation."""
    if has_injected_provider and is_metamask:
        return WalletGuidance(
            installed=True,
            guidance="MetaMask is installed. Make sure it's connected and unlocked.",
        )
    if has_injected_provider:
        return WalletGuidance(
            installed=True,
            guidance="A Web3 wallet is detected. Ensure it's connected and supports Celo network.",
        )
    return WalletGuidance(
        installed=False,
        guidance="No Web3 wallet detected. Install MetaMask or another Web3 wallet to continue.",
        download_url=WALLET_DOWNLOAD_URL,
    )
