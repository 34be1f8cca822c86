"""recovery/classifier.py

Error Classifier: raw error (+ optional context hint) -> ErrorCategory.

Best-effort keyword heuristic. Rules:
1. A context hint naming a category wins outright.
2. Otherwise keyword tables are scanned in KEYWORDS order against the
   lowercased error text; first table with a hit wins.
3. No match -> NETWORK.
"""

from __future__ import annotations

from typing import Optional, Tuple, Union

from .models import ErrorCategory

# Substring match, checked in this order
KEYWORDS: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (ErrorCategory.NETWORK, ("network", "rpc", "connection", "timeout")),
    (ErrorCategory.WALLET, ("wallet", "metamask", "connector", "account")),
    (ErrorCategory.TRANSACTION, ("transaction", "tx", "gas", "nonce")),
    (ErrorCategory.BROWSER, ("browser", "compatibility", "unsupported")),
)

DEFAULT_CATEGORY = ErrorCategory.NETWORK


def category_from_hint(context_hint: Optional[str]) -> Optional[ErrorCategory]:
    if not context_hint:
        return None
    try:
        return ErrorCategory(context_hint.strip().lower())
    except ValueError:
        return None


def classify_error(
    error: Union[BaseException, str],
    context_hint: Optional[str] = None,
) -> ErrorCategory:
    """Classify an error into one of the four recovery categories.

    Args:
        error: Exception (its str() is matched) or raw message text.
        context_hint: Optional category name from the call site.

    Returns:
        ErrorCategory, NETWORK when nothing matches.
    """
    hinted = category_from_hint(context_hint)
    if hinted is not None:
        return hinted

    message = str(error).lower()
    for category, keywords in KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return category

    return DEFAULT_CATEGORY
