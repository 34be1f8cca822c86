import pytest

from recovery.catalog import BROWSER_DOWNLOAD_URL, WALLET_DOWNLOAD_URL, message_for
from recovery.classifier import classify_error
from recovery.models import ErrorCategory, RecoveryActionType, Severity


@pytest.mark.parametrize(
    "error,expected",
    [
        ("network unreachable", ErrorCategory.NETWORK),
        ("RPC endpoint returned 502", ErrorCategory.NETWORK),
        (ConnectionError("Connection reset by peer"), ErrorCategory.NETWORK),
        (TimeoutError("request timeout"), ErrorCategory.NETWORK),
        ("MetaMask is locked", ErrorCategory.WALLET),
        ("no connector found", ErrorCategory.WALLET),
        ("Transaction underpriced", ErrorCategory.TRANSACTION),
        ("nonce too low", ErrorCategory.TRANSACTION),
        ("out of gas", ErrorCategory.TRANSACTION),
        ("Unsupported browser", ErrorCategory.BROWSER),
        ("compatibility problem", ErrorCategory.BROWSER),
        ("something odd happened", ErrorCategory.NETWORK),
        ("", ErrorCategory.NETWORK),
    ],
)
def test_keyword_classification(error, expected):
    assert classify_error(error) == expected


def test_earlier_table_wins_on_overlap():
    # "timeout" (network) is checked before "wallet"
    assert classify_error("wallet request timeout") == ErrorCategory.NETWORK
    # "account" (wallet) is checked before "transaction"
    assert classify_error("transaction rejected for account") == ErrorCategory.WALLET


def test_matching_is_case_insensitive():
    assert classify_error("WALLET NOT FOUND") == ErrorCategory.WALLET


@pytest.mark.parametrize("hint", ["wallet", "WALLET", " wallet "])
def test_context_hint_overrides_keywords(hint):
    assert classify_error("network unreachable", context_hint=hint) == ErrorCategory.WALLET


def test_unknown_hint_is_ignored():
    assert classify_error("nonce too low", context_hint="database") == ErrorCategory.TRANSACTION


@pytest.mark.parametrize("category", list(ErrorCategory))
def test_every_category_has_a_message(category):
    message = message_for(category)
    assert message.title
    assert message.body
    assert message.severity == Severity.ERROR
    assert message.actions


def test_network_actions_are_automatic_retry_then_switch():
    message = message_for(ErrorCategory.NETWORK)
    assert [a.type for a in message.automatic_actions] == [
        RecoveryActionType.RETRY,
        RecoveryActionType.SWITCH_ENDPOINT,
    ]
    assert not any(a.requires_consent for a in message.actions)


def test_wallet_actions():
    message = message_for(ErrorCategory.WALLET)
    assert [a.type for a in message.automatic_actions] == [RecoveryActionType.RETRY]
    install = message.find_action(RecoveryActionType.INSTALL_WALLET)
    assert install.automatic is False
    assert install.action_url == WALLET_DOWNLOAD_URL


def test_transaction_retry_needs_consent():
    message = message_for(ErrorCategory.TRANSACTION)
    retry = message.find_action(RecoveryActionType.RETRY)
    assert retry.automatic is False
    assert retry.requires_consent is True
    assert message.automatic_actions == []


def test_browser_has_no_automatic_actions():
    message = message_for(ErrorCategory.BROWSER)
    assert message.automatic_actions == []
    assert message.actions[0].type == RecoveryActionType.UPDATE_ENVIRONMENT
    assert message.actions[0].action_url == BROWSER_DOWNLOAD_URL
    assert message.find_action(RecoveryActionType.SWITCH_ENDPOINT) is None
