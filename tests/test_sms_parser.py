"""SMS ingestion tests against a fake Claude client."""

from __future__ import annotations

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from errors import CardNotFoundError, IngestionBusyError, SmsParseError, ValidationError
from models import Category
from sms_parser import EXPENSE_TOOL, SmsExpenseParser, SmsIngestionAdapter

from tests.conftest import NOW, FakeClaude

SMS = "Your transaction of $45.50 at Starbucks with card ending 1234 was successful."


def make_adapter(store, tx_editor, client):
    return SmsIngestionAdapter(store, SmsExpenseParser(client=client), tx_editor)


def test_sms_commits_transaction_on_matching_card(store, tx_editor, amex):
    client = FakeClaude({"merchant": "Starbucks", "amount": 45.5, "cardLast4": "1234", "category": "Food"})

    tx = make_adapter(store, tx_editor, client).ingest(SMS)

    assert store.transactions == [tx]
    assert tx.card_id == amex.id
    assert tx.merchant == "Starbucks"
    assert tx.amount == 45.5
    assert tx.category is Category.FOOD
    assert tx.date == NOW

    request = client.calls[0]
    assert request["tools"] == [EXPENSE_TOOL]
    assert request["tool_choice"] == {"type": "tool", "name": "record_expense"}
    assert SMS in request["messages"][0]["content"]


def test_unknown_last4_is_card_not_found(store, tx_editor, amex):
    client = FakeClaude({"merchant": "Starbucks", "amount": 45.5, "cardLast4": "9876", "category": "Food"})

    with pytest.raises(CardNotFoundError, match="Could not find a card ending in 9876."):
        make_adapter(store, tx_editor, client).ingest(SMS)
    assert store.transactions == []


def test_missing_or_unknown_category_defaults_to_other(store, tx_editor, amex):
    client = FakeClaude({"merchant": "Kiosk", "amount": 3, "cardLast4": "1234", "category": "Snacks"})

    assert make_adapter(store, tx_editor, client).ingest(SMS).category is Category.OTHER


@pytest.mark.parametrize("tool_input", [
    {"merchant": "Starbucks", "amount": "45.50", "cardLast4": "1234"},
    {"merchant": "", "amount": 45.5, "cardLast4": "1234"},
    {"merchant": "Starbucks", "amount": 45.5},
    {"merchant": "Starbucks", "amount": True, "cardLast4": "1234"},
    {"merchant": "Starbucks", "amount": -2, "cardLast4": "1234"},
    "not a dict",
])
def test_malformed_answer_is_parse_failure(store, tx_editor, amex, tool_input):
    with pytest.raises(SmsParseError, match="Failed to parse SMS"):
        make_adapter(store, tx_editor, FakeClaude(tool_input)).ingest(SMS)
    assert store.transactions == []


def test_no_tool_call_is_parse_failure(store, tx_editor, amex):
    client = FakeClaude(blocks=[SimpleNamespace(type="text", text="I cannot help with that.")])

    with pytest.raises(SmsParseError):
        make_adapter(store, tx_editor, client).ingest(SMS)


def test_network_error_is_parse_failure(store, tx_editor, amex):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client = FakeClaude(error=anthropic.APIConnectionError(request=request))
    adapter = make_adapter(store, tx_editor, client)

    with pytest.raises(SmsParseError):
        adapter.ingest(SMS)
    assert store.transactions == []
    assert adapter.pending is False


def test_empty_sms_and_no_cards_skip_the_service(store, tx_editor):
    client = FakeClaude({"merchant": "X", "amount": 1, "cardLast4": "1234"})
    adapter = make_adapter(store, tx_editor, client)

    with pytest.raises(ValidationError, match="Please add a credit card first."):
        adapter.ingest(SMS)
    with pytest.raises(ValidationError, match="SMS message cannot be empty."):
        adapter.ingest("   ")
    assert client.calls == []


def test_second_submission_while_pending_is_refused(store, tx_editor, amex):
    adapter = None

    def reenter(**kwargs):
        with pytest.raises(IngestionBusyError):
            adapter.ingest(SMS)
        return SimpleNamespace(content=[SimpleNamespace(
            type="tool_use", name="record_expense",
            input={"merchant": "Starbucks", "amount": 45.5, "cardLast4": "1234"})])

    client = SimpleNamespace(messages=SimpleNamespace(create=reenter))
    adapter = make_adapter(store, tx_editor, client)

    adapter.ingest(SMS)
    assert len(store.transactions) == 1


def test_sdk_error_is_parse_failure(store, tx_editor, amex):
    client = FakeClaude(error=anthropic.AnthropicError("client misconfigured"))

    with pytest.raises(SmsParseError):
        make_adapter(store, tx_editor, client).ingest(SMS)
    assert store.transactions == []


def test_unexpected_response_shape_is_parse_failure(store, tx_editor, amex):
    client = SimpleNamespace(messages=SimpleNamespace(create=lambda **kwargs: SimpleNamespace(content=None)))

    assert SmsExpenseParser(client=client).parse(SMS) is None
    with pytest.raises(SmsParseError):
        make_adapter(store, tx_editor, client).ingest(SMS)
