"""Card and transaction editor tests."""

from __future__ import annotations

import random
from datetime import datetime

import pytest

from editors import DELETE_TRANSACTION_PROMPT, CardEditor
from errors import CardInUseError, TransactionNotFoundError, ValidationError
from models import CARD_GRADIENTS, CardDraft, Category, TransactionInsert, TransactionUpdate

from tests.conftest import NOW


@pytest.mark.parametrize("last4", ["123", "12345", "12a4", "", "١٢٣٤"])
def test_card_last4_must_be_four_digits(card_editor, last4):
    with pytest.raises(ValidationError):
        card_editor.submit(CardDraft(name="Visa", last4=last4, limit="500"))


def test_card_last4_with_leading_zero_is_accepted(card_editor):
    card = card_editor.submit(CardDraft(name="Visa", last4="0427", limit="500"))
    assert card.last4 == "0427"
    assert card.limit == 500.0


def test_card_requires_all_fields(card_editor):
    with pytest.raises(ValidationError, match="All fields are required."):
        card_editor.submit(CardDraft(name="   ", last4="1234", limit="500"))
    with pytest.raises(ValidationError, match="All fields are required."):
        card_editor.submit(CardDraft(name="Visa", last4="1234", limit=""))


@pytest.mark.parametrize("limit", ["0", "-10", "abc", "nan", 0])
def test_card_limit_must_be_positive(card_editor, limit):
    with pytest.raises(ValidationError, match="Limit must be a positive number."):
        card_editor.submit(CardDraft(name="Visa", last4="1234", limit=limit))


def test_card_name_unique_case_insensitive(card_editor, amex):
    with pytest.raises(ValidationError, match="A card with this name already exists."):
        card_editor.submit(CardDraft(name="  amex GOLD ", last4="9999", limit="100"))


def test_card_last4_unique(card_editor, amex):
    with pytest.raises(ValidationError, match="A card with these last 4 digits already exists."):
        card_editor.submit(CardDraft(name="Other", last4=amex.last4, limit="100"))


def test_card_edit_keeps_id_and_gradient(card_editor, store, amex):
    edited = card_editor.submit(CardDraft(name="Amex Gold", last4="1234", limit="2500", card_id=amex.id))

    assert edited.id == amex.id
    assert edited.gradient == amex.gradient
    assert edited.limit == 2500.0
    assert len(store.cards) == 1


def test_new_card_gets_gradient_from_palette(store):
    editor = CardEditor(store, rng=random.Random(7))
    card = editor.submit(CardDraft(name="Visa", last4="1111", limit="100"))

    assert card.gradient in CARD_GRADIENTS
    assert card.id.startswith("card-")


def test_card_delete_refused_while_transactions_reference_it(card_editor, store, amex, add_tx):
    add_tx(amex, 10)

    with pytest.raises(CardInUseError):
        card_editor.delete(amex.id, confirm=lambda prompt: True)
    assert store.get_card(amex.id) is not None


def test_card_delete_after_confirmation(card_editor, store, chase):
    assert card_editor.delete(chase.id, confirm=lambda prompt: False) is False
    assert card_editor.delete(chase.id, confirm=lambda prompt: True) is True
    assert store.cards == []


def test_insert_assigns_id_and_current_time(tx_editor, store, amex):
    tx = tx_editor.submit(TransactionInsert(card_id=amex.id, merchant=" Starbucks ", amount="4.50",
                                            category="Food"))

    assert tx.id.startswith("tx-")
    assert tx.date == NOW
    assert tx.merchant == "Starbucks"
    assert tx.amount == 4.5
    assert tx.category is Category.FOOD
    assert store.transactions == [tx]


@pytest.mark.parametrize("amount", ["0", "-3", "ten", 0])
def test_transaction_amount_must_be_positive(tx_editor, amex, amount):
    with pytest.raises(ValidationError, match="Amount must be a positive number."):
        tx_editor.submit(TransactionInsert(card_id=amex.id, merchant="Shop", amount=amount))


def test_transaction_requires_fields(tx_editor, amex):
    with pytest.raises(ValidationError, match="All fields are required."):
        tx_editor.submit(TransactionInsert(card_id=amex.id, merchant="", amount="5"))
    with pytest.raises(ValidationError, match="All fields are required."):
        tx_editor.submit(TransactionInsert(card_id="", merchant="Shop", amount="5"))


def test_update_keeps_id_and_length(tx_editor, store, amex, chase, add_tx):
    original = add_tx(amex, 20, merchant="Uber")
    add_tx(amex, 30)

    updated = tx_editor.submit(TransactionUpdate(id=original.id, card_id=chase.id, amount="25"))

    assert len(store.transactions) == 2
    assert updated.id == original.id
    assert updated.card_id == chase.id
    assert updated.amount == 25.0
    assert updated.merchant == "Uber"
    assert updated.date == NOW
    assert store.get_transaction(original.id) is updated


def test_update_can_override_date(tx_editor, amex, add_tx):
    tx = add_tx(amex, 20)
    when = datetime(2026, 9, 30, 8, 15)

    assert tx_editor.submit(TransactionUpdate(id=tx.id, date=when)).date == when


def test_update_is_validated(tx_editor, store, amex, add_tx):
    tx = add_tx(amex, 20)

    with pytest.raises(ValidationError):
        tx_editor.submit(TransactionUpdate(id=tx.id, amount="-1"))
    assert store.get_transaction(tx.id).amount == 20.0


def test_update_unknown_id(tx_editor):
    with pytest.raises(TransactionNotFoundError):
        tx_editor.submit(TransactionUpdate(id="tx-missing", amount="5"))


def test_delete_requires_confirmation(tx_editor, store, amex, add_tx):
    tx = add_tx(amex, 20)
    prompts = []

    def decline(prompt):
        prompts.append(prompt)
        return False

    assert tx_editor.delete(tx.id, confirm=decline) is False
    assert prompts == [DELETE_TRANSACTION_PROMPT]
    assert len(store.transactions) == 1

    assert tx_editor.delete(tx.id, confirm=lambda prompt: True) is True
    assert store.transactions == []
