"""Shared fixtures for CardSense tests.

Stores are in memory unless a test asks for ``disk_store``; the Claude client
is replaced by ``FakeClaude``, which returns canned tool calls.
"""

from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from editors import CardEditor, TransactionEditor
from models import CardDraft, Category, TransactionInsert
from store import Store

NOW = datetime(2026, 10, 18, 12, 0)


class FakeClaude:
    """Stand-in for anthropic.Anthropic exposing messages.create"""

    def __init__(self, tool_input=None, error: Exception | None = None, blocks=None):
        self.calls = []
        self._tool_input = tool_input
        self._error = error
        self._blocks = blocks
        self.messages = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        if self._blocks is not None:
            return SimpleNamespace(content=self._blocks)
        return SimpleNamespace(content=[
            SimpleNamespace(type="tool_use", name="record_expense", input=self._tool_input),
        ])


@pytest.fixture
def store() -> Store:
    return Store()


@pytest.fixture
def disk_store(tmp_path) -> Store:
    return Store.load(tmp_path / "data")


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def card_editor(store) -> CardEditor:
    return CardEditor(store)


@pytest.fixture
def tx_editor(store, clock) -> TransactionEditor:
    return TransactionEditor(store, clock=clock)


@pytest.fixture
def amex(card_editor):
    return card_editor.submit(CardDraft(name="Amex Gold", last4="1234", limit="1000"))


@pytest.fixture
def chase(card_editor):
    return card_editor.submit(CardDraft(name="Chase Sapphire", last4="0427", limit=5000))


@pytest.fixture
def add_tx(tx_editor):
    """Insert a transaction, optionally back-dating it"""

    def _add(card, amount, merchant="Store", category=Category.OTHER, date=None):
        tx = tx_editor.submit(TransactionInsert(card_id=card.id, merchant=merchant, amount=amount, category=category))
        if date is not None:
            tx.date = date
        return tx

    return _add
