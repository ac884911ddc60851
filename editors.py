"""Validation and commit of user-entered cards and transactions."""

import logging
import math
import random
import re
import uuid
from datetime import datetime
from typing import Callable, Optional, Union

from errors import CardNotFoundError, TransactionNotFoundError, ValidationError
from models import (
    CARD_GRADIENTS,
    Card,
    CardDraft,
    Category,
    Transaction,
    TransactionInsert,
    TransactionUpdate,
)
from store import Store

logger = logging.getLogger(__name__)

LAST4_PATTERN = re.compile(r"[0-9]{4}")

DELETE_TRANSACTION_PROMPT = "Are you sure you want to delete this transaction? This action cannot be undone."
DELETE_CARD_PROMPT = "Are you sure you want to delete this card? This action cannot be undone."

Confirm = Callable[[str], bool]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_positive_amount(value) -> Optional[float]:
    """Return value as a positive finite float, or None if it is not one"""
    if isinstance(value, bool):
        return None
    try:
        amount = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


class CardEditor:
    """Validate card form input and upsert it into the store"""

    def __init__(self, store: Store, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def validate(self, draft: CardDraft) -> Card:
        name = (draft.name or "").strip()
        last4 = (draft.last4 or "").strip()

        if not name or not last4 or _is_blank(draft.limit):
            raise ValidationError("All fields are required.")
        if not LAST4_PATTERN.fullmatch(last4):
            raise ValidationError("Last 4 digits must be exactly 4 numbers.")
        limit = parse_positive_amount(draft.limit)
        if limit is None:
            raise ValidationError("Limit must be a positive number.")

        others = [c for c in self.store.cards if c.id != draft.card_id]
        if any(c.name.strip().lower() == name.lower() for c in others):
            raise ValidationError("A card with this name already exists.")
        if any(c.last4 == last4 for c in others):
            raise ValidationError("A card with these last 4 digits already exists.")

        if draft.card_id:
            existing = self.store.get_card(draft.card_id)
            if existing is None:
                raise CardNotFoundError(f"No card with id {draft.card_id}.")
            return Card(id=existing.id, name=name, last4=last4, limit=limit,
                        gradient=existing.gradient)

        return Card(id=new_id("card"), name=name, last4=last4, limit=limit,
                    gradient=self.rng.choice(CARD_GRADIENTS))

    def submit(self, draft: CardDraft) -> Card:
        card = self.validate(draft)
        self.store.upsert_card(card)
        logger.info("Saved card %s (%s)", card.id, card.name)
        return card

    def delete(self, card_id: str, confirm: Confirm) -> bool:
        if not confirm(DELETE_CARD_PROMPT):
            return False
        card = self.store.delete_card(card_id)
        logger.info("Deleted card %s (%s)", card.id, card.name)
        return True


class TransactionEditor:
    """Validate transaction input and upsert it into the store.

    Inserts get a fresh id and the current time; updates keep the id and
    replace only the fields they carry.
    """

    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    @staticmethod
    def _check(card_id, merchant, amount) -> float:
        if _is_blank(card_id) or _is_blank(merchant) or _is_blank(amount):
            raise ValidationError("All fields are required.")
        numeric = parse_positive_amount(amount)
        if numeric is None:
            raise ValidationError("Amount must be a positive number.")
        return numeric

    def validate(self, change: Union[TransactionInsert, TransactionUpdate]) -> Transaction:
        if isinstance(change, TransactionInsert):
            amount = self._check(change.card_id, change.merchant, change.amount)
            return Transaction(
                id=new_id("tx"),
                card_id=change.card_id,
                merchant=change.merchant.strip(),
                amount=amount,
                date=self.clock(),
                category=Category.coerce(change.category),
            )

        if isinstance(change, TransactionUpdate):
            existing = self.store.get_transaction(change.id)
            if existing is None:
                raise TransactionNotFoundError(f"No transaction with id {change.id}.")
            fields = {**vars(existing), **change.changes()}
            amount = self._check(fields["card_id"], fields["merchant"], fields["amount"])
            return Transaction(
                id=existing.id,
                card_id=fields["card_id"],
                merchant=fields["merchant"].strip(),
                amount=amount,
                date=fields["date"],
                category=Category.coerce(fields["category"]),
            )

        raise TypeError(f"Unsupported transaction change: {type(change).__name__}")

    def submit(self, change: Union[TransactionInsert, TransactionUpdate]) -> Transaction:
        transaction = self.validate(change)
        self.store.upsert_transaction(transaction)
        logger.info("Saved transaction %s: $%.2f at %s",
                    transaction.id, transaction.amount, transaction.merchant)
        return transaction

    def delete(self, transaction_id: str, confirm: Confirm) -> bool:
        """Delete after the user confirms; returns whether anything was removed"""
        if not confirm(DELETE_TRANSACTION_PROMPT):
            return False
        self.store.delete_transaction(transaction_id)
        logger.info("Deleted transaction %s", transaction_id)
        return True
