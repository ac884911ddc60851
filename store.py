import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from errors import CardInUseError, CardNotFoundError, TransactionNotFoundError
from models import Card, Transaction

logger = logging.getLogger(__name__)

CARDS = "cards"
TRANSACTIONS = "transactions"
SENT_NOTIFICATIONS = "sent_notifications"


class Store:
    """Cards, transactions and sent-notification keys.

    Read once with ``Store.load`` at startup. Every mutation rewrites the
    full JSON record it touched; a store without a data directory lives in
    memory only.
    """

    def __init__(self, data_dir: Optional[Path] = None,
                 cards: Optional[List[Card]] = None,
                 transactions: Optional[List[Transaction]] = None,
                 sent_notifications: Optional[Dict[str, bool]] = None):
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.cards: List[Card] = list(cards or [])
        self.transactions: List[Transaction] = list(transactions or [])
        self.sent_notifications: Dict[str, bool] = dict(sent_notifications or {})

    @classmethod
    def load(cls, data_dir: Optional[Path]) -> "Store":
        """Load all three records from data_dir (missing files are empty)"""
        store = cls(data_dir)
        if store.data_dir is None:
            return store

        store.cards = store._decode(CARDS, Card.from_dict)
        store.transactions = store._decode(TRANSACTIONS, Transaction.from_dict)
        store.sent_notifications = {str(k): bool(v) for k, v in store._read(SENT_NOTIFICATIONS, {}).items()}

        logger.info("Loaded %d cards, %d transactions from %s",
                    len(store.cards), len(store.transactions), store.data_dir)
        return store

    def _path(self, record: str) -> Path:
        return self.data_dir / f"{record}.json"

    def _read(self, record: str, default):
        path = self._path(record)
        if not path.exists():
            return default
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read %s, starting empty: %s", path, e)
            return default
        if not isinstance(data, type(default)):
            logger.warning("Unexpected content in %s, starting empty", path)
            return default
        return data

    def _decode(self, record: str, from_dict) -> list:
        items = []
        for item in self._read(record, []):
            try:
                items.append(from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid %s entry %r: %s", record, item, e)
        return items

    def _serialize(self, record: str):
        if record == CARDS:
            return [card.to_dict() for card in self.cards]
        if record == TRANSACTIONS:
            return [tx.to_dict() for tx in self.transactions]
        if record == SENT_NOTIFICATIONS:
            return dict(self.sent_notifications)
        raise ValueError(f"Unknown record: {record}")

    def save(self, record: str):
        """Rewrite one record on disk"""
        if self.data_dir is None:
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self._path(record), 'w') as f:
            json.dump(self._serialize(record), f, indent=2)
        logger.debug("Saved %s", record)

    # Cards

    def get_card(self, card_id: str) -> Optional[Card]:
        return next((c for c in self.cards if c.id == card_id), None)

    def find_card_by_last4(self, last4: str) -> Optional[Card]:
        return next((c for c in self.cards if c.last4 == last4), None)

    def card_name(self, card_id: str, default: str = "card") -> str:
        card = self.get_card(card_id)
        return card.name if card else default

    def upsert_card(self, card: Card) -> Card:
        for i, existing in enumerate(self.cards):
            if existing.id == card.id:
                self.cards[i] = card
                break
        else:
            self.cards.append(card)
        self.save(CARDS)
        return card

    def delete_card(self, card_id: str) -> Card:
        """Remove a card that no transaction references"""
        card = self.get_card(card_id)
        if card is None:
            raise CardNotFoundError(f"No card with id {card_id}.")
        in_use = sum(1 for tx in self.transactions if tx.card_id == card_id)
        if in_use:
            raise CardInUseError(
                f"{card.name} still has {in_use} transaction(s); delete them first.")
        self.cards = [c for c in self.cards if c.id != card_id]
        self.save(CARDS)
        return card

    # Transactions

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def upsert_transaction(self, transaction: Transaction) -> Transaction:
        for i, existing in enumerate(self.transactions):
            if existing.id == transaction.id:
                self.transactions[i] = transaction
                break
        else:
            self.transactions.append(transaction)
        self.save(TRANSACTIONS)
        return transaction

    def delete_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"No transaction with id {transaction_id}.")
        self.transactions = [t for t in self.transactions if t.id != transaction_id]
        self.save(TRANSACTIONS)
        return transaction

    # Notifications

    def notification_sent(self, key: str) -> bool:
        return self.sent_notifications.get(key, False)

    def mark_notification_sent(self, key: str):
        self.sent_notifications[key] = True
        self.save(SENT_NOTIFICATIONS)
