from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from models import CATEGORY_STYLES, Card, Category, Transaction

ALL_CARDS = "all"


@dataclass
class CategorySlice:
    """One category's share of the month's spending"""
    category: Category
    amount: float
    percentage: float

    @property
    def color(self) -> str:
        return CATEGORY_STYLES[self.category].color


@dataclass
class CardUsage:
    card: Card
    spent: float

    @property
    def percentage(self) -> float:
        return (self.spent / self.card.limit * 100) if self.card.limit > 0 else 0.0


class TransactionAggregator:
    """Derive monthly summaries and listings from the stored transactions"""

    @staticmethod
    def filter_month(transactions: List[Transaction], today: Optional[datetime] = None) -> List[Transaction]:
        """Keep transactions dated in today's calendar month and year"""
        today = today or datetime.now()
        return [t for t in transactions if t.date.year == today.year and t.date.month == today.month]

    @staticmethod
    def monthly_category_summary(transactions: List[Transaction],
                                 today: Optional[datetime] = None) -> Tuple[List[CategorySlice], float]:
        """Spending per category this month, largest first, empty categories dropped.

        Returns the slices and the month's total.
        """
        totals: Dict[Category, float] = {category: 0.0 for category in Category}
        total = 0.0

        for transaction in TransactionAggregator.filter_month(transactions, today):
            totals[transaction.category] += transaction.amount
            total += transaction.amount

        slices = [
            CategorySlice(category, amount, (amount / total * 100) if total > 0 else 0.0)
            for category, amount in totals.items()
            if amount > 0
        ]
        slices.sort(key=lambda s: s.amount, reverse=True)
        return slices, total

    @staticmethod
    def monthly_card_totals(cards: List[Card], transactions: List[Transaction],
                            today: Optional[datetime] = None) -> Dict[str, float]:
        """Spending per card id this month; every known card is present"""
        totals = defaultdict(float, {card.id: 0.0 for card in cards})

        for transaction in TransactionAggregator.filter_month(transactions, today):
            totals[transaction.card_id] += transaction.amount

        return dict(totals)

    @staticmethod
    def card_usage(cards: List[Card], transactions: List[Transaction],
                   today: Optional[datetime] = None) -> List[CardUsage]:
        totals = TransactionAggregator.monthly_card_totals(cards, transactions, today)
        return [CardUsage(card, totals.get(card.id, 0.0)) for card in cards]

    @staticmethod
    def list_transactions(transactions: List[Transaction], card_id: Optional[str] = None) -> List[Transaction]:
        """Newest first, optionally restricted to one card"""
        ordered = sorted(transactions, key=lambda t: t.date, reverse=True)
        if card_id is None or card_id == ALL_CARDS:
            return ordered
        return [t for t in ordered if t.card_id == card_id]

    @staticmethod
    def print_summary(cards: List[Card], transactions: List[Transaction], today: Optional[datetime] = None):
        """Print this month's spending by category and by card"""
        today = today or datetime.now()

        print("\n" + "=" * 80)
        print(f"SPENDING SUMMARY - {today.strftime('%B %Y')}")
        print("=" * 80)

        slices, total = TransactionAggregator.monthly_category_summary(transactions, today)
        month_count = len(TransactionAggregator.filter_month(transactions, today))

        print(f"\nTransactions: {month_count}")
        print(f"Total Spending: ${total:,.2f}")

        print("\n" + "-" * 80)
        print("BY CATEGORY:")
        print("-" * 80)

        if not slices:
            print("No spending this month to summarize.")
        for item in slices:
            print(f"{item.category.value:25} ${item.amount:10.2f} ({item.percentage:5.1f}%)")

        print("\n" + "-" * 80)
        print("BY CARD:")
        print("-" * 80)

        for usage in TransactionAggregator.card_usage(cards, transactions, today):
            print(f"{usage.card.name:25} ${usage.spent:10.2f} of ${usage.card.limit:,.2f} ({usage.percentage:5.1f}%)")

        print("\n" + "=" * 80)

    @staticmethod
    def print_detailed_transactions(cards: List[Card], transactions: List[Transaction], card_id: Optional[str] = None):
        """Print the transaction history, optionally for a single card"""
        names = {card.id: card.name for card in cards}
        listed = TransactionAggregator.list_transactions(transactions, card_id)

        print("\n" + "=" * 100)
        if card_id and card_id != ALL_CARDS:
            print(f"TRANSACTIONS - {names.get(card_id, card_id)}")
        else:
            print("ALL TRANSACTIONS")
        print("=" * 100)
        print(f"{'Date':<12} {'Amount':>10}   {'Merchant':<40} {'Category':<14} {'Card':<15} {'Id'}")
        print("-" * 100)

        if not listed:
            print("No transactions recorded yet." if not transactions else "No transactions for this card.")
        for t in listed:
            print(f"{t.date.strftime('%Y-%m-%d'):<12} ${t.amount:9.2f}   {t.merchant[:40]:<40} "
                  f"{t.category.value:<14} {names.get(t.card_id, '?')[:15]:<15} {t.id}")

        print("-" * 100)
        print(f"Total: ${sum(t.amount for t in listed):,.2f} ({len(listed)} transactions)")
        print("=" * 100)
