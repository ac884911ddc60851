#!/usr/bin/env python3
"""
CardSense
Track credit card spending from the command line: register cards, log expenses
by hand or from a bank SMS parsed by Claude, and review this month's spending.
"""

import argparse
import logging
import sys

from aggregator import TransactionAggregator
from config import load_settings
from editors import CardEditor, TransactionEditor
from errors import CardNotFoundError, CardSenseError
from models import CardDraft, Category, TransactionInsert, TransactionUpdate, parse_timestamp
from notifier import Permission, SpendingNotifier
from sms_parser import SmsExpenseParser, SmsIngestionAdapter
from store import Store

SPENDING_COMMANDS = ("add", "edit", "delete", "sms", "edit-card")


def ask(prompt: str) -> bool:
    return input(f"{prompt} (y/n): ").strip().lower() == 'y'


def print_alert(alert):
    print(f"\n{alert.title}\n{alert.body}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cardsense", description="Credit card spending tracker")
    parser.add_argument("-v", "--verbose", action="store_true", help="show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("cards", help="list cards with this month's usage")

    add_card = sub.add_parser("add-card", help="register a card")
    add_card.add_argument("name")
    add_card.add_argument("last4")
    add_card.add_argument("limit")

    edit_card = sub.add_parser("edit-card", help="edit a card")
    edit_card.add_argument("card_id")
    edit_card.add_argument("--name")
    edit_card.add_argument("--last4")
    edit_card.add_argument("--limit")

    delete_card = sub.add_parser("delete-card", help="delete a card without transactions")
    delete_card.add_argument("card_id")
    delete_card.add_argument("-y", "--yes", action="store_true", help="skip confirmation")

    categories = [c.value for c in Category]

    add = sub.add_parser("add", help="log an expense")
    add.add_argument("card", help="card id or last 4 digits")
    add.add_argument("merchant")
    add.add_argument("amount")
    add.add_argument("--category", choices=categories, default=Category.OTHER.value)

    edit = sub.add_parser("edit", help="edit an expense")
    edit.add_argument("transaction_id")
    edit.add_argument("--card", help="card id or last 4 digits")
    edit.add_argument("--merchant")
    edit.add_argument("--amount")
    edit.add_argument("--category", choices=categories)
    edit.add_argument("--date", type=parse_timestamp, help="YYYY-MM-DD[THH:MM]")

    delete = sub.add_parser("delete", help="delete an expense")
    delete.add_argument("transaction_id")
    delete.add_argument("-y", "--yes", action="store_true", help="skip confirmation")

    sms = sub.add_parser("sms", help="log an expense from a bank SMS")
    sms.add_argument("text", nargs="?", help="SMS text (read from stdin if omitted)")

    listing = sub.add_parser("list", help="transaction history, newest first")
    listing.add_argument("--card", help="card id or last 4 digits")

    sub.add_parser("summary", help="this month's spending by category and card")
    sub.add_parser("notify", help="send any due spending alerts")

    return parser


def resolve_card_id(store: Store, ref: str) -> str:
    """Accept either a card id or its last 4 digits"""
    if store.get_card(ref):
        return ref
    card = store.find_card_by_last4(ref)
    if card is None:
        raise CardNotFoundError(f"No card with id or last 4 digits {ref}.")
    return card.id


def run(args, settings, store: Store):
    cards = CardEditor(store)
    transactions = TransactionEditor(store)

    if args.command == "cards":
        if not store.cards:
            print("No cards yet. Use 'add-card' to add your first credit card.")
        for usage in TransactionAggregator.card_usage(store.cards, store.transactions):
            print(f"{usage.card.id:18} {usage.card} | spent ${usage.spent:,.2f} ({usage.percentage:.1f}%)")

    elif args.command == "add-card":
        card = cards.submit(CardDraft(name=args.name, last4=args.last4, limit=args.limit))
        print(f"Added card {card.name} ({card.id}).")

    elif args.command == "edit-card":
        current = store.get_card(args.card_id)
        if current is None:
            print(f"Error: no card with id {args.card_id}")
            return 1
        card = cards.submit(CardDraft(
            name=args.name if args.name is not None else current.name,
            last4=args.last4 if args.last4 is not None else current.last4,
            limit=args.limit if args.limit is not None else current.limit,
            card_id=current.id,
        ))
        print(f"Updated card {card.name}.")

    elif args.command == "delete-card":
        if cards.delete(args.card_id, confirm=lambda prompt: args.yes or ask(prompt)):
            print("Card deleted.")

    elif args.command == "add":
        card_id = resolve_card_id(store, args.card)
        tx = transactions.submit(TransactionInsert(
            card_id=card_id, merchant=args.merchant, amount=args.amount, category=Category(args.category)))
        print(f"Added ${tx.amount:.2f} expense to {store.card_name(tx.card_id)}.")

    elif args.command == "edit":
        tx = transactions.submit(TransactionUpdate(
            id=args.transaction_id,
            card_id=resolve_card_id(store, args.card) if args.card else None,
            merchant=args.merchant,
            amount=args.amount,
            category=Category(args.category) if args.category else None,
            date=args.date,
        ))
        print(f"Updated transaction for {tx.merchant}.")

    elif args.command == "delete":
        if transactions.delete(args.transaction_id, confirm=lambda prompt: args.yes or ask(prompt)):
            print("Transaction deleted.")

    elif args.command == "sms":
        text = args.text if args.text is not None else sys.stdin.read()
        if not settings.api_key:
            print("Error: ANTHROPIC_API_KEY not found in .env file")
            return 1
        adapter = SmsIngestionAdapter(
            store, SmsExpenseParser(settings.api_key, model=settings.model), transactions)
        print("Parsing SMS with Claude AI...")
        tx = adapter.ingest(text)
        print(f"Added ${tx.amount:.2f} expense to {store.card_name(tx.card_id)}.")

    elif args.command == "list":
        card_id = resolve_card_id(store, args.card) if args.card else None
        TransactionAggregator.print_detailed_transactions(store.cards, store.transactions, card_id)

    elif args.command == "summary":
        TransactionAggregator.print_summary(store.cards, store.transactions)

    elif args.command == "notify":
        if not settings.notifications_enabled:
            print("Notifications are disabled. Set CARDSENSE_NOTIFICATIONS=1 to enable spending alerts.")
            return 0
        notifier = SpendingNotifier(store, print_alert, permission=Permission.GRANTED)
        alerts = notifier.evaluate()
        if not alerts:
            print("No new spending alerts.")

    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    store = Store.load(settings.data_dir)

    try:
        status = run(args, settings, store)
    except CardSenseError as e:
        print(f"Error: {e}")
        return 1

    # Spending changed: alert on any threshold crossed this month
    if status == 0 and settings.notifications_enabled and args.command in SPENDING_COMMANDS:
        SpendingNotifier(store, print_alert, permission=Permission.GRANTED).evaluate()

    return status


if __name__ == "__main__":
    sys.exit(main())
