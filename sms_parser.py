import logging
from typing import Optional

from anthropic import Anthropic, AnthropicError

from config import DEFAULT_MODEL
from editors import TransactionEditor
from errors import (
    CardNotFoundError,
    IngestionBusyError,
    SmsParseError,
    ValidationError,
)
from models import Category, ParsedSms, Transaction, TransactionInsert
from store import Store

logger = logging.getLogger(__name__)

TOOL_NAME = "record_expense"

EXPENSE_TOOL = {
    "name": TOOL_NAME,
    "description": "Record the expense described by a bank or credit card SMS message",
    "input_schema": {
        "type": "object",
        "properties": {
            "merchant": {
                "type": "string",
                "description": "The name of the merchant or store where the purchase was made. E.g., 'Amazon', 'Starbucks', 'Walmart'."
            },
            "amount": {
                "type": "number",
                "description": "The transaction amount as a number. E.g., 25.50, 100."
            },
            "cardLast4": {
                "type": "string",
                "description": "The last 4 digits of the credit card used for the transaction. E.g., '1234', '9876'."
            },
            "category": {
                "type": "string",
                "enum": [c.value for c in Category],
                "description": f"Categorize the expense into one of the following: {', '.join(c.value for c in Category)}. Default to 'Other' if unsure."
            }
        },
        "required": ["merchant", "amount", "cardLast4", "category"]
    }
}


class SmsExpenseParser:
    """Extract expense details from an SMS using Claude"""

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL, client=None):
        self.client = client or Anthropic(api_key=api_key)
        self.model = model

    @staticmethod
    def _build_prompt(sms: str) -> str:
        return f"""Analyze the following SMS message and extract the expense details. The user wants to know the merchant, the amount spent, the last 4 digits of the credit card used, and a relevant category for the expense.

SMS: "{sms}"

Use the {TOOL_NAME} tool to provide this information."""

    @staticmethod
    def _to_parsed(data) -> Optional[ParsedSms]:
        """Check the tool input and build a ParsedSms, or None if unusable"""
        if not isinstance(data, dict):
            return None

        amount = data.get("amount")
        merchant = data.get("merchant")
        last4 = data.get("cardLast4")

        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            return None
        if not merchant or not last4:
            return None

        return ParsedSms(
            merchant=str(merchant).strip(),
            amount=float(amount),
            card_last4=str(last4).strip(),
            category=Category.coerce(data.get("category")),
        )

    def parse(self, sms: str) -> Optional[ParsedSms]:
        """Return the extracted expense, or None on any failure"""
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=1000,
                tools=[EXPENSE_TOOL],
                tool_choice={"type": "tool", "name": TOOL_NAME},
                messages=[{
                    "role": "user",
                    "content": self._build_prompt(sms)
                }]
            )
        except AnthropicError as e:
            logger.error("Error parsing SMS with Claude: %s", e)
            return None

        try:
            for block in response.content:
                if block.type == "tool_use" and block.name == TOOL_NAME:
                    parsed = self._to_parsed(block.input)
                    if parsed is None:
                        logger.warning("Unusable expense extracted from SMS: %r", block.input)
                    return parsed
        except (AttributeError, TypeError) as e:
            logger.error("Unexpected response shape from Claude: %s", e)
            return None

        logger.warning("No %s tool call in response", TOOL_NAME)
        return None


class SmsIngestionAdapter:
    """Turn a pasted SMS into a committed transaction on the matching card"""

    def __init__(self, store: Store, parser: SmsExpenseParser, editor: TransactionEditor):
        self.store = store
        self.parser = parser
        self.editor = editor
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def ingest(self, sms: str) -> Transaction:
        if not sms or not sms.strip():
            raise ValidationError("SMS message cannot be empty.")
        if not self.store.cards:
            raise ValidationError("Please add a credit card first.")
        if self._pending:
            raise IngestionBusyError("An SMS is already being parsed.")

        self._pending = True
        try:
            parsed = self.parser.parse(sms)
        finally:
            self._pending = False

        if parsed is None:
            raise SmsParseError("Failed to parse SMS. Please try a different format.")

        card = self.store.find_card_by_last4(parsed.card_last4)
        if card is None:
            raise CardNotFoundError(f"Could not find a card ending in {parsed.card_last4}.")

        try:
            return self.editor.submit(TransactionInsert(
                card_id=card.id,
                merchant=parsed.merchant,
                amount=parsed.amount,
                category=parsed.category,
            ))
        except ValidationError as e:
            logger.warning("Extracted expense rejected: %s", e)
            raise SmsParseError("Failed to parse SMS. Please try a different format.") from e
