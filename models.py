from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class Category(str, Enum):
    """Spending categories"""
    BILLS = "Bills"
    ENTERTAINMENT = "Entertainment"
    FOOD = "Food"
    SHOPPING = "Shopping"
    FUEL = "Fuel"
    GROCERIES = "Groceries"
    HEALTH = "Health"
    OFFICE = "Office"
    TRAVEL = "Travel"
    TRANSFER = "Transfer"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value) -> "Category":
        """Map a label (or Category) onto the enum, falling back to Other"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class CategoryStyle:
    color: str
    icon: str


CATEGORY_STYLES: Dict[Category, CategoryStyle] = {
    Category.BILLS: CategoryStyle("#ef4444", "🧾"),
    Category.ENTERTAINMENT: CategoryStyle("#ec4899", "🎬"),
    Category.FOOD: CategoryStyle("#eab308", "🍔"),
    Category.SHOPPING: CategoryStyle("#a855f7", "🛍️"),
    Category.FUEL: CategoryStyle("#f97316", "⛽"),
    Category.GROCERIES: CategoryStyle("#22c55e", "🛒"),
    Category.HEALTH: CategoryStyle("#3b82f6", "💊"),
    Category.OFFICE: CategoryStyle("#6366f1", "💼"),
    Category.TRAVEL: CategoryStyle("#14b8a6", "✈️"),
    Category.TRANSFER: CategoryStyle("#6b7280", "🔁"),
    Category.OTHER: CategoryStyle("#9ca3af", "•"),
}

CARD_GRADIENTS = [
    "from-blue-400 to-purple-500",
    "from-green-400 to-blue-500",
    "from-pink-500 to-orange-400",
    "from-indigo-500 to-purple-600",
    "from-teal-400 to-cyan-500",
    "from-rose-400 to-pink-500",
]


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime.

    Accepts the trailing 'Z' form written by browsers as well as offsets;
    aware values are converted to local time before the tzinfo is dropped.
    """
    if not isinstance(value, str):
        raise TypeError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass
class Card:
    """Tracked credit line"""
    id: str
    name: str
    last4: str
    limit: float
    gradient: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            last4=str(data["last4"]),
            limit=float(data["limit"]),
            gradient=str(data.get("gradient") or CARD_GRADIENTS[0]),
        )

    def __str__(self):
        return f"{self.name:20} **** {self.last4} | limit ${self.limit:,.2f}"


@dataclass
class Transaction:
    """Single dated expense on a card"""
    id: str
    card_id: str
    merchant: str
    amount: float
    date: datetime
    category: Category = Category.OTHER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cardId": self.card_id,
            "merchant": self.merchant,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "category": self.category.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=str(data["id"]),
            card_id=str(data["cardId"]),
            merchant=str(data["merchant"]),
            amount=float(data["amount"]),
            date=parse_timestamp(data["date"]),
            category=Category.coerce(data.get("category")),
        )


@dataclass
class CardDraft:
    """Raw card form input; card_id is set when editing an existing card"""
    name: str
    last4: str
    limit: Any
    card_id: Optional[str] = None


@dataclass
class TransactionInsert:
    """New transaction: every field required"""
    card_id: str
    merchant: str
    amount: Any
    category: Category = Category.OTHER


@dataclass
class TransactionUpdate:
    """Edit of an existing transaction: id plus any subset of fields"""
    id: str
    card_id: Optional[str] = None
    merchant: Optional[str] = None
    amount: Any = None
    category: Optional[Category] = None
    date: Optional[datetime] = None

    def changes(self) -> Dict[str, Any]:
        """Fields supplied by the caller"""
        supplied = {
            "card_id": self.card_id,
            "merchant": self.merchant,
            "amount": self.amount,
            "category": self.category,
            "date": self.date,
        }
        return {key: value for key, value in supplied.items() if value is not None}


@dataclass
class ParsedSms:
    """Expense fields extracted from a bank SMS"""
    merchant: str
    amount: float
    card_last4: str
    category: Category = field(default=Category.OTHER)
