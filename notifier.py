import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from aggregator import TransactionAggregator
from models import Card
from store import Store

logger = logging.getLogger(__name__)

THRESHOLDS = (30, 50, 85)
BAR_WIDTH = 10


class Permission(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class SpendingAlert:
    card_id: str
    threshold: int
    title: str
    body: str


def render_progress_bar(percentage: float) -> str:
    """Text bar graph, e.g. '[███░░░░░░░] 32.0% Used'"""
    filled = min(BAR_WIDTH, max(0, round(percentage / 100 * BAR_WIDTH)))
    return f"[{'█' * filled}{'░' * (BAR_WIDTH - filled)}] {percentage:.1f}% Used"


def progress_color(percentage: float) -> str:
    if percentage > 85:
        return "red"
    if percentage > 50:
        return "yellow"
    if percentage > 30:
        return "blue"
    return "green"


def notification_key(card_id: str, today: datetime, threshold: int) -> str:
    return f"{card_id}-{today.year}-{today.month}-{threshold}"


def build_alert(card: Card, percentage: float, threshold: int) -> SpendingAlert:
    return SpendingAlert(
        card_id=card.id,
        threshold=threshold,
        title=f"Spending Alert: {card.name}",
        body=f"You've used {percentage:.1f}% of your limit.\n{render_progress_bar(percentage)}",
    )


class SpendingNotifier:
    """Fire one alert per card, month and threshold once spending crosses it.

    Nothing is evaluated until the user has granted permission; alerts missed
    while permission was withheld are not replayed later.
    """

    def __init__(self, store: Store, sink: Callable[[SpendingAlert], None],
                 permission: Permission = Permission.DEFAULT):
        self.store = store
        self.sink = sink
        self.permission = permission

    def request_permission(self, granted: bool) -> Permission:
        self.permission = Permission.GRANTED if granted else Permission.DENIED
        logger.info("Notification permission %s", self.permission.value)
        return self.permission

    def evaluate(self, today: Optional[datetime] = None) -> List[SpendingAlert]:
        if self.permission != Permission.GRANTED:
            return []

        today = today or datetime.now()
        sent = []

        for usage in TransactionAggregator.card_usage(self.store.cards, self.store.transactions, today):
            for threshold in THRESHOLDS:
                key = notification_key(usage.card.id, today, threshold)
                if usage.percentage >= threshold and not self.store.notification_sent(key):
                    alert = build_alert(usage.card, usage.percentage, threshold)
                    self.sink(alert)
                    self.store.mark_notification_sent(key)
                    logger.info("Sent %d%% alert for %s", threshold, usage.card.name)
                    sent.append(alert)

        return sent
