"""
Decision events — how collaborators learn a decision committed.

The notification service (emails) and the session service
(login eligibility) subscribe here. Delivery is fire-and-forget:
a failing subscriber is logged and never affects the decision.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from approval_engine.models.enums import (
    Capability,
    DecisionAction,
    VerificationKind,
    VerificationStatus,
)

logger = logging.getLogger(__name__)

# Capabilities unlocked by an APPROVE, per kind
GRANTS: dict[VerificationKind, tuple[Capability, ...]] = {
    VerificationKind.ACCOUNT: (Capability.LOGIN,),
    VerificationKind.KYB: (
        Capability.CREATE_PRIVATE_PROGRAM,
        Capability.INVITE_MEMBERS,
    ),
}


@dataclass(frozen=True)
class DecisionCommitted:
    """Emitted once per committed APPROVE or REJECT."""

    principal_id: int
    kind: VerificationKind
    action: DecisionAction
    status: VerificationStatus
    actor: str
    reason: str | None = None
    grants: tuple[Capability, ...] = ()
    occurred_at: datetime = field(default_factory=datetime.utcnow)


Subscriber = Callable[[DecisionCommitted], None]


class EventPublisher:

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    def publish(self, event: DecisionCommitted) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed for %s decision on principal %s",
                    subscriber, event.kind.value, event.principal_id,
                )


def log_notification(event: DecisionCommitted) -> None:
    """Default notification subscriber: record what would be emailed."""
    logger.info(
        "Notify principal %s: %s verification %s by %s",
        event.principal_id, event.kind.value,
        event.status.value, event.actor,
    )


publisher = EventPublisher()
publisher.subscribe(log_notification)


def get_publisher() -> EventPublisher:
    return publisher
