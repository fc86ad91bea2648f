"""
Notification intents (``demand_kernel.domain.notifications``).

The kernel never delivers notifications itself.  Services emit
``NotificationIntent`` values into a ``NotificationSink`` supplied by the
caller.  Delivery is fire-and-forget: ``deliver()`` logs a failing sink and
carries on, so a broken mail relay never rolls back a status change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

logger = logging.getLogger("demand_kernel.domain.notifications")


class NotificationKind(str, Enum):
    DEMAND_REJECTED = "demand_rejected"
    APPROVAL_REJECTED = "approval_rejected"
    COMMITTEE_REVIEW_REQUESTED = "committee_review_requested"
    SCOPE_CHANGED = "scope_changed"
    OWNER_ASSIGNED = "owner_assigned"


@dataclass(frozen=True)
class NotificationIntent:
    recipient_id: UUID
    demand_id: UUID
    kind: NotificationKind
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class NotificationSink(Protocol):
    def notify(self, intent: NotificationIntent) -> None:
        ...


class LoggingNotificationSink:
    """Sink that only records intents in the structured log."""

    def notify(self, intent: NotificationIntent) -> None:
        logger.info(
            "notification_intent",
            extra={
                "recipient_id": str(intent.recipient_id),
                "notified_demand_id": str(intent.demand_id),
                "kind": intent.kind.value,
                "title": intent.title,
            },
        )


class CollectingNotificationSink:
    """In-memory sink, mostly for tests and batch previews."""

    def __init__(self) -> None:
        self.intents: list[NotificationIntent] = []

    def notify(self, intent: NotificationIntent) -> None:
        self.intents.append(intent)

    def for_recipient(self, recipient_id: UUID) -> list[NotificationIntent]:
        return [i for i in self.intents if i.recipient_id == recipient_id]

    def of_kind(self, kind: NotificationKind) -> list[NotificationIntent]:
        return [i for i in self.intents if i.kind == kind]


def deliver(sink: NotificationSink, intents: list[NotificationIntent]) -> int:
    """Push ``intents`` into ``sink``; returns how many were accepted."""
    delivered = 0
    for intent in intents:
        try:
            sink.notify(intent)
        except Exception:
            logger.warning(
                "notification_delivery_failed",
                exc_info=True,
                extra={
                    "recipient_id": str(intent.recipient_id),
                    "kind": intent.kind.value,
                },
            )
            continue
        delivered += 1
    return delivered
