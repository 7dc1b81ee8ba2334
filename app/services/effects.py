"""
Outbound side effects produced by the booking core.

Core operations never talk to the notification table, EmailJS or OneSignal
directly. They return an Outcome whose effects list describes what should be
sent; app.services.notifications.NotificationDispatcher executes it.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from app.db.models.notification import NotificationType


@dataclass(frozen=True)
class InAppNotice:
    user_id: str
    message: str
    severity: str = NotificationType.INFO.value


@dataclass(frozen=True)
class AssignmentEmail:
    to_name: str
    to_email: str
    customer_name: str
    customer_phone: str
    service_name: str
    booking_date: str
    booking_time: str
    booking_location: str
    amount: str


@dataclass(frozen=True)
class PushMessage:
    subscription_id: str
    heading: str
    body: str
    url: Optional[str] = None


Effect = Union[InAppNotice, AssignmentEmail, PushMessage]


@dataclass
class Outcome:
    result: Any = None
    effects: List[Effect] = field(default_factory=list)

    def extend(self, effects: List[Effect]) -> "Outcome":
        self.effects.extend(effects)
        return self
