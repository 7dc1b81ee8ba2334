"""
Notification dispatch.

Executes the effects returned by the booking core:
    InAppNotice     -> row in the notifications table
    AssignmentEmail -> EmailJS REST API
    PushMessage     -> OneSignal REST API

Delivery is fire-and-forget: one attempt per effect, failures are logged and
dropped so they never undo the booking change that produced them.
"""

import logging
from functools import lru_cache
from typing import Iterable, List, Optional

import httpx
from sqlalchemy.orm import Session

from app.core.config import (
    EMAILJS_API_URL,
    EMAILJS_PUBLIC_KEY,
    EMAILJS_SERVICE_ID,
    EMAILJS_TEMPLATE_ID,
    NOTIFY_HTTP_TIMEOUT_SECONDS,
    ONESIGNAL_API_URL,
    ONESIGNAL_APP_ID,
    ONESIGNAL_REST_API_KEY,
    PUSH_CLICK_URL,
)
from app.core.exceptions import NotFoundError
from app.db.models.notification import Notification, NotificationType
from app.services.effects import AssignmentEmail, Effect, InAppNotice, PushMessage

logger = logging.getLogger(__name__)


class EmailJSClient:
    """Sends the provider assignment e-mail through an EmailJS template."""

    def __init__(
        self,
        service_id: Optional[str] = EMAILJS_SERVICE_ID,
        template_id: Optional[str] = EMAILJS_TEMPLATE_ID,
        public_key: Optional[str] = EMAILJS_PUBLIC_KEY,
        api_url: str = EMAILJS_API_URL,
        timeout: float = NOTIFY_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.public_key = public_key
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)

    def send_assignment(self, email: AssignmentEmail) -> bool:
        if not self.configured:
            logger.warning(f"⚠️ EmailJS not configured, skipping assignment e-mail to {email.to_email}")
            return False

        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": {
                "to_name": email.to_name,
                "to_email": email.to_email,
                "provider_name": email.to_name,
                "customer_name": email.customer_name,
                "customer_phone": email.customer_phone,
                "service_name": email.service_name,
                "booking_date": email.booking_date,
                "booking_time": email.booking_time,
                "booking_location": email.booking_location,
                "budget": email.amount,
                "message": f"New Job Assigned: {email.service_name} at {email.booking_location}",
            },
        }

        logger.info(f"📧 Sending assignment e-mail to {email.to_email}")
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.api_url, json=payload)
            response.raise_for_status()
        logger.info(f"✅ Assignment e-mail sent to {email.to_email}")
        return True


class OneSignalClient:
    """Web push through the OneSignal REST API."""

    def __init__(
        self,
        app_id: Optional[str] = ONESIGNAL_APP_ID,
        api_key: Optional[str] = ONESIGNAL_REST_API_KEY,
        api_url: str = ONESIGNAL_API_URL,
        default_url: str = PUSH_CLICK_URL,
        timeout: float = NOTIFY_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.app_id = app_id
        self.api_key = api_key
        self.api_url = api_url
        self.default_url = default_url
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.api_key)

    def send(self, push: PushMessage) -> bool:
        if not push.subscription_id:
            return False
        if not self.configured:
            logger.warning("⚠️ Push notification skipped: OneSignal credentials missing")
            return False

        payload = {
            "app_id": self.app_id,
            "include_player_ids": [push.subscription_id],
            "headings": {"en": push.heading},
            "contents": {"en": push.body},
            "url": push.url or self.default_url,
        }
        headers = {
            "accept": "application/json",
            "Authorization": f"Basic {self.api_key}",
        }

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
        logger.info(f"📱 Push sent to {push.subscription_id}: {push.heading}")
        return True


def create_notification(db: Session, user_id: str, message: str, severity: str = NotificationType.INFO.value) -> Notification:
    notification = Notification(user_id=user_id, message=message, type=NotificationType(severity).value, is_read=False)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_notifications(db: Session, user_id: str) -> List[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .all()
    )


def mark_notification_read(db: Session, notification_id: str, user_id: str) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification", notification_id)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


class NotificationDispatcher:
    def __init__(self, email_client: Optional[EmailJSClient] = None, push_client: Optional[OneSignalClient] = None):
        self.email_client = email_client or EmailJSClient()
        self.push_client = push_client or OneSignalClient()

    def _deliver(self, db: Session, effect: Effect) -> bool:
        if isinstance(effect, InAppNotice):
            create_notification(db, effect.user_id, effect.message, effect.severity)
            return True
        elif isinstance(effect, AssignmentEmail):
            return self.email_client.send_assignment(effect)
        elif isinstance(effect, PushMessage):
            return self.push_client.send(effect)
        else:
            raise TypeError(f"Unknown effect {effect!r}")

    def dispatch(self, db: Session, effects: Iterable[Effect]) -> dict:
        result = {"delivered": 0, "skipped": 0, "failed": 0}
        for effect in effects:
            try:
                if self._deliver(db, effect):
                    result["delivered"] += 1
                else:
                    result["skipped"] += 1
            except Exception as e:
                if isinstance(effect, InAppNotice):
                    db.rollback()
                result["failed"] += 1
                logger.error(f"❌ Failed to deliver {type(effect).__name__}: {e}")
        return result


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
