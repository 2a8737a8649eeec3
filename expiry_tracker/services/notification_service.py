"""Notification service for web push and email delivery."""

import asyncio
import json
import logging
from dataclasses import dataclass, field

import httpx
from pywebpush import WebPushException, webpush
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expiry_tracker.config import Settings, get_settings
from expiry_tracker.models import PushSubscription, User
from expiry_tracker.models.enums import NotificationMethod
from expiry_tracker.schemas.recipe_suggestion import PushResult

logger = logging.getLogger(__name__)

GONE = 410


@dataclass(frozen=True)
class PushEndpoint:
    """Detached copy of an active push subscription."""

    id: int
    endpoint: str
    subscription_info: dict

    @classmethod
    def from_row(cls, sub: PushSubscription) -> "PushEndpoint":
        return cls(id=sub.id, endpoint=sub.endpoint, subscription_info=sub.subscription_info)


@dataclass
class DeliveryChannels:
    """Where a user can be reached."""

    user_id: int
    email: str | None = None
    subscriptions: list[PushEndpoint] = field(default_factory=list)

    @property
    def has_push(self) -> bool:
        return bool(self.subscriptions)

    @property
    def has_email(self) -> bool:
        return bool(self.email)

    @property
    def reachable(self) -> bool:
        return self.has_push or self.has_email


@dataclass
class PushDeliveryReport:
    """Outcome of a push fan-out to all of a user's endpoints."""

    results: list[PushResult]

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def sent(self) -> bool:
        return self.success_count > 0


@dataclass
class DeliveryOutcome:
    """Which channel was used and whether delivery succeeded."""

    method: NotificationMethod
    sent: bool
    push_results: list[PushResult] | None = None


class NotificationService:
    """Service for sending notifications via push or email."""

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self._webpush_available = self.settings.push_configured
        if not self._webpush_available:
            logger.info("VAPID credentials not configured, push disabled")

    def get_delivery_channels(self, user_id: int) -> DeliveryChannels | None:
        """Get the user's delivery channels, or None if they opted out."""
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user or not user.notification_enabled:
            return None

        subscriptions = (
            self.db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id, PushSubscription.is_active.is_(True))
            .order_by(PushSubscription.id)
            .all()
        )
        return DeliveryChannels(
            user_id=user_id,
            email=user.email,
            subscriptions=[PushEndpoint.from_row(sub) for sub in subscriptions],
        )

    async def deliver(
        self,
        channels: DeliveryChannels,
        push_payload: dict,
        email_subject: str,
        email_html: str,
        fallback: bool = False,
    ) -> DeliveryOutcome | None:
        """Deliver via push if any endpoint exists, else email, else nothing.

        Returns None when the user has no channel at all.
        """
        if channels.has_push:
            report = await self.send_push(channels.subscriptions, push_payload)
            method = NotificationMethod.FALLBACK_PUSH if fallback else NotificationMethod.PUSH
            return DeliveryOutcome(method=method, sent=report.sent, push_results=report.results)

        if channels.has_email:
            sent = await self.send_email(channels.email, email_subject, email_html)
            method = NotificationMethod.FALLBACK_EMAIL if fallback else NotificationMethod.EMAIL
            return DeliveryOutcome(method=method, sent=sent)

        return None

    async def send_push(
        self,
        subscriptions: list[PushEndpoint],
        payload: dict,
    ) -> PushDeliveryReport:
        """Send a push notification to every subscription concurrently.

        Endpoints that report 410 Gone are marked inactive.
        """
        if not self._webpush_available:
            logger.warning("Push notifications not available")
            return PushDeliveryReport(
                results=[
                    PushResult(success=False, endpoint=sub.endpoint, error="Push not configured")
                    for sub in subscriptions
                ]
            )

        data = json.dumps(payload)
        outcomes = await asyncio.gather(
            *(self._send_one(sub, data) for sub in subscriptions), return_exceptions=True
        )

        results: list[PushResult] = []
        for sub, outcome in zip(subscriptions, outcomes, strict=True):
            if isinstance(outcome, Exception):
                # Transport errors other than WebPushException (connection resets etc.)
                logger.error(f"Push failed for subscription {sub.id}: {outcome}")
                outcome = PushResult(success=False, endpoint=sub.endpoint, error=str(outcome))
            elif outcome.status_code == GONE:
                self.deactivate_subscription(sub)
            results.append(outcome)

        report = PushDeliveryReport(results=results)
        logger.info(f"Sent push to {report.success_count}/{len(subscriptions)} devices")
        return report

    async def _send_one(self, sub: PushEndpoint, data: str) -> PushResult:
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=sub.subscription_info,
                data=data,
                vapid_private_key=self.settings.vapid_private_key,
                vapid_claims={"sub": f"mailto:{self.settings.vapid_email}"},
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"Push failed for subscription {sub.id}: {e}")
            return PushResult(
                success=False, endpoint=sub.endpoint, error=str(e), status_code=status_code
            )
        return PushResult(success=True, endpoint=sub.endpoint)

    def deactivate_subscription(self, sub: PushEndpoint) -> None:
        """Mark an expired subscription inactive."""
        logger.info(f"Deactivating expired subscription {sub.id}")
        try:
            (
                self.db.query(PushSubscription)
                .filter(PushSubscription.endpoint == sub.endpoint)
                .update({PushSubscription.is_active: False}, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to deactivate subscription {sub.id}: {e}")
            self.db.rollback()

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        """Send an email through Resend. Returns True on success, never raises."""
        if not self.settings.resend_api_key:
            logger.error("RESEND_API_KEY is not configured, skipping email")
            return False

        try:
            async with httpx.AsyncClient(timeout=self.settings.email_timeout_seconds) as client:
                response = await client.post(
                    self.settings.resend_api_url,
                    headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
                    json={
                        "from": self.settings.resend_from_email,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        if response.is_error:
            logger.error(f"Resend API error {response.status_code}: {response.text}")
            return False

        logger.info(f"Email sent to {to}")
        return True
