"""
Admin push notifications: one payload per change, fanned out to every admin
subscription, with subscriptions the push service reports gone pruned.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pywebpush import webpush, WebPushException
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select

from app.core.config import Settings
from app.core.constants import (
    ENTITY_ICONS,
    ENTITY_TYPE_LABELS,
    GONE_STATUS_CODES,
    NOTIFICATION_BADGE,
    NOTIFICATION_ICON,
)
from app.handlers.auth import ActorContext
from app.handlers.changes import ChangeRecord
from app.models.audit import AuditOperation
from app.models.moderation import ModerationMode
from app.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


class PushConfigurationError(RuntimeError):
    """VAPID credentials are missing."""


class DeliveryError(Exception):
    """A push service refused a delivery."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_gone(self) -> bool:
        return self.status_code in GONE_STATUS_CODES


class PushSender:
    """Encrypts and delivers Web Push messages with VAPID authentication."""

    def __init__(self, public_key: str, private_key: str, subject: str, ttl: int = 86400):
        self.public_key = public_key
        self.private_key = private_key
        self.subject = subject
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "PushSender":
        if not settings.vapid_public_key or not settings.vapid_private_key:
            raise PushConfigurationError(
                "VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY must be set "
                "(generate them with `vapid --gen` from py-vapid)"
            )
        logger.info("Web Push configured for %s", settings.vapid_subject)
        return cls(settings.vapid_public_key, settings.vapid_private_key, settings.vapid_subject)

    async def send(self, endpoint: str, keys: Dict[str, str], data: str) -> None:
        """Deliver one message. Raises DeliveryError on refusal."""
        try:
            # webpush is blocking and fills in aud/exp on the claims dict
            await asyncio.to_thread(
                webpush,
                subscription_info={"endpoint": endpoint, "keys": keys},
                data=data,
                vapid_private_key=self.private_key,
                vapid_claims={"sub": self.subject},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise DeliveryError(str(e), status_code) from e


@dataclass(frozen=True)
class ChangeEvent:
    """What happened, as seen by the notifier."""
    entity_kind: str
    entity_id: int
    display_name: str
    operation: AuditOperation
    changes: Tuple[ChangeRecord, ...]
    actor: ActorContext
    moderation_mode: ModerationMode
    admin_url: str
    dog_id: Optional[int] = None
    dog_name: Optional[str] = None


@dataclass(frozen=True)
class PushPayload:
    title: str
    body: str
    data: Dict[str, Any]
    icon: str = NOTIFICATION_ICON
    badge: str = NOTIFICATION_BADGE

    def to_json(self) -> str:
        return json.dumps(
            {"title": self.title, "body": self.body, "icon": self.icon, "badge": self.badge, "data": self.data},
            ensure_ascii=False,
        )


@dataclass
class DispatchReport:
    delivered: int = 0
    failed: int = 0
    pruned: List[int] = field(default_factory=list)


def change_message(entity_kind: str, display_name: str, operation: AuditOperation, changes: Tuple[ChangeRecord, ...]) -> Tuple[str, str]:
    """Title and body describing a create, update or delete."""
    icon = ENTITY_ICONS.get(entity_kind, "📝")
    type_label = ENTITY_TYPE_LABELS.get(entity_kind, entity_kind)

    if operation == AuditOperation.CREATE:
        return f"{icon} Nouveau {type_label.lower()}", f'"{display_name}" a été créé'
    if operation == AuditOperation.DELETE:
        return f"{icon} {type_label} supprimé", f'"{display_name}" a été supprimé'
    if not changes:
        return f"{icon} {display_name}", "Modifié"

    parts = [f"{c.label}: {c.display_old} → {c.display_new}" for c in changes]
    return f"{icon} {display_name} modifié", ", ".join(parts)


def build_payload(event: ChangeEvent) -> PushPayload:
    """Notification content and deep link for a change."""
    needs_approval = event.moderation_mode == ModerationMode.REQUIRE_REVIEW
    data: Dict[str, Any] = {
        "entityType": event.entity_kind,
        "entityId": event.entity_id,
        "action": "approve" if needs_approval else "view",
        "url": event.admin_url,
    }

    if event.entity_kind == "media":
        data["mediaId"] = event.entity_id
        data["dogId"] = event.dog_id
    elif event.entity_kind == "dog":
        data["dogId"] = event.entity_id

    if event.entity_kind == "media" and event.operation == AuditOperation.CREATE:
        dog_name = event.dog_name or "un chien"
        if needs_approval:
            return PushPayload(
                title="🐕 Nouvelle photo à approuver",
                body=f"Une photo de {dog_name} attend votre approbation.",
                data=data,
            )
        return PushPayload(
            title="🐕 Nouvelle photo ajoutée",
            body=f"Une nouvelle photo de {dog_name} a été ajoutée.",
            data=data,
        )

    title, body = change_message(event.entity_kind, event.display_name, event.operation, event.changes)
    if event.actor.label:
        body = f"{body} ({event.actor.label})"
    return PushPayload(title=title, body=body, data=data)


class NotificationDispatcher:
    """Fans change events out to admin push subscriptions."""

    def __init__(self, sender: PushSender, session_factory: async_sessionmaker):
        self.sender = sender
        self.session_factory = session_factory

    async def _deliver(self, subscription: PushSubscription, data: str) -> Optional[bool]:
        """True when delivered, False on failure, None when the endpoint is gone."""
        try:
            await self.sender.send(subscription.endpoint, json.loads(subscription.keys), data)
            logger.debug("Push notification sent to %s", subscription.endpoint)
            return True
        except DeliveryError as e:
            if e.is_gone:
                logger.info("Push endpoint gone (%s): %s", e.status_code, subscription.endpoint)
                return None
            logger.warning("Failed to send push to %s (%s): %s", subscription.endpoint, e.status_code, e)
            return False
        except Exception:
            logger.exception("Failed to send push to %s", subscription.endpoint)
            return False

    async def notify(self, event: ChangeEvent) -> DispatchReport:
        """
        Deliver one payload per admin subscription, concurrently.

        Each delivery succeeds or fails on its own. Subscriptions whose
        endpoint is gone are deleted afterwards; any other failure leaves
        the subscription in place. Never raises.
        """
        report = DispatchReport()
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PushSubscription).where(PushSubscription.receives_admin_notifications == True)  # noqa: E712
                )
                subscriptions = list(result.scalars().all())

                if not subscriptions:
                    logger.debug("No admin subscriptions, skipping notification")
                    return report

                data = build_payload(event).to_json()
                outcomes = await asyncio.gather(*(self._deliver(sub, data) for sub in subscriptions))

                for sub, outcome in zip(subscriptions, outcomes):
                    if outcome is True:
                        report.delivered += 1
                    elif outcome is None:
                        report.pruned.append(sub.id)
                    else:
                        report.failed += 1

                if report.pruned:
                    await session.execute(delete(PushSubscription).where(PushSubscription.id.in_(report.pruned)))
                    await session.commit()
                    logger.info("Deleted gone push subscriptions %s", report.pruned)
        except Exception:
            logger.exception("Notification dispatch failed for %s %s", event.entity_kind, event.entity_id)

        return report
