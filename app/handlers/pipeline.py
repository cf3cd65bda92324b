"""
Post-commit side of every mutation: audit, then detached notification and
site rebuild.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import Settings
from app.handlers.audit import entity_urls, record_change
from app.handlers.auth import ActorContext
from app.handlers.build import trigger_frontend_build
from app.handlers.changes import ChangeRecord
from app.handlers.moderation import get_moderation_mode
from app.handlers.notifications import ChangeEvent, DispatchReport, NotificationDispatcher
from app.models.audit import AuditEntry, AuditOperation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Mutation:
    """A committed write, ready to be audited."""
    entity_kind: str
    entity_id: int
    display_name: str
    operation: AuditOperation
    changes: List[ChangeRecord]
    dog_id: Optional[int] = None
    dog_name: Optional[str] = None

    @property
    def changed_anything(self) -> bool:
        return self.operation != AuditOperation.UPDATE or bool(self.changes)


class MutationPipeline:
    """
    Runs after a mutation commits, in order: audit entry, admin
    notification (non-admin actors only), frontend rebuild.

    The audit entry is written inline on its own session so a failure there
    cannot disturb the request's objects. Notification and rebuild are
    FastAPI background tasks that run after the response is sent.
    """

    def __init__(self, settings: Settings, dispatcher: NotificationDispatcher, session_factory: async_sessionmaker):
        self.settings = settings
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    async def after_commit(
        self,
        actor: ActorContext,
        mutation: Mutation,
        background_tasks: BackgroundTasks,
    ) -> Optional[AuditEntry]:
        entry = await record_change(
            self.session_factory,
            actor,
            mutation.entity_kind,
            mutation.entity_id,
            mutation.display_name,
            mutation.operation,
            mutation.changes,
            frontend_url=self.settings.frontend_url,
            backend_url=self.settings.backend_url,
            dog_id=mutation.dog_id,
        )

        if not actor.is_admin:
            background_tasks.add_task(self.notify, actor, mutation)

        if mutation.changed_anything:
            background_tasks.add_task(trigger_frontend_build, self.settings.frontend_build_hook_url)

        return entry

    async def notify(self, actor: ActorContext, mutation: Mutation) -> Optional[DispatchReport]:
        """Tell administrators about a change. Never raises."""
        try:
            async with self.session_factory() as session:
                mode = await get_moderation_mode(session)
        except Exception:
            logger.exception("Could not read moderation mode, skipping notification")
            return None

        _, admin_url = entity_urls(
            mutation.entity_kind,
            mutation.entity_id,
            self.settings.frontend_url,
            self.settings.backend_url,
            dog_id=mutation.dog_id,
        )
        event = ChangeEvent(
            entity_kind=mutation.entity_kind,
            entity_id=mutation.entity_id,
            display_name=mutation.display_name,
            operation=mutation.operation,
            changes=tuple(mutation.changes),
            actor=actor,
            moderation_mode=mode,
            admin_url=admin_url,
            dog_id=mutation.dog_id,
            dog_name=mutation.dog_name,
        )
        return await self.dispatcher.notify(event)
