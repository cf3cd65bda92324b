"""
Audit log: one append-only entry per committed mutation, with attribution,
moderation status and links to the public site and the admin.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.handlers.auth import ActorContext, ActorKind
from app.handlers.changes import ChangeRecord, summarize
from app.handlers.moderation import decide_audit_status, get_moderation_mode
from app.models.audit import AuditEntry, AuditOperation, AuditStatus

logger = logging.getLogger(__name__)


def entity_urls(
    entity_kind: str,
    entity_id: int | str,
    frontend_url: str,
    backend_url: str,
    dog_id: Optional[int | str] = None,
) -> Tuple[str, str]:
    """
    Public page and admin page of an entity.

    Media have no page of their own on the public site, so they link to
    their dog's page (or nothing when the dog is unknown).
    """
    frontend_url = frontend_url.rstrip("/")
    backend_url = backend_url.rstrip("/")

    if entity_kind == "dog":
        return f"{frontend_url}/chiens/{entity_id}/", f"{backend_url}/dogs/{entity_id}"
    if entity_kind == "owner":
        return f"{frontend_url}/humains/{entity_id}/", f"{backend_url}/owners/{entity_id}"
    if entity_kind == "media":
        public = f"{frontend_url}/chiens/{dog_id}/" if dog_id is not None else ""
        return public, f"{backend_url}/media/{entity_id}"
    raise ValueError(f"Unknown entity kind: {entity_kind}")


def attributed_summary(actor: ActorContext, summary: str) -> str:
    """Prefix magic-token changes with the token's label."""
    if actor.kind == ActorKind.TOKEN and actor.label:
        return f"[{actor.label}] {summary}"
    return summary


async def record_change(
    session_factory: async_sessionmaker,
    actor: ActorContext,
    entity_kind: str,
    entity_id: int | str,
    display_name: str,
    operation: AuditOperation,
    changes: List[ChangeRecord],
    *,
    frontend_url: str,
    backend_url: str,
    dog_id: Optional[int] = None,
) -> Optional[AuditEntry]:
    """
    Persist the audit entry of a mutation that has already committed.

    Uses a session of its own. Never raises: a failure is logged and the
    mutation stands without its audit entry.
    """
    try:
        async with session_factory() as session:
            mode = await get_moderation_mode(session)
            frontend, backend = entity_urls(entity_kind, entity_id, frontend_url, backend_url, dog_id)

            entry = AuditEntry(
                entity_type=entity_kind,
                entity_id=str(entity_id),
                entity_name=display_name,
                operation=operation,
                changes=[c.to_dict() for c in changes],
                changes_summary=attributed_summary(actor, summarize(entity_kind, display_name, changes)),
                changed_by=actor.kind.value,
                changed_by_label=actor.label,
                status=decide_audit_status(mode),
                frontend_url=frontend,
                backend_url=backend,
            )
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
    except Exception:
        logger.exception("Failed to write audit entry for %s %s", entity_kind, entity_id)
        return None

    logger.info("Audit %s %s %s by %s: %s", operation.value, entity_kind, entity_id, actor.kind.value, entry.changes_summary)
    return entry


async def get_audit_entries(
    session: AsyncSession,
    status: Optional[AuditStatus] = None,
    entity_type: Optional[str] = None,
    limit: int = 100,
) -> List[AuditEntry]:
    """Audit entries, newest first."""
    statement = select(AuditEntry)
    if status:
        statement = statement.where(AuditEntry.status == status)
    if entity_type:
        statement = statement.where(AuditEntry.entity_type == entity_type)
    statement = statement.order_by(AuditEntry.timestamp.desc(), AuditEntry.id.desc()).limit(limit)

    result = await session.execute(statement)
    return list(result.scalars().all())


async def set_audit_status(session: AsyncSession, entry_id: int, status: AuditStatus) -> AuditEntry:
    """
    Review an audit entry. Only pending entries can move, and only forward.
    """
    entry = await session.get(AuditEntry, entry_id)
    if entry is None:
        raise LookupError(f"Audit entry {entry_id} not found")
    if entry.status != AuditStatus.PENDING or status == AuditStatus.PENDING:
        raise ValueError(f"Cannot move audit entry from {entry.status.value} to {status.value}")

    entry.status = status
    await session.commit()
    await session.refresh(entry)
    return entry
