"""
Media handlers: uploads, moderation and featured photo changes.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from typing import Any, Dict, List, Optional, Tuple

from app.handlers.auth import ActorContext, ActorKind
from app.handlers.changes import creation_changes, diff, entity_display_name
from app.handlers.featured import get_featured, hand_off_featured, set_featured
from app.handlers.moderation import decide_visibility, get_moderation_mode
from app.handlers.pipeline import Mutation
from app.models.audit import AuditOperation
from app.models.dog import Dog
from app.models.media import Media, MediaCreate, MediaStatus, MediaUpdate

logger = logging.getLogger(__name__)

# Fields only an administrator may change on existing media
ADMIN_ONLY_FIELDS = {"status", "dog_id"}


def media_snapshot(media: Media, dog: Optional[Dog]) -> Dict[str, Any]:
    return {
        "status": media.status,
        "is_featured": media.is_featured,
        "dog": {"id": dog.id, "name": dog.name} if dog else None,
    }


def _mutation(media: Media, dog: Optional[Dog], operation: AuditOperation, changes) -> Mutation:
    return Mutation(
        entity_kind="media",
        entity_id=media.id,
        display_name=entity_display_name("media", media.name, dog.name if dog else None),
        operation=operation,
        changes=changes,
        dog_id=media.dog_id,
        dog_name=dog.name if dog else None,
    )


async def get_media(session: AsyncSession, media_id: int) -> Optional[Media]:
    """Get media by ID."""
    return await session.get(Media, media_id)


async def get_dog_media(session: AsyncSession, dog_id: int, include_hidden: bool = False) -> List[Media]:
    """Media of a dog, featured first then newest first."""
    statement = select(Media).where(Media.dog_id == dog_id)
    if not include_hidden:
        statement = statement.where(Media.status == MediaStatus.APPROVED)
    statement = statement.order_by(Media.is_featured.desc(), Media.uploaded_at.desc(), Media.id.desc())

    result = await session.execute(statement)
    return list(result.scalars().all())


async def create_media(session: AsyncSession, media_data: MediaCreate, actor: ActorContext) -> Tuple[Media, Mutation]:
    """
    Register an uploaded photo or video.

    The status comes from the moderation mode at this instant. Uploads are
    open to anyone, but asking for the featured flag needs a magic link.
    Only approved media are featured: an approved upload takes the flag
    when asked to or when the dog has no featured media yet, and a pending
    one waits for its approval.
    """
    if media_data.is_featured and not actor.satisfies(ActorKind.TOKEN):
        raise PermissionError("Choosing the featured photo needs a magic link")

    dog = await session.get(Dog, media_data.dog_id)
    if not dog:
        raise LookupError(f"Dog {media_data.dog_id} not found")

    mode = await get_moderation_mode(session)
    media = Media(**media_data.model_dump(exclude={"is_featured"}), status=decide_visibility("media", mode))
    session.add(media)
    await session.flush()

    if media.status == MediaStatus.APPROVED:
        if media_data.is_featured:
            await set_featured(session, media)
        else:
            await hand_off_featured(session, dog.id)
    elif media_data.is_featured:
        logger.info("Upload %s for dog %s is pending, featured flag deferred", media.id, dog.id)

    await session.commit()
    await session.refresh(media)

    return media, _mutation(media, dog, AuditOperation.CREATE, creation_changes("media", media_snapshot(media, dog)))


async def update_media(
    session: AsyncSession,
    media_id: int,
    media_data: MediaUpdate,
    actor: ActorContext,
) -> Tuple[Media, Mutation]:
    """
    Apply a partial update while keeping one featured photo per dog.

    Setting ``is_featured`` unsets the dog's other featured media. A media
    that stops being featured (unset, moved away, rejected) hands the flag
    to the newest approved media left on its previous dog. A media that is
    approved, or moved, onto a dog without a featured photo takes the flag.
    """
    media = await session.get(Media, media_id)
    if not media:
        raise LookupError(f"Media {media_id} not found")

    fields = media_data.model_dump(exclude_unset=True)
    restricted = ADMIN_ONLY_FIELDS & fields.keys()
    if restricted and not actor.is_admin:
        raise PermissionError(f"Only administrators may change {', '.join(sorted(restricted))}")
    for key in ("status", "is_featured", "dog_id"):
        if key in fields and fields[key] is None:
            raise ValueError(f"{key} cannot be cleared")
    if fields.get("is_featured") and fields.get("status", media.status) != MediaStatus.APPROVED:
        raise ValueError("Only approved media can be featured")

    old_dog = await session.get(Dog, media.dog_id)
    old = media_snapshot(media, old_dog)
    proposed = {key: value for key, value in fields.items() if key != "dog_id"}

    dog = old_dog
    if "dog_id" in fields:
        dog = await session.get(Dog, fields["dog_id"])
        if not dog:
            raise LookupError(f"Dog {fields['dog_id']} not found")
        proposed["dog"] = {"connect": {"id": dog.id, "name": dog.name}}

    was_featured = media.is_featured
    old_dog_id = media.dog_id
    for key, value in fields.items():
        if key != "is_featured":
            setattr(media, key, value)

    moved = media.dog_id != old_dog_id
    visible = media.status == MediaStatus.APPROVED

    if fields.get("is_featured"):
        await set_featured(session, media)
    else:
        if moved or not visible or fields.get("is_featured") is False:
            media.is_featured = False
        if (
            visible
            and (moved or "status" in fields)
            and "is_featured" not in fields
            and await get_featured(session, media.dog_id) is None
        ):
            await set_featured(session, media)

    if was_featured and (moved or not media.is_featured):
        await hand_off_featured(session, old_dog_id, exclude_id=media.id)

    await session.commit()
    await session.refresh(media)

    return media, _mutation(media, dog, AuditOperation.UPDATE, diff("media", old, proposed))


async def delete_media(session: AsyncSession, media_id: int) -> Mutation:
    """Delete media; a deleted featured photo hands the flag to the newest approved one left."""
    media = await session.get(Media, media_id)
    if not media:
        raise LookupError(f"Media {media_id} not found")

    dog = await session.get(Dog, media.dog_id)
    mutation = _mutation(media, dog, AuditOperation.DELETE, [])
    was_featured = media.is_featured
    dog_id = media.dog_id

    await session.delete(media)
    await session.flush()

    if was_featured:
        await hand_off_featured(session, dog_id)

    await session.commit()
    return mutation
