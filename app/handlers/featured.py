"""
Featured photo selection: at most one featured media per dog.
"""

import logging
from typing import List, Optional

from sqlalchemy import update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.media import Media, MediaStatus

logger = logging.getLogger(__name__)


async def set_featured(session: AsyncSession, media: Media) -> List[int]:
    """
    Make ``media`` the only featured item of its dog ("unset all, set one").

    Other featured media of the same dog are cleared with one UPDATE issued
    in the caller's transaction, and ``media.is_featured`` is set on the
    caller's object. Nothing is committed here: the triggering write commits
    both together, so two sequential calls always leave exactly one featured
    item. Callers on a store without serializable writes must still take a
    per-dog lock or transaction to rule out two concurrent selections.

    Only approved media can be featured; anything else raises ValueError.

    Returns the ids that were unset.
    """
    if media.status != MediaStatus.APPROVED:
        raise ValueError(f"Media {media.id} is not approved and cannot be featured")

    dog_id = media.dog_id

    result = await session.execute(
        select(Media.id).where(
            Media.dog_id == dog_id,
            Media.id != media.id,
            Media.is_featured == True,  # noqa: E712
        )
    )
    others = list(result.scalars().all())

    if others:
        await session.execute(
            update(Media)
            .where(Media.id.in_(others))
            .values(is_featured=False)
            .execution_options(synchronize_session="fetch")
        )
        logger.info("Unset featured flag on media %s of dog %s", others, dog_id)

    media.is_featured = True
    return others


async def count_featured(session: AsyncSession, dog_id: int) -> int:
    """Number of featured media of a dog."""
    result = await session.execute(
        select(func.count()).select_from(Media).where(
            Media.dog_id == dog_id,
            Media.is_featured == True,  # noqa: E712
        )
    )
    return result.scalar() or 0


async def get_featured(session: AsyncSession, dog_id: int) -> Media | None:
    result = await session.execute(
        select(Media).where(Media.dog_id == dog_id, Media.is_featured == True)  # noqa: E712
    )
    return result.scalars().first()


async def hand_off_featured(session: AsyncSession, dog_id: int, exclude_id: Optional[int] = None) -> Optional[Media]:
    """
    Give a dog left without a featured photo its newest approved media.

    Does nothing when the dog still has a featured media or has no approved
    media to offer. Like ``set_featured``, nothing is committed here.
    """
    if await get_featured(session, dog_id) is not None:
        return None

    statement = select(Media).where(Media.dog_id == dog_id, Media.status == MediaStatus.APPROVED)
    if exclude_id is not None:
        statement = statement.where(Media.id != exclude_id)
    statement = statement.order_by(Media.uploaded_at.desc(), Media.id.desc()).limit(1)

    result = await session.execute(statement)
    candidate = result.scalars().first()
    if candidate is None:
        logger.info("Dog %s has no approved media left to feature", dog_id)
        return None

    await set_featured(session, candidate)
    logger.info("Media %s is now featured for dog %s", candidate.id, dog_id)
    return candidate
