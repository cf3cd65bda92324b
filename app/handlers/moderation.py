"""
Moderation gate: decides, from the global moderation setting, whether new
content is published immediately and how audit entries start out.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.audit import AuditStatus
from app.models.dog import DogStatus
from app.models.media import MediaStatus
from app.models.moderation import ModerationMode, ModerationSetting
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_MODE = ModerationMode.AUTO_APPROVE


async def _get_setting_row(session: AsyncSession) -> ModerationSetting | None:
    result = await session.execute(select(ModerationSetting).order_by(ModerationSetting.id))
    return result.scalars().first()


async def ensure_moderation_setting(session: AsyncSession, default_mode: str | ModerationMode = DEFAULT_MODE) -> ModerationSetting:
    """Create the singleton settings row if it does not exist yet."""
    setting = await _get_setting_row(session)
    if setting is None:
        setting = ModerationSetting(mode=ModerationMode(default_mode))
        session.add(setting)
        await session.commit()
        await session.refresh(setting)
        logger.info("Created moderation setting with mode %s", setting.mode.value)
    return setting


async def get_moderation_mode(session: AsyncSession) -> ModerationMode:
    """Read the current mode. Always hits the database, never cached."""
    setting = await _get_setting_row(session)
    if setting is None:
        logger.warning("No moderation setting row, falling back to %s", DEFAULT_MODE.value)
        return DEFAULT_MODE
    return setting.mode


async def set_moderation_mode(session: AsyncSession, mode: ModerationMode) -> ModerationSetting:
    """Change the global mode. Existing records keep their status."""
    setting = await ensure_moderation_setting(session, mode)
    setting.mode = mode
    setting.updated_at = utc_now()
    await session.commit()
    await session.refresh(setting)
    logger.info("Moderation mode set to %s", mode.value)
    return setting


def decide_dog_status(mode: ModerationMode) -> DogStatus:
    """Visibility of a newly created dog."""
    if mode == ModerationMode.AUTO_APPROVE:
        return DogStatus.APPROVED
    return DogStatus.PENDING


def decide_media_status(mode: ModerationMode) -> MediaStatus:
    """Visibility of a newly uploaded media item."""
    if mode == ModerationMode.AUTO_APPROVE:
        return MediaStatus.APPROVED
    return MediaStatus.PENDING


def decide_visibility(entity_kind: str, mode: ModerationMode) -> DogStatus | MediaStatus:
    """Creation-time status for a dog or media, fixed once and never recomputed."""
    if entity_kind == "dog":
        return decide_dog_status(mode)
    if entity_kind == "media":
        return decide_media_status(mode)
    raise ValueError(f"{entity_kind} has no visibility status")


def decide_audit_status(mode: ModerationMode) -> AuditStatus:
    """Initial review state of an audit entry."""
    if mode == ModerationMode.AUTO_APPROVE:
        return AuditStatus.ACCEPTED
    return AuditStatus.PENDING
