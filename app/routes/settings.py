"""
Moderation setting endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import require_admin
from app.handlers.auth import ActorContext
from app.handlers.moderation import ensure_moderation_setting, set_moderation_mode
from app.models.moderation import ModerationSettingRead, ModerationSettingUpdate

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/moderation", response_model=ModerationSettingRead)
async def get_moderation_endpoint(
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Current moderation mode."""
    return await ensure_moderation_setting(session)


@router.put("/moderation", response_model=ModerationSettingRead)
async def set_moderation_endpoint(
    update: ModerationSettingUpdate,
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """
    Switch between publishing immediately and reviewing first.
    Only content created afterwards is affected.
    """
    return await set_moderation_mode(session, update.mode)
