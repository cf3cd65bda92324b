"""
Media endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import get_pipeline, require_access
from app.handlers.auth import ActorContext
from app.handlers.media import create_media, delete_media, get_media, update_media
from app.handlers.pipeline import MutationPipeline
from app.models.media import MediaCreate, MediaRead, MediaStatus, MediaUpdate

router = APIRouter(prefix="/media", tags=["media"])


@router.get("/{media_id}", response_model=MediaRead)
async def get_media_endpoint(
    media_id: int,
    actor: ActorContext = Depends(require_access("media", "read")),
    session: AsyncSession = Depends(get_session)
):
    """Get media by ID."""
    media = await get_media(session, media_id)
    if not media or (media.status != MediaStatus.APPROVED and not actor.is_admin):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Media {media_id} not found"
        )
    return media


@router.post("", response_model=MediaRead, status_code=status.HTTP_201_CREATED)
async def create_media_endpoint(
    media: MediaCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("media", "create")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """
    Register an uploaded photo or video for a dog.
    
    Open to anyone. With moderation set to require review the media stays
    pending until an administrator approves it. Asking for the featured
    flag needs a magic link.
    """
    try:
        new_media, mutation = await create_media(session, media, actor)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
    return new_media


@router.patch("/{media_id}", response_model=MediaRead)
async def update_media_endpoint(
    media_id: int,
    media: MediaUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("media", "update")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Update media. Approving or rejecting (status) is reserved to administrators."""
    try:
        updated, mutation = await update_media(session, media_id, media, actor)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
    return updated


@router.post("/{media_id}/featured", response_model=MediaRead)
async def set_featured_endpoint(
    media_id: int,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("media", "update")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Make this media the featured photo of its dog."""
    return await update_media_endpoint(
        media_id,
        MediaUpdate(is_featured=True),
        background_tasks,
        actor=actor,
        session=session,
        pipeline=pipeline
    )


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media_endpoint(
    media_id: int,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("media", "delete")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Delete media."""
    try:
        mutation = await delete_media(session, media_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
