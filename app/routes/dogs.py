"""
Dog endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.core.security import get_pipeline, require_access
from app.handlers.auth import ActorContext
from app.handlers.dogs import create_dog, delete_dog, get_dog, get_dogs, update_dog
from app.handlers.media import get_dog_media
from app.handlers.pipeline import MutationPipeline
from app.models.dog import DogCreate, DogRead, DogUpdate
from app.models.media import MediaRead

router = APIRouter(prefix="/dogs", tags=["dogs"])


@router.get("", response_model=List[DogRead])
async def list_dogs_endpoint(
    owner_id: Optional[int] = None,
    actor: ActorContext = Depends(require_access("dog", "read")),
    session: AsyncSession = Depends(get_session)
):
    """List dogs. Pending dogs are only listed for administrators."""
    return await get_dogs(session, include_pending=actor.is_admin, owner_id=owner_id)


@router.get("/{dog_id}", response_model=DogRead)
async def get_dog_endpoint(
    dog_id: int,
    actor: ActorContext = Depends(require_access("dog", "read")),
    session: AsyncSession = Depends(get_session)
):
    """Get dog by ID."""
    dog = await get_dog(session, dog_id, include_pending=actor.is_admin)
    if not dog:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Dog {dog_id} not found"
        )
    return dog


@router.get("/{dog_id}/media", response_model=List[MediaRead])
async def get_dog_media_endpoint(
    dog_id: int,
    actor: ActorContext = Depends(require_access("media", "read")),
    session: AsyncSession = Depends(get_session)
):
    """Media of a dog, featured first. Unapproved media are only listed for administrators."""
    return await get_dog_media(session, dog_id, include_hidden=actor.is_admin)


@router.post("", response_model=DogRead, status_code=status.HTTP_201_CREATED)
async def create_dog_endpoint(
    dog: DogCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("dog", "create")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Create a new dog. It is published or held for review depending on the moderation mode."""
    try:
        new_dog, mutation = await create_dog(session, dog)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
    return new_dog


@router.patch("/{dog_id}", response_model=DogRead)
async def update_dog_endpoint(
    dog_id: int,
    dog: DogUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("dog", "update")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """
    Update a dog.
    
    Magic link holders may edit sex, birthday, breed and coat; renaming,
    changing the owner and changing the status are reserved to administrators.
    """
    try:
        updated, mutation = await update_dog(session, dog_id, dog, actor)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
    return updated


@router.delete("/{dog_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dog_endpoint(
    dog_id: int,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("dog", "delete")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Delete a dog and its media."""
    try:
        mutation = await delete_dog(session, dog_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
