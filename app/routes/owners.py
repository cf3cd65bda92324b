"""
Owner endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.core.security import get_pipeline, require_access
from app.handlers.auth import ActorContext
from app.handlers.owners import create_owner, delete_owner, get_owner, get_owners, update_owner
from app.handlers.pipeline import MutationPipeline
from app.models.owner import OwnerCreate, OwnerRead, OwnerUpdate

router = APIRouter(prefix="/owners", tags=["owners"])


@router.get("", response_model=List[OwnerRead])
async def list_owners_endpoint(
    search: Optional[str] = None,
    actor: ActorContext = Depends(require_access("owner", "read")),
    session: AsyncSession = Depends(get_session)
):
    """List owners, optionally matching a name fragment (autocomplete)."""
    return await get_owners(session, search)


@router.get("/{owner_id}", response_model=OwnerRead)
async def get_owner_endpoint(
    owner_id: int,
    actor: ActorContext = Depends(require_access("owner", "read")),
    session: AsyncSession = Depends(get_session)
):
    """Get owner by ID."""
    owner = await get_owner(session, owner_id)
    if not owner:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Owner {owner_id} not found"
        )
    return owner


@router.post("", response_model=OwnerRead, status_code=status.HTTP_201_CREATED)
async def create_owner_endpoint(
    owner: OwnerCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("owner", "create")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Create a new owner."""
    new_owner, mutation = await create_owner(session, owner)
    await pipeline.after_commit(actor, mutation, background_tasks)
    return new_owner


@router.patch("/{owner_id}", response_model=OwnerRead)
async def update_owner_endpoint(
    owner_id: int,
    owner: OwnerUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("owner", "update")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Update an owner's name or contact details."""
    try:
        updated, mutation = await update_owner(session, owner_id, owner)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
    return updated


@router.delete("/{owner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_owner_endpoint(
    owner_id: int,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(require_access("owner", "delete")),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Delete an owner without dogs."""
    try:
        mutation = await delete_owner(session, owner_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    await pipeline.after_commit(actor, mutation, background_tasks)
