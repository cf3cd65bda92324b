"""
Magic link administration endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_session
from app.core.security import get_pipeline, require_admin
from app.handlers.auth import ActorContext, get_tokens, issue_token, magic_link, revoke_token
from app.handlers.pipeline import MutationPipeline
from app.models.edit_token import EditToken, EditTokenCreate, EditTokenRead

router = APIRouter(prefix="/tokens", tags=["tokens"])


def _to_read(token: EditToken, frontend_url: str) -> EditTokenRead:
    return EditTokenRead(**token.model_dump(), magic_link=magic_link(frontend_url, token.token))


@router.post("", response_model=EditTokenRead, status_code=status.HTTP_201_CREATED)
async def issue_token_endpoint(
    token: EditTokenCreate,
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Issue a new magic link."""
    new_token = await issue_token(session, token)
    return _to_read(new_token, pipeline.settings.frontend_url)


@router.get("", response_model=List[EditTokenRead])
async def list_tokens_endpoint(
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """List all magic links with their usage."""
    tokens = await get_tokens(session)
    return [_to_read(t, pipeline.settings.frontend_url) for t in tokens]


@router.post("/{token_id}/deactivate", response_model=EditTokenRead)
async def deactivate_token_endpoint(
    token_id: int,
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline)
):
    """Retire a magic link. Tokens are never deleted."""
    token = await revoke_token(session, token_id)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Token {token_id} not found"
        )
    return _to_read(token, pipeline.settings.frontend_url)
