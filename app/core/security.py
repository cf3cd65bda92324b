"""
Request-level access dependencies built on the token authority.
"""

from fastapi import BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import ACCESS_POLICY, ADMIN_KEY_HEADER, MAGIC_TOKEN_HEADER
from app.core.database import get_session
from app.handlers.auth import ActorContext, ActorKind, admit, record_token_usage
from app.handlers.pipeline import MutationPipeline


def get_pipeline(request: Request) -> MutationPipeline:
    """The pipeline built at startup."""
    return request.app.state.pipeline


def _token_from(request: Request, cookie_name: str) -> str | None:
    return request.cookies.get(cookie_name) or request.headers.get(MAGIC_TOKEN_HEADER)


async def _admit_request(
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession,
    pipeline: MutationPipeline,
    required: ActorKind,
    count_usage: bool,
) -> ActorContext:
    settings = pipeline.settings
    admission = await admit(
        session,
        required=required,
        admin_key=request.headers.get(ADMIN_KEY_HEADER),
        expected_admin_key=settings.admin_api_key,
        admin_name=settings.admin_name,
        token_value=_token_from(request, settings.magic_cookie_name),
    )
    if not admission.granted:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")

    if count_usage and admission.actor.token_id is not None:
        background_tasks.add_task(record_token_usage, pipeline.session_factory, admission.actor.token_id)
    return admission.actor


def require_access(entity_kind: str, operation: str):
    """Dependency admitting the request under the policy of one operation."""
    required = ActorKind(ACCESS_POLICY[(entity_kind, operation)])

    async def dependency(
        request: Request,
        background_tasks: BackgroundTasks,
        session: AsyncSession = Depends(get_session),
        pipeline: MutationPipeline = Depends(get_pipeline),
    ) -> ActorContext:
        return await _admit_request(
            request, background_tasks, session, pipeline, required, count_usage=operation != "read"
        )

    return dependency


async def require_admin(
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    pipeline: MutationPipeline = Depends(get_pipeline),
) -> ActorContext:
    """Dependency for administration endpoints."""
    return await _admit_request(request, background_tasks, session, pipeline, ActorKind.ADMIN, count_usage=False)
