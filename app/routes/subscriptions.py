"""
Admin push subscription endpoints.
"""

import json

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import get_session
from app.core.security import get_pipeline, require_admin
from app.handlers.auth import ActorContext
from app.handlers.pipeline import MutationPipeline
from app.models.push_subscription import PushSubscription, PushSubscriptionCreate, PushSubscriptionRead

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/vapid-public-key")
async def vapid_public_key_endpoint(pipeline: MutationPipeline = Depends(get_pipeline)):
    """Application server key for PushManager.subscribe()."""
    return {"publicKey": pipeline.dispatcher.sender.public_key}


@router.post("", response_model=PushSubscriptionRead, status_code=status.HTTP_201_CREATED)
async def subscribe_endpoint(
    subscription: PushSubscriptionCreate,
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Register (or refresh) a device for admin notifications."""
    result = await session.execute(
        select(PushSubscription).where(PushSubscription.endpoint == subscription.endpoint)
    )
    existing = result.scalars().first()

    if existing:
        existing.keys = json.dumps(subscription.keys)
        existing.receives_admin_notifications = subscription.receives_admin_notifications
        record = existing
    else:
        record = PushSubscription(
            endpoint=subscription.endpoint,
            keys=json.dumps(subscription.keys),
            receives_admin_notifications=subscription.receives_admin_notifications
        )
        session.add(record)

    await session.commit()
    await session.refresh(record)
    return record


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def unsubscribe_endpoint(
    endpoint: str,
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Remove a device by its endpoint."""
    result = await session.execute(
        select(PushSubscription).where(PushSubscription.endpoint == endpoint)
    )
    record = result.scalars().first()
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found"
        )
    await session.delete(record)
    await session.commit()
