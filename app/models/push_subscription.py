"""
Push subscription model - an admin device's Web Push endpoint.
"""

from sqlmodel import SQLModel, Field
from typing import Optional, Dict
from datetime import datetime

from app.utils.time import utc_now


class PushSubscriptionBase(SQLModel):
    """Base push subscription schema."""
    endpoint: str = Field(..., unique=True, index=True, description="Push service endpoint URL")
    receives_admin_notifications: bool = Field(default=True)


class PushSubscription(PushSubscriptionBase, table=True):
    """Push subscription database table."""
    __tablename__ = "push_subscriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    keys: str = Field(..., description="JSON string of the p256dh/auth delivery keys")
    created_at: datetime = Field(default_factory=utc_now)


class PushSubscriptionCreate(PushSubscriptionBase):
    """Schema for registering a device, as produced by PushManager.subscribe()."""
    keys: Dict[str, str]


class PushSubscriptionRead(PushSubscriptionBase):
    """Schema for reading a push subscription."""
    id: int
    created_at: datetime
