"""
Moderation setting model - global singleton.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from app.utils.time import utc_now


class ModerationMode(str, Enum):
    """Whether new content is published immediately or held for review."""
    AUTO_APPROVE = "auto_approve"
    REQUIRE_REVIEW = "require_review"


class ModerationSetting(SQLModel, table=True):
    """Moderation settings table - exactly one row."""
    __tablename__ = "moderation_settings"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    mode: ModerationMode = Field(default=ModerationMode.AUTO_APPROVE)
    updated_at: datetime = Field(default_factory=utc_now)


class ModerationSettingUpdate(SQLModel):
    mode: ModerationMode


class ModerationSettingRead(SQLModel):
    mode: ModerationMode
    updated_at: datetime
