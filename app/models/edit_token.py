"""
Edit token model - shareable anonymous edit capability ("magic link").
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.utils.time import utc_now


class EditTokenBase(SQLModel):
    """Base edit token schema."""
    label: str = Field(..., min_length=1, description="Who the link was given to")
    expires_at: Optional[datetime] = Field(default=None, description="Optional expiry (UTC)")


class EditToken(EditTokenBase, table=True):
    """Edit token database table. Tokens are deactivated, never deleted."""
    __tablename__ = "edit_tokens"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    token: str = Field(..., unique=True, index=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    last_used_at: Optional[datetime] = Field(default=None)
    usage_count: int = Field(default=0, ge=0)


class EditTokenCreate(EditTokenBase):
    """Schema for issuing an edit token."""
    pass


class EditTokenRead(EditTokenBase):
    """Schema for reading an edit token."""
    id: int
    token: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime]
    usage_count: int
    magic_link: Optional[str] = None
