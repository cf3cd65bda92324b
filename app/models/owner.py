"""
Owner model - the humans a dog lives with.
"""

from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

from app.utils.time import utc_now

if TYPE_CHECKING:
    from app.models.dog import Dog


class OwnerBase(SQLModel):
    """Base owner schema."""
    name: str = Field(..., min_length=1, description="Display name")
    email: Optional[str] = Field(default=None, description="Contact email")
    phone: Optional[str] = Field(default=None, description="Contact phone")


class Owner(OwnerBase, table=True):
    """Owner database table."""
    __tablename__ = "owners"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now)
    
    # Relationships
    dogs: List["Dog"] = Relationship(back_populates="owner")


class OwnerCreate(OwnerBase):
    """Schema for creating an owner."""
    pass


class OwnerUpdate(SQLModel):
    """Schema for a partial owner update. Explicit nulls clear a field."""
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None


class OwnerRead(OwnerBase):
    """Schema for reading an owner."""
    id: int
    created_at: datetime
