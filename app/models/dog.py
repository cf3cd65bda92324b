"""
Dog model - a directory entry, linked to exactly one owner.
"""

from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime
from enum import Enum

from app.utils.time import utc_now

if TYPE_CHECKING:
    from app.models.owner import Owner
    from app.models.media import Media


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class DogStatus(str, Enum):
    """Public visibility of a dog."""
    PENDING = "pending"
    APPROVED = "approved"


class DogBase(SQLModel):
    """Base dog schema."""
    name: str = Field(..., min_length=1, description="Dog name")
    sex: Optional[Sex] = Field(default=None)
    birthday: Optional[date] = Field(default=None)
    breed: Optional[str] = Field(default=None)
    coat: Optional[str] = Field(default=None, description="Coat colour")
    owner_id: int = Field(..., foreign_key="owners.id")


class Dog(DogBase, table=True):
    """Dog database table."""
    __tablename__ = "dogs"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    status: DogStatus = Field(default=DogStatus.PENDING)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    
    # Relationships
    owner: "Owner" = Relationship(back_populates="dogs")
    media: List["Media"] = Relationship(back_populates="dog")


class DogCreate(DogBase):
    """Schema for creating a dog."""
    pass


class DogUpdate(SQLModel):
    """Schema for a partial dog update. Explicit nulls clear a field."""
    name: Optional[str] = Field(default=None, min_length=1)
    sex: Optional[Sex] = None
    birthday: Optional[date] = None
    breed: Optional[str] = None
    coat: Optional[str] = None
    owner_id: Optional[int] = None
    status: Optional[DogStatus] = None


class DogRead(DogBase):
    """Schema for reading a dog."""
    id: int
    status: DogStatus
    created_at: datetime
    updated_at: datetime
