"""
Media model - a photo or video attached to a dog.
"""

from sqlmodel import SQLModel, Field, Relationship
from pydantic import model_validator
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum

from app.core.constants import PHOTO_EXTENSIONS, VIDEO_EXTENSIONS
from app.utils.time import utc_now

if TYPE_CHECKING:
    from app.models.dog import Dog


class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"


class MediaStatus(str, Enum):
    """Moderation status of an upload."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MediaBase(SQLModel):
    """Base media schema."""
    name: Optional[str] = Field(default=None)
    file: Optional[str] = Field(default=None, description="Stored file reference")
    kind: MediaKind = Field(default=MediaKind.PHOTO)
    video_url: Optional[str] = Field(default=None, description="External video URL (YouTube, Vimeo...)")
    dog_id: int = Field(..., foreign_key="dogs.id", index=True)


class Media(MediaBase, table=True):
    """Media database table."""
    __tablename__ = "media"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    is_featured: bool = Field(default=False)
    status: MediaStatus = Field(default=MediaStatus.PENDING)
    uploaded_at: datetime = Field(default_factory=utc_now)
    
    # Relationship
    dog: "Dog" = Relationship(back_populates="media")


def _extension(file: str) -> str:
    return file.rsplit(".", 1)[-1].lower() if "." in file else ""


class MediaCreate(MediaBase):
    """Schema for uploading a media item."""
    is_featured: bool = False

    @model_validator(mode="after")
    def check_file_metadata(self) -> "MediaCreate":
        """Reject uploads whose file reference does not match their kind."""
        if self.kind == MediaKind.PHOTO:
            if not self.file:
                raise ValueError("A photo needs a file")
            if _extension(self.file) not in PHOTO_EXTENSIONS:
                raise ValueError(f"Unsupported photo file: {self.file}")
        else:
            if not self.file and not self.video_url:
                raise ValueError("A video needs a file or a video_url")
            if self.file and _extension(self.file) not in VIDEO_EXTENSIONS:
                raise ValueError(f"Unsupported video file: {self.file}")
        return self


class MediaUpdate(SQLModel):
    """Schema for a partial media update."""
    name: Optional[str] = None
    is_featured: Optional[bool] = None
    status: Optional[MediaStatus] = None
    dog_id: Optional[int] = None


class MediaRead(MediaBase):
    """Schema for reading a media item."""
    id: int
    is_featured: bool
    status: MediaStatus
    uploaded_at: datetime
