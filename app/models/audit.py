"""
Audit entry model - append-only record of one mutation.
"""

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from app.utils.time import utc_now


class AuditOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditStatus(str, Enum):
    """Administrator review state of an audit entry."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVERTED = "reverted"


class AuditEntryBase(SQLModel):
    """Base audit entry schema."""
    entity_type: str = Field(..., description="Entity kind (dog, owner, media)")
    entity_id: str = Field(..., description="ID of the entity")
    entity_name: str = Field(default="", description="Display name at the time of the change")
    operation: AuditOperation
    changes_summary: str = Field(default="")
    changed_by: str = Field(..., description="Actor kind (admin, token, anonymous)")
    changed_by_label: Optional[str] = Field(default=None)
    status: AuditStatus = Field(default=AuditStatus.PENDING)
    frontend_url: str = Field(default="")
    backend_url: str = Field(default="")


class AuditEntry(AuditEntryBase, table=True):
    """Audit entry database table - append-only."""
    __tablename__ = "audit_entries"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=utc_now, index=True)
    changes: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))


class AuditEntryRead(AuditEntryBase):
    """Schema for reading an audit entry."""
    id: int
    timestamp: datetime
    changes: List[Dict[str, Any]]


class AuditStatusUpdate(SQLModel):
    status: AuditStatus
