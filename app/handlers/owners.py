"""
Owner handlers.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func
from typing import Any, Dict, List, Optional, Tuple

from app.handlers.changes import creation_changes, diff, entity_display_name
from app.handlers.pipeline import Mutation
from app.models.audit import AuditOperation
from app.models.dog import Dog
from app.models.owner import Owner, OwnerCreate, OwnerUpdate


def owner_snapshot(owner: Owner) -> Dict[str, Any]:
    return {"name": owner.name, "email": owner.email, "phone": owner.phone}


async def get_owner(session: AsyncSession, owner_id: int) -> Optional[Owner]:
    """Get owner by ID."""
    return await session.get(Owner, owner_id)


async def get_owners(session: AsyncSession, search: Optional[str] = None) -> List[Owner]:
    """Return owners by name, optionally filtered by a name fragment."""
    statement = select(Owner)
    if search:
        statement = statement.where(Owner.name.ilike(f"%{search}%"))
    statement = statement.order_by(Owner.name)

    result = await session.execute(statement)
    return list(result.scalars().all())


async def create_owner(session: AsyncSession, owner_data: OwnerCreate) -> Tuple[Owner, Mutation]:
    """Create a new owner."""
    owner = Owner(**owner_data.model_dump())
    session.add(owner)
    await session.commit()
    await session.refresh(owner)

    return owner, Mutation(
        entity_kind="owner",
        entity_id=owner.id,
        display_name=entity_display_name("owner", owner.name),
        operation=AuditOperation.CREATE,
        changes=creation_changes("owner", owner_snapshot(owner)),
    )


async def update_owner(session: AsyncSession, owner_id: int, owner_data: OwnerUpdate) -> Tuple[Owner, Mutation]:
    """Apply a partial update and diff it against the stored owner."""
    owner = await session.get(Owner, owner_id)
    if not owner:
        raise LookupError(f"Owner {owner_id} not found")

    fields = owner_data.model_dump(exclude_unset=True)
    if "name" in fields and not fields["name"]:
        raise ValueError("An owner needs a name")

    old = owner_snapshot(owner)
    for key, value in fields.items():
        setattr(owner, key, value)

    await session.commit()
    await session.refresh(owner)

    return owner, Mutation(
        entity_kind="owner",
        entity_id=owner.id,
        display_name=entity_display_name("owner", owner.name),
        operation=AuditOperation.UPDATE,
        changes=diff("owner", old, fields),
    )


async def delete_owner(session: AsyncSession, owner_id: int) -> Mutation:
    """Delete an owner that no longer has dogs."""
    owner = await session.get(Owner, owner_id)
    if not owner:
        raise LookupError(f"Owner {owner_id} not found")

    result = await session.execute(select(func.count()).select_from(Dog).where(Dog.owner_id == owner_id))
    if result.scalar():
        raise ValueError(f"Owner {owner_id} still has dogs")

    mutation = Mutation(
        entity_kind="owner",
        entity_id=owner.id,
        display_name=entity_display_name("owner", owner.name),
        operation=AuditOperation.DELETE,
        changes=[],
    )
    await session.delete(owner)
    await session.commit()
    return mutation
