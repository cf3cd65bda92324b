"""
Dog handlers.
"""

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from typing import Any, Dict, List, Optional, Tuple

from app.handlers.auth import ActorContext
from app.handlers.changes import creation_changes, diff, entity_display_name
from app.handlers.moderation import decide_visibility, get_moderation_mode
from app.handlers.pipeline import Mutation
from app.models.audit import AuditOperation
from app.models.dog import Dog, DogCreate, DogStatus, DogUpdate
from app.models.media import Media
from app.models.owner import Owner
from app.utils.time import utc_now

# Fields only an administrator may change on an existing dog
ADMIN_ONLY_FIELDS = {"name", "owner_id", "status"}


def dog_snapshot(dog: Dog, owner: Optional[Owner]) -> Dict[str, Any]:
    return {
        "name": dog.name,
        "sex": dog.sex,
        "birthday": dog.birthday,
        "breed": dog.breed,
        "coat": dog.coat,
        "owner": {"id": owner.id, "name": owner.name} if owner else None,
    }


async def get_dog(session: AsyncSession, dog_id: int, include_pending: bool = False) -> Optional[Dog]:
    """Get dog by ID. Pending dogs are hidden unless asked for."""
    dog = await session.get(Dog, dog_id)
    if dog and not include_pending and dog.status != DogStatus.APPROVED:
        return None
    return dog


async def get_dogs(
    session: AsyncSession,
    include_pending: bool = False,
    owner_id: Optional[int] = None,
) -> List[Dog]:
    """Return dogs by name."""
    statement = select(Dog)
    if not include_pending:
        statement = statement.where(Dog.status == DogStatus.APPROVED)
    if owner_id is not None:
        statement = statement.where(Dog.owner_id == owner_id)
    statement = statement.order_by(Dog.name)

    result = await session.execute(statement)
    return list(result.scalars().all())


async def create_dog(session: AsyncSession, dog_data: DogCreate) -> Tuple[Dog, Mutation]:
    """
    Create a dog. Its visibility is decided now from the moderation mode
    and is not revisited when the mode changes later.
    """
    owner = await session.get(Owner, dog_data.owner_id)
    if not owner:
        raise LookupError(f"Owner {dog_data.owner_id} not found")

    mode = await get_moderation_mode(session)
    dog = Dog(**dog_data.model_dump(), status=decide_visibility("dog", mode))
    session.add(dog)
    await session.commit()
    await session.refresh(dog)

    return dog, Mutation(
        entity_kind="dog",
        entity_id=dog.id,
        display_name=entity_display_name("dog", dog.name),
        operation=AuditOperation.CREATE,
        changes=creation_changes("dog", dog_snapshot(dog, owner)),
        dog_id=dog.id,
        dog_name=dog.name,
    )


async def update_dog(
    session: AsyncSession,
    dog_id: int,
    dog_data: DogUpdate,
    actor: ActorContext,
) -> Tuple[Dog, Mutation]:
    """Apply a partial update and diff it against the stored dog."""
    dog = await session.get(Dog, dog_id)
    if not dog:
        raise LookupError(f"Dog {dog_id} not found")

    fields = dog_data.model_dump(exclude_unset=True)
    restricted = ADMIN_ONLY_FIELDS & fields.keys()
    if restricted and not actor.is_admin:
        raise PermissionError(f"Only administrators may change {', '.join(sorted(restricted))}")
    if "name" in fields and not fields["name"]:
        raise ValueError("A dog needs a name")

    old = dog_snapshot(dog, await session.get(Owner, dog.owner_id))
    proposed = {key: value for key, value in fields.items() if key not in ("owner_id", "status")}

    if "owner_id" in fields:
        new_owner = await session.get(Owner, fields["owner_id"]) if fields["owner_id"] is not None else None
        if not new_owner:
            raise ValueError("A dog needs an existing owner")
        proposed["owner"] = {"connect": {"id": new_owner.id, "name": new_owner.name}}

    for key, value in fields.items():
        setattr(dog, key, value)
    dog.updated_at = utc_now()

    await session.commit()
    await session.refresh(dog)

    return dog, Mutation(
        entity_kind="dog",
        entity_id=dog.id,
        display_name=entity_display_name("dog", dog.name),
        operation=AuditOperation.UPDATE,
        changes=diff("dog", old, proposed),
        dog_id=dog.id,
        dog_name=dog.name,
    )


async def delete_dog(session: AsyncSession, dog_id: int) -> Mutation:
    """Delete a dog together with its media."""
    dog = await session.get(Dog, dog_id)
    if not dog:
        raise LookupError(f"Dog {dog_id} not found")

    mutation = Mutation(
        entity_kind="dog",
        entity_id=dog.id,
        display_name=entity_display_name("dog", dog.name),
        operation=AuditOperation.DELETE,
        changes=[],
        dog_id=dog.id,
        dog_name=dog.name,
    )
    await session.execute(delete(Media).where(Media.dog_id == dog_id))
    await session.delete(dog)
    await session.commit()
    return mutation
