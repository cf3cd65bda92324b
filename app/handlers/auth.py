"""
Magic token authority: issues, validates and revokes anonymous edit tokens
and decides who is behind every mutation.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.constants import TOKEN_BYTES
from app.models.edit_token import EditToken, EditTokenCreate
from app.utils.time import utc_now, as_utc

logger = logging.getLogger(__name__)


class ActorKind(str, Enum):
    ADMIN = "admin"
    TOKEN = "token"
    ANONYMOUS = "anonymous"


# Minimum actor needed by an access policy
_RANK = {ActorKind.ANONYMOUS: 0, ActorKind.TOKEN: 1, ActorKind.ADMIN: 2}


@dataclass(frozen=True)
class ActorContext:
    """Who performed a mutation. Built once per request and passed down explicitly."""
    kind: ActorKind
    label: Optional[str] = None
    token_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.kind == ActorKind.ADMIN

    def satisfies(self, required: ActorKind) -> bool:
        return _RANK[self.kind] >= _RANK[required]


ANONYMOUS = ActorContext(kind=ActorKind.ANONYMOUS)


@dataclass(frozen=True)
class Admission:
    granted: bool
    actor: ActorContext


def generate_token() -> str:
    """Opaque lowercase hex token from a CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


def is_token_usable(token: Optional[EditToken], now: Optional[datetime] = None) -> bool:
    """A token admits only if it exists, is active and has not expired."""
    if token is None or not token.is_active:
        return False
    if token.expires_at is not None:
        now = as_utc(now) if now is not None else utc_now()
        if now > as_utc(token.expires_at):
            return False
    return True


def is_admin_key(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())


async def find_token(session: AsyncSession, value: str) -> Optional[EditToken]:
    """Look a token up by value, without any access check."""
    result = await session.execute(select(EditToken).where(EditToken.token == value))
    return result.scalars().first()


async def admit(
    session: AsyncSession,
    *,
    required: ActorKind,
    admin_key: Optional[str] = None,
    expected_admin_key: Optional[str] = None,
    admin_name: str = "admin",
    token_value: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Admission:
    """
    Decide whether a request may perform an operation, and as whom.

    An admin key always wins. Otherwise a magic token is looked up and
    validated. Without a usable token the caller is anonymous, which only
    passes policies that allow anonymous access. Never raises for bad
    credentials: every failure is a denial.
    """
    if is_admin_key(admin_key, expected_admin_key):
        return Admission(granted=True, actor=ActorContext(kind=ActorKind.ADMIN, label=admin_name))

    actor = ANONYMOUS
    if token_value:
        try:
            token = await find_token(session, token_value)
        except Exception:
            logger.exception("Token lookup failed")
            token = None

        if is_token_usable(token, now):
            actor = ActorContext(kind=ActorKind.TOKEN, label=token.label, token_id=token.id)
        else:
            logger.info("Rejected magic token (unknown, inactive or expired)")

    return Admission(granted=actor.satisfies(required), actor=actor)


async def record_token_usage(session_factory: async_sessionmaker, token_id: int) -> None:
    """
    Bump a token's usage counter and last-used time.

    Runs detached from the request; the increment is a single atomic UPDATE
    so concurrent uses never lose a count. Failures are logged only.
    """
    try:
        async with session_factory() as session:
            await session.execute(
                update(EditToken)
                .where(EditToken.id == token_id)
                .values(usage_count=EditToken.usage_count + 1, last_used_at=utc_now())
            )
            await session.commit()
        logger.debug("Recorded usage of token %s", token_id)
    except Exception:
        logger.exception("Failed to update usage of token %s", token_id)


async def issue_token(session: AsyncSession, token_data: EditTokenCreate) -> EditToken:
    """Create a new active token."""
    token = EditToken(
        label=token_data.label,
        expires_at=as_utc(token_data.expires_at),
        token=generate_token(),
    )
    session.add(token)
    await session.commit()
    await session.refresh(token)
    logger.info("Issued edit token %s for %r", token.id, token.label)
    return token


async def revoke_token(session: AsyncSession, token_id: int) -> Optional[EditToken]:
    """Deactivate a token. Tokens are kept for audit integrity."""
    token = await session.get(EditToken, token_id)
    if token is None:
        return None
    token.is_active = False
    await session.commit()
    await session.refresh(token)
    logger.info("Revoked edit token %s (%r)", token.id, token.label)
    return token


async def get_tokens(session: AsyncSession) -> List[EditToken]:
    """Return all tokens, newest first."""
    result = await session.execute(select(EditToken).order_by(EditToken.created_at.desc(), EditToken.id.desc()))
    return list(result.scalars().all())


def magic_link(frontend_url: str, token_value: str) -> str:
    """Shareable link that drops the token into the visitor's cookie."""
    return f"{frontend_url.rstrip('/')}/?magic={token_value}"
