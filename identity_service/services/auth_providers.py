from typing import Optional
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.DB.models.users import AuthProviderLink
from identity_service.enums import AuthProvider


async def find_link(db: AsyncSession, provider_type: AuthProvider, provider_user_id: str) -> Optional[AuthProviderLink]:
    result = await db.execute(
        select(AuthProviderLink).where(
            AuthProviderLink.provider_type == provider_type,
            AuthProviderLink.provider_user_id == provider_user_id,
        )
    )
    return result.scalar_one_or_none()


async def find_user_link(db: AsyncSession, user_id: UUID, provider_type: AuthProvider) -> Optional[AuthProviderLink]:
    result = await db.execute(
        select(AuthProviderLink).where(
            AuthProviderLink.user_id == user_id,
            AuthProviderLink.provider_type == provider_type,
        )
    )
    return result.scalar_one_or_none()


async def get_user_links(db: AsyncSession, user_id: UUID) -> list[AuthProviderLink]:
    result = await db.execute(
        select(AuthProviderLink)
        .where(AuthProviderLink.user_id == user_id)
        .order_by(AuthProviderLink.created_at)
    )
    return list(result.scalars().all())


async def create_link(
        db: AsyncSession,
        *,
        user_id: UUID,
        provider_type: AuthProvider,
        provider_user_id: str,
) -> AuthProviderLink:
    """Stage and flush a link row.

    A duplicate identity surfaces as ``IntegrityError`` from the flush; callers
    decide whether that means a lost race or a conflict.
    """
    link = AuthProviderLink(
        user_id=user_id,
        provider_type=provider_type,
        provider_user_id=provider_user_id,
    )
    db.add(link)
    await db.flush()
    return link


async def delete_link(db: AsyncSession, user_id: UUID, provider_type: AuthProvider) -> int:
    result = await db.execute(
        delete(AuthProviderLink).where(
            AuthProviderLink.user_id == user_id,
            AuthProviderLink.provider_type == provider_type,
        )
    )
    return result.rowcount
