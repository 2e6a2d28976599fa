from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.DB.models.users import User
from identity_service.enums import UserRole
from identity_service.schemas.user import UserRead, UsersRead, UserUpdate
from shared.errors.identity import IdentityErrors
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(User.email == email.strip().lower())
    )
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    return result.scalars().first()


async def create_user(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str | None = None,
        role: UserRole = UserRole.USER,
        is_email_verified: bool = False,
) -> User:
    """Stage a new user and flush it. Committing is left to the caller so the
    insert can share a transaction with other rows."""
    user = User(
        name=name,
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role,
        is_email_verified=is_email_verified,
    )
    db.add(user)
    await db.flush()
    return user


async def is_email_taken(db: AsyncSession, email: str, exclude_user_id: UUID | None = None) -> bool:
    stmt = select(func.count()).select_from(User).where(User.email == email.strip().lower())
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    return (await db.execute(stmt)).scalar_one() > 0


async def get_users(db: AsyncSession, skip: int, limit: int, search: str | None = None) -> UsersRead:
    stmt = select(User)
    total_stmt = select(func.count()).select_from(User)

    # Apply search filter if provided
    if search:
        condition = or_(
            User.name.ilike(f"%{search}%"),
            User.email.ilike(f"%{search}%")
        )
        stmt = stmt.where(condition)
        total_stmt = total_stmt.where(condition)

    stmt = stmt.order_by(User.created_at).offset(skip).limit(limit)
    users = list((await db.execute(stmt)).scalars().all())
    total = (await db.execute(total_stmt)).scalar_one()

    return UsersRead(
        users=[UserRead.model_validate(user) for user in users],
        total=total,
        skip=skip,
        limit=limit,
    )


async def get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=IdentityErrors.USER_NOT_FOUND)
    return user


async def update_profile(user: User, update_data: UserUpdate, db: AsyncSession) -> User:
    data = update_data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in data and data["email"] != user.email:
        if await is_email_taken(db, data["email"], exclude_user_id=user.id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=IdentityErrors.EMAIL_TAKEN)
        # A new address has to be verified again
        user.is_email_verified = False
        logger.info(f"User {user.id} changed their email, verification reset")

    for key, value in data.items():
        setattr(user, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=IdentityErrors.EMAIL_TAKEN)

    await db.refresh(user)
    return user
