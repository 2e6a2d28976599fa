import uuid
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.DB.models.users import User, RefreshToken
from identity_service.config import JwtConfig
from identity_service.enums import TokenType, UserRole
from identity_service.schemas.auth import TokenPair, TokenInfo
from identity_service.services import users as user_store
from identity_service.utils.user_utils import create_jwt_token, decode_jwt_token, expiry_in
from shared.emails.email import Email
from shared.errors.identity import IdentityErrors
from shared.utils.encryption import EncryptionUtility
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)

encryption_utility = EncryptionUtility()


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=IdentityErrors.PLEASE_AUTHENTICATE,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def generate_auth_tokens(user: User, jwt_config: JwtConfig, db: AsyncSession) -> TokenPair:
    """Mint an access/refresh pair for ``user`` and persist the refresh token."""
    user_id = user.id
    access_expires = expiry_in(minutes=jwt_config.access_expiration_minutes)
    access_token = create_jwt_token(
        str(user_id),
        access_expires,
        TokenType.ACCESS,
        jwt_config,
        role=UserRole(user.role).value,
        is_email_verified=bool(user.is_email_verified),
    )

    jwt_id = uuid.uuid4()
    refresh_expires = expiry_in(days=jwt_config.refresh_expiration_days)
    refresh_token = create_jwt_token(
        str(user_id),
        refresh_expires,
        TokenType.REFRESH,
        jwt_config,
        jti=str(jwt_id),
    )

    db.add(RefreshToken(
        jwt_id=jwt_id,
        user_id=user_id,
        hash_refresh_token=encryption_utility.encrypt(refresh_token),
        refresh_token_exp=refresh_expires,
    ))
    await db.commit()

    return TokenPair(
        access=TokenInfo(token=access_token, expires=access_expires),
        refresh=TokenInfo(token=refresh_token, expires=refresh_expires),
    )


async def _load_refresh_token(refresh_token: str, jwt_config: JwtConfig, db: AsyncSession) -> RefreshToken | None:
    try:
        payload = decode_jwt_token(refresh_token, TokenType.REFRESH, jwt_config)
        jwt_id = UUID(payload["jti"])
        user_id = UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None

    result = await db.execute(
        select(RefreshToken).where(RefreshToken.jwt_id == jwt_id, RefreshToken.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def revoke_user_refresh_tokens(user_id: UUID, db: AsyncSession) -> None:
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .values(is_black_list=True)
    )


async def _handle_refresh_token_reuse(user_id: UUID, db: AsyncSession) -> HTTPException:
    await revoke_user_refresh_tokens(user_id, db)
    await db.commit()
    logger.warning(f"Refresh token reuse detected for user {user_id}, all sessions revoked")

    ############ Send Email ################
    user = await user_store.get_user_by_id(db, user_id)
    if user:
        Email(user).send_security_alert_email()
    ########################################
    return _unauthenticated()


async def refresh_auth(refresh_token: str, jwt_config: JwtConfig, db: AsyncSession) -> TokenPair:
    """Rotate a refresh token.

    The presented row is black-listed and a fresh pair is issued. Presenting a
    token that was already rotated out revokes every session of its owner.
    """
    rt_db = await _load_refresh_token(refresh_token, jwt_config, db)
    if rt_db is None:
        raise _unauthenticated()

    user_id = rt_db.user_id
    jwt_id = rt_db.jwt_id

    if rt_db.is_black_list:
        raise await _handle_refresh_token_reuse(user_id, db)

    if encryption_utility.decrypt(rt_db.hash_refresh_token) != refresh_token:
        raise _unauthenticated()

    user = await user_store.get_user_by_id(db, user_id)
    if user is None:
        raise _unauthenticated()

    # Conditional write so two concurrent refreshes cannot both claim the row
    claimed = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.jwt_id == jwt_id, RefreshToken.is_black_list.is_(False))
        .values(is_black_list=True)
    )
    if claimed.rowcount != 1:
        await db.rollback()
        raise await _handle_refresh_token_reuse(user_id, db)

    return await generate_auth_tokens(user, jwt_config, db)


async def revoke_refresh_token(refresh_token: str, jwt_config: JwtConfig, db: AsyncSession) -> None:
    """Logout: remove the stored refresh token. Unknown or revoked tokens give 404."""
    rt_db = await _load_refresh_token(refresh_token, jwt_config, db)
    if rt_db is None or rt_db.is_black_list:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=IdentityErrors.NOT_FOUND)

    await db.delete(rt_db)
    await db.commit()


def generate_reset_password_token(user: User, jwt_config: JwtConfig) -> str:
    return create_jwt_token(
        str(user.id),
        expiry_in(minutes=jwt_config.reset_password_expiration_minutes),
        TokenType.RESET_PASSWORD,
        jwt_config,
    )


def generate_verify_email_token(user: User, jwt_config: JwtConfig) -> str:
    return create_jwt_token(
        str(user.id),
        expiry_in(minutes=jwt_config.verify_email_expiration_minutes),
        TokenType.VERIFY_EMAIL,
        jwt_config,
        email=user.email,
    )


def read_token_subject(token: str, token_type: TokenType, jwt_config: JwtConfig) -> dict | None:
    """Decode a typed token, returning its claims or ``None`` when it is not acceptable."""
    try:
        payload = decode_jwt_token(token, token_type, jwt_config)
        payload["sub"] = UUID(payload["sub"])
    except (JWTError, ValueError):
        return None
    return payload


async def purge_expired_refresh_tokens(db: AsyncSession) -> int:
    result = await db.execute(
        delete(RefreshToken).where(RefreshToken.refresh_token_exp < datetime.now(tz=timezone.utc))
    )
    await db.commit()
    return result.rowcount
