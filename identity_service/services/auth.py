from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.DB.models.users import User
from identity_service.config import JwtConfig
from identity_service.enums import TokenType
from identity_service.schemas import auth as auth_schema
from identity_service.schemas.user import UserCreate, UserRead
from identity_service.services import tokens as token_service
from identity_service.services import users as user_store
from identity_service.utils.user_utils import generate_pass_hash, verify_hash_pass
from shared.emails.email import Email
from shared.errors.identity import IdentityErrors
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)


def build_frontend_link(frontend_url: str, path: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/{path}?token={token}"


async def register_user(user_data: UserCreate, jwt_config: JwtConfig, frontend_url: str,
                        db: AsyncSession) -> auth_schema.AuthResponse:
    try:
        if await user_store.is_email_taken(db, user_data.email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=IdentityErrors.EMAIL_TAKEN)

        new_user = await user_store.create_user(
            db,
            name=user_data.name,
            email=user_data.email,
            password_hash=generate_pass_hash(user_data.password),
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=IdentityErrors.EMAIL_TAKEN)
    except HTTPException as e:
        await db.rollback()
        raise e

    tokens = await token_service.generate_auth_tokens(new_user, jwt_config, db)

    ############ Send Email ################
    await send_verification_email(new_user, jwt_config, frontend_url)
    ########################################

    return auth_schema.AuthResponse(user=UserRead.model_validate(new_user), tokens=tokens)


async def login_user(login_data: auth_schema.LoginData, jwt_config: JwtConfig,
                     db: AsyncSession) -> auth_schema.AuthResponse:
    user = await user_store.get_user_by_email(db, login_data.email)

    # OAuth-only accounts have no password hash and fail the same way
    if user is None or not verify_hash_pass(login_data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=IdentityErrors.INCORRECT_EMAIL_OR_PASSWORD)

    tokens = await token_service.generate_auth_tokens(user, jwt_config, db)
    return auth_schema.AuthResponse(user=UserRead.model_validate(user), tokens=tokens)


async def forgot_password(email: str, jwt_config: JwtConfig, frontend_url: str, db: AsyncSession) -> None:
    """Always succeeds for the caller; the email only goes out when the account exists."""
    user = await user_store.get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for an unknown email")
        return

    reset_token = token_service.generate_reset_password_token(user, jwt_config)
    Email(user).send_password_reset_email(build_frontend_link(frontend_url, "reset-password", reset_token))


async def reset_password(token: str, new_password: str, jwt_config: JwtConfig, db: AsyncSession) -> None:
    payload = token_service.read_token_subject(token, TokenType.RESET_PASSWORD, jwt_config)
    user = await user_store.get_user_by_id(db, payload["sub"]) if payload else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=IdentityErrors.PASSWORD_RESET_FAILED)

    user.password_hash = generate_pass_hash(new_password)
    await token_service.revoke_user_refresh_tokens(user.id, db)
    await db.commit()

    ############ Send Email ################
    Email(user).send_password_changed_email()
    ########################################


async def send_verification_email(user: User, jwt_config: JwtConfig, frontend_url: str) -> None:
    """No-op for already verified users, so callers can always answer success."""
    if user.is_email_verified:
        return

    verify_token = token_service.generate_verify_email_token(user, jwt_config)
    Email(user).send_verification_email(build_frontend_link(frontend_url, "verify-email", verify_token))


async def verify_email(token: str, jwt_config: JwtConfig, db: AsyncSession) -> None:
    payload = token_service.read_token_subject(token, TokenType.VERIFY_EMAIL, jwt_config)
    user = await user_store.get_user_by_id(db, payload["sub"]) if payload else None

    # A token minted for a previous address must not verify the new one
    if user is None or payload.get("email") != user.email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=IdentityErrors.EMAIL_VERIFICATION_FAILED)

    user.is_email_verified = True
    await db.commit()


async def change_password(user: User, user_data: auth_schema.NewPassword, db: AsyncSession) -> None:
    try:
        if not verify_hash_pass(user_data.old_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=IdentityErrors.OLD_PASSWORD_INCORRECT)
        user.password_hash = generate_pass_hash(user_data.new_password)
        await db.commit()
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        await db.rollback()
        logger.error("Failed to change password", exception=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=IdentityErrors.INTERNAL_SERVER_ERROR)

    ############ Send Email ################
    Email(user).send_password_changed_email()
    ########################################
