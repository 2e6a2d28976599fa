from fastapi import APIRouter, Query, Request, status

from identity_service.config import settings
from identity_service.routes.deps import SessionDep, SettingsDep, JwtConfigDep, CurrentUser, UnverifiedUser, limiter
from identity_service.schemas import auth as auth_schema
from identity_service.schemas.user import UserCreate
from identity_service.services import auth as auth_services
from identity_service.services import tokens as token_service

auth_router = APIRouter(
    prefix='/auth',
    tags=["Auth"],
)


@auth_router.post("/register", response_model=auth_schema.AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT)
async def register(request: Request, user_data: UserCreate, db: SessionDep, app_settings: SettingsDep):
    """ Create a password account and send the verification email """
    return await auth_services.register_user(user_data, app_settings.jwt_config, app_settings.FRONTEND_URL, db)


@auth_router.post("/login", response_model=auth_schema.AuthResponse, status_code=status.HTTP_200_OK)
@limiter.limit(settings.RATE_LIMIT)
async def login(request: Request, login_data: auth_schema.LoginData, db: SessionDep, jwt_config: JwtConfigDep):
    return await auth_services.login_user(login_data, jwt_config, db)


@auth_router.post("/refresh-tokens", response_model=auth_schema.TokenPair, status_code=status.HTTP_200_OK)
async def refresh_tokens(token_data: auth_schema.RefreshTokenData, db: SessionDep, jwt_config: JwtConfigDep):
    return await token_service.refresh_auth(token_data.refresh_token, jwt_config, db)


@auth_router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(token_data: auth_schema.RefreshTokenData, db: SessionDep, jwt_config: JwtConfigDep) -> None:
    await token_service.revoke_refresh_token(token_data.refresh_token, jwt_config, db)


@auth_router.post("/forgot-password", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.RATE_LIMIT)
async def forgot_password(request: Request, email_data: auth_schema.EmailData, db: SessionDep,
                          app_settings: SettingsDep) -> None:
    """ Always answers 204 so the endpoint can't be used to probe for accounts """
    await auth_services.forgot_password(email_data.email, app_settings.jwt_config, app_settings.FRONTEND_URL, db)


@auth_router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(reset_data: auth_schema.PasswordResetRequest, db: SessionDep, jwt_config: JwtConfigDep,
                         token: str = Query(...)) -> None:
    await auth_services.reset_password(token, reset_data.password, jwt_config, db)


@auth_router.post("/send-verification-email", status_code=status.HTTP_204_NO_CONTENT)
async def send_verification_email(user: UnverifiedUser, app_settings: SettingsDep) -> None:
    await auth_services.send_verification_email(user, app_settings.jwt_config, app_settings.FRONTEND_URL)


@auth_router.post("/verify-email", status_code=status.HTTP_204_NO_CONTENT)
async def verify_email(db: SessionDep, jwt_config: JwtConfigDep, token: str = Query(...)) -> None:
    await auth_services.verify_email(token, jwt_config, db)


@auth_router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(user_data: auth_schema.NewPassword, user: CurrentUser, db: SessionDep) -> None:
    """ This Router Used For Changing Password (for Logged in Users) """
    await auth_services.change_password(user, user_data, db)
