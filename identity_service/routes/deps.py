from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status

from identity_service.DB import get_db
from identity_service.DB.models.users import User
from identity_service.config import Settings, JwtConfig, OAuthClientConfig, get_settings, settings
from identity_service.enums import AuthProvider, Permission, TokenType, ROLE_RIGHTS, UserRole
from identity_service.services import users as user_store
from identity_service.utils.oauth_providers import OAuthProviderAdapter, get_oauth_providers
from identity_service.utils.user_utils import decode_jwt_token
from shared.errors.identity import IdentityErrors
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

SessionDep = Annotated[AsyncSession, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_jwt_config(app_settings: SettingsDep) -> JwtConfig:
    return app_settings.jwt_config


JwtConfigDep = Annotated[JwtConfig, Depends(get_jwt_config)]

bearer_scheme = HTTPBearer(auto_error=False)


class JwtAuth:
    """Bearer-token guard.

    ``JwtAuth(Permission.GET_USERS)`` additionally requires the caller's role to
    grant that right, unless the ``user_id`` path parameter is the caller.
    """

    def __init__(self, *required_rights: Permission, allow_unverified: bool = False):
        self.required_rights = required_rights
        self.allow_unverified = allow_unverified

    async def __call__(
            self,
            request: Request,
            db: SessionDep,
            jwt_config: JwtConfigDep,
            credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    ) -> User:
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=IdentityErrors.PLEASE_AUTHENTICATE,
            headers={"WWW-Authenticate": "Bearer"},
        )
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise credentials_exception

        try:
            payload = decode_jwt_token(credentials.credentials, TokenType.ACCESS, jwt_config)
            user_id = UUID(payload["sub"])
        except (JWTError, ValueError) as e:
            logger.debug(f"JWT validation error: {str(e)}")
            raise credentials_exception

        user = await user_store.get_user_by_id(db, user_id)
        if user is None:
            raise credentials_exception

        if not self.allow_unverified and not user.is_email_verified:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=IdentityErrors.VERIFY_EMAIL_FIRST)

        if self.required_rights:
            user_rights = ROLE_RIGHTS.get(UserRole(user.role), [])
            has_rights = all(right in user_rights for right in self.required_rights)
            if not has_rights and request.path_params.get("user_id") != str(user.id):
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=IdentityErrors.FORBIDDEN)

        return user


CurrentUser = Annotated[User, Depends(JwtAuth())]
UnverifiedUser = Annotated[User, Depends(JwtAuth(allow_unverified=True))]


def get_oauth_provider(
        provider: str,
        providers: Annotated[dict[AuthProvider, OAuthProviderAdapter], Depends(get_oauth_providers)],
) -> OAuthProviderAdapter:
    try:
        return providers[AuthProvider(provider)]
    except (ValueError, KeyError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=IdentityErrors.UNKNOWN_OAUTH_PROVIDER.format(provider=provider),
        )


OAuthProviderDep = Annotated[OAuthProviderAdapter, Depends(get_oauth_provider)]


def get_oauth_client(adapter: OAuthProviderDep, app_settings: SettingsDep) -> OAuthClientConfig:
    client = app_settings.oauth_client(adapter.provider_type)
    if not client.is_configured:
        logger.error(f"{adapter.provider_type.value} OAuth client id/secret are missing")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=IdentityErrors.OAUTH_NOT_CONFIGURED.format(provider=adapter.provider_type.value),
        )
    return client


OAuthClientDep = Annotated[OAuthClientConfig, Depends(get_oauth_client)]
