from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.DB.models.users import User, AuthProviderLink
from identity_service.config import OAuthClientConfig
from identity_service.enums import AuthProvider
from identity_service.schemas.oauth import NormalizedOauthIdentity
from identity_service.services import auth_providers as link_store
from identity_service.services import users as user_store
from identity_service.utils.oauth_providers import OAuthProviderAdapter, OAuthProviderError
from shared.errors.identity import IdentityErrors
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)

# One retry is enough: after a lost race the winner's link is committed
MAX_RESOLVE_ATTEMPTS = 2


async def fetch_identity(adapter: OAuthProviderAdapter, client: OAuthClientConfig, code: str) -> NormalizedOauthIdentity:
    try:
        return await adapter.exchange_code_for_identity(client, code)
    except OAuthProviderError as e:
        logger.warning(f"OAuth code exchange failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=IdentityErrors.UNAUTHORIZED)


async def resolve_oauth_identity(identity: NormalizedOauthIdentity | None, db: AsyncSession) -> User:
    """Map a provider identity to the local user it authenticates as.

    An existing link always wins (login path). Without a link, an account that
    already owns the email blocks the attempt; otherwise the user and its link
    are created together (signup path).
    """
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=IdentityErrors.UNAUTHORIZED)

    provider = identity.provider_type

    for attempt in range(1, MAX_RESOLVE_ATTEMPTS + 1):
        link = await link_store.find_link(db, provider, identity.provider_user_id)
        if link is not None:
            user = await user_store.get_user_by_id(db, link.user_id)
            if user is None:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=IdentityErrors.UNAUTHORIZED)
            return user

        if await user_store.get_user_by_email(db, identity.email) is not None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=IdentityErrors.OAUTH_SIGNUP_EMAIL_EXISTS.format(provider=provider.value),
            )

        try:
            user = await user_store.create_user(
                db,
                name=identity.name,
                email=identity.email,
                password_hash=None,
                is_email_verified=True,
            )
            await link_store.create_link(
                db,
                user_id=user.id,
                provider_type=provider,
                provider_user_id=identity.provider_user_id,
            )
            await db.commit()
        except IntegrityError:
            # A concurrent callback created the same identity first
            await db.rollback()
            logger.warning(f"{provider.value} signup lost a race (attempt {attempt}), re-reading the link")
            continue

        logger.info(f"New user {user.id} signed up with {provider.value}")
        return user

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=IdentityErrors.OAUTH_RESOLUTION_CONFLICT.format(provider=provider.value),
    )


def _classify_existing_link(link: AuthProviderLink | None, user_link: AuthProviderLink | None,
                            user_id, identity: NormalizedOauthIdentity) -> AuthProviderLink | None:
    provider = identity.provider_type.value
    if link is not None:
        if link.user_id == user_id:
            return link
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=IdentityErrors.OAUTH_ACCOUNT_LINKED_TO_OTHER_USER.format(provider=provider),
        )
    if user_link is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=IdentityErrors.OAUTH_PROVIDER_ALREADY_LINKED.format(provider=provider),
        )
    return None


async def link_oauth_identity(user: User, identity: NormalizedOauthIdentity, db: AsyncSession) -> AuthProviderLink:
    """Attach a provider identity to an authenticated user. Idempotent for the same user."""
    user_id = user.id
    provider = identity.provider_type

    existing = _classify_existing_link(
        await link_store.find_link(db, provider, identity.provider_user_id),
        await link_store.find_user_link(db, user_id, provider),
        user_id,
        identity,
    )
    if existing is not None:
        return existing

    try:
        link = await link_store.create_link(
            db,
            user_id=user_id,
            provider_type=provider,
            provider_user_id=identity.provider_user_id,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = _classify_existing_link(
            await link_store.find_link(db, provider, identity.provider_user_id),
            await link_store.find_user_link(db, user_id, provider),
            user_id,
            identity,
        )
        if existing is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=IdentityErrors.OAUTH_ACCOUNT_LINKED_TO_OTHER_USER.format(provider=provider.value),
            )
        return existing

    logger.info(f"User {user_id} linked their {provider.value} account")
    return link


async def unlink_oauth_identity(user: User, provider_type: AuthProvider, db: AsyncSession) -> None:
    user_id = user.id
    deleted = await link_store.delete_link(db, user_id, provider_type)
    await db.commit()
    if deleted:
        logger.info(f"User {user_id} unlinked their {provider_type.value} account")
