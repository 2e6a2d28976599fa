from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import RedirectResponse

from identity_service.routes.deps import (
    SessionDep, JwtConfigDep, CurrentUser, OAuthProviderDep, OAuthClientDep,
)
from identity_service.schemas.auth import AuthResponse
from identity_service.schemas.oauth import OAuthLinkRequest, AuthProviderRead
from identity_service.schemas.user import UserRead
from identity_service.services import oauth as oauth_services
from identity_service.services.tokens import generate_auth_tokens

oauth_router = APIRouter(
    prefix='/auth',
    tags=["OAuth"],
)


@oauth_router.get("/{provider}/redirect", status_code=status.HTTP_302_FOUND, response_class=RedirectResponse)
async def oauth_redirect(adapter: OAuthProviderDep, client: OAuthClientDep):
    return RedirectResponse(adapter.build_authorization_url(client), status_code=status.HTTP_302_FOUND)


@oauth_router.get("/{provider}/callback", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def oauth_callback(
        adapter: OAuthProviderDep,
        client: OAuthClientDep,
        db: SessionDep,
        jwt_config: JwtConfigDep,
        code: Annotated[str, Query(min_length=1)],
):
    """ Sign in, or sign up on first use, with the code the provider redirected back with """
    identity = await oauth_services.fetch_identity(adapter, client, code)
    user = await oauth_services.resolve_oauth_identity(identity, db)
    tokens = await generate_auth_tokens(user, jwt_config, db)
    return AuthResponse(user=UserRead.model_validate(user), tokens=tokens)


@oauth_router.post("/{provider}/link", response_model=AuthProviderRead, status_code=status.HTTP_200_OK)
async def oauth_link(
        link_data: OAuthLinkRequest,
        user: CurrentUser,
        adapter: OAuthProviderDep,
        client: OAuthClientDep,
        db: SessionDep,
):
    identity = await oauth_services.fetch_identity(adapter, client, link_data.code)
    link = await oauth_services.link_oauth_identity(user, identity, db)
    return AuthProviderRead.model_validate(link)


@oauth_router.delete("/{provider}/link", status_code=status.HTTP_204_NO_CONTENT)
async def oauth_unlink(user: CurrentUser, adapter: OAuthProviderDep, db: SessionDep) -> None:
    await oauth_services.unlink_oauth_identity(user, adapter.provider_type, db)
