from urllib.parse import quote
from uuid import UUID

import pytest
from fastapi import status

from identity_service.DB.models.users import User, AuthProviderLink
from identity_service.config import settings
from identity_service.enums import AuthProvider
from identity_service.tests.utils.fixtures import (
    insert_user, insert_link, count_rows, load_user, auth_headers,
)

GITHUB_USER = {"id": 999, "email": "a@x.com", "name": "A", "login": "a-x"}


def encoded_redirect(provider: AuthProvider) -> str:
    return quote(settings.oauth_client(provider).redirect_url, safe='')


class TestOAuthRedirectRoutes:
    async def test_github_redirect(self, test_client):
        response = await test_client.get("/auth/github/redirect")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == (
            "https://github.com/login/oauth/authorize?allow_signup=true&"
            f"client_id={settings.GITHUB_CLIENT_ID}&scope=read%3Auser%20user%3Aemail"
        )

    async def test_google_redirect(self, test_client):
        response = await test_client.get("/auth/google/redirect")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == (
            f"https://accounts.google.com/o/oauth2/v2/auth?client_id={settings.GOOGLE_CLIENT_ID}&"
            f"include_granted_scopes=true&redirect_uri={encoded_redirect(AuthProvider.GOOGLE)}&"
            "response_type=code&scope=openid%20email%20profile&state=pass-through%20value"
        )

    async def test_spotify_redirect(self, test_client):
        response = await test_client.get("/auth/spotify/redirect")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == (
            f"https://accounts.spotify.com/authorize?client_id={settings.SPOTIFY_CLIENT_ID}&"
            f"redirect_uri={encoded_redirect(AuthProvider.SPOTIFY)}&response_type=code&"
            "scope=user-library-read%20playlist-modify-private&show_dialog=false"
        )

    async def test_discord_redirect(self, test_client):
        response = await test_client.get("/auth/discord/redirect")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == (
            f"https://discord.com/api/oauth2/authorize?client_id={settings.DISCORD_CLIENT_ID}&"
            f"redirect_uri={encoded_redirect(AuthProvider.DISCORD)}&response_type=code&scope=identify%20email"
        )

    async def test_facebook_redirect(self, test_client):
        response = await test_client.get("/auth/facebook/redirect")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == (
            f"https://www.facebook.com/v4.0/dialog/oauth?client_id={settings.FACEBOOK_CLIENT_ID}&"
            f"redirect_uri={encoded_redirect(AuthProvider.FACEBOOK)}&scope=email&response_type=code&"
            "auth_type=rerequest&display=popup"
        )

    async def test_unknown_provider_returns_404(self, test_client):
        response = await test_client.get("/auth/myspace/redirect")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"code": 404, "message": "Unknown OAuth provider: myspace"}


class TestOAuthCallbackRoutes:
    async def test_callback_signs_up_new_user(self, test_client, provider_api, session_factory):
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)

        response = await test_client.get("/auth/github/callback", params={"code": "123456"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert "password" not in body["user"] and "password_hash" not in body["user"]
        assert body["user"]["email"] == "a@x.com"
        assert body["user"]["name"] == "A"
        assert body["user"]["role"] == "user"
        assert body["user"]["is_email_verified"] is True
        assert body["tokens"]["access"]["token"]
        assert body["tokens"]["access"]["expires"]
        assert body["tokens"]["refresh"]["token"]

        db_user = await load_user(session_factory, UUID(body["user"]["id"]))
        assert db_user.password_hash is None
        assert await count_rows(
            session_factory, AuthProviderLink,
            AuthProviderLink.provider_type == AuthProvider.GITHUB,
            AuthProviderLink.provider_user_id == "999",
            AuthProviderLink.user_id == db_user.id,
        ) == 1

    async def test_callback_twice_logs_in_same_user(self, test_client, provider_api, session_factory):
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)

        first = await test_client.get("/auth/github/callback", params={"code": "123456"})
        second = await test_client.get("/auth/github/callback", params={"code": "123456"})

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_200_OK
        assert first.json()["user"]["id"] == second.json()["user"]["id"]
        assert await count_rows(session_factory, User) == 1
        assert await count_rows(session_factory, AuthProviderLink) == 1

    async def test_callback_logs_in_existing_linked_user(self, test_client, provider_api, session_factory):
        user = await insert_user(session_factory, name="User One", email="user.one@example.com")
        await insert_link(session_factory, user.id, AuthProvider.GITHUB, "999")
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)

        response = await test_client.get("/auth/github/callback", params={"code": "123456"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"] == {
            "id": str(user.id),
            "name": "User One",
            "email": "user.one@example.com",
            "role": "user",
            "is_email_verified": False,
        }

    async def test_callback_email_collision_returns_403(self, test_client, provider_api, session_factory):
        await insert_user(session_factory, email="a@x.com")
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)

        response = await test_client.get("/auth/github/callback", params={"code": "123456"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {
            "code": 403,
            "message": "Cannot signup with github, user already exists with that email",
        }
        assert await count_rows(session_factory, User) == 1
        assert await count_rows(session_factory, AuthProviderLink) == 0

    async def test_callback_with_rejected_code_returns_401(self, test_client, provider_api, session_factory):
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)
        provider_api.rejected_codes.add("bad-code")

        response = await test_client.get("/auth/github/callback", params={"code": "bad-code"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["code"] == 401
        assert await count_rows(session_factory, User) == 0

    async def test_callback_without_code_returns_400(self, test_client):
        response = await test_client.get("/auth/github/callback")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == 400

    async def test_google_callback_with_provider_error_returns_401(self, test_client, provider_api):
        provider_api.rejected_codes.add("expired")

        response = await test_client.get("/auth/google/callback", params={"code": "expired"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_facebook_callback_joins_first_and_last_name(self, test_client, provider_api):
        provider_api.set_profile(AuthProvider.FACEBOOK, {
            "id": "10001", "email": "Jane.Doe@Example.com", "first_name": "Jane", "last_name": "Doe",
        })

        response = await test_client.get("/auth/facebook/callback", params={"code": "123456"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["name"] == "Jane Doe"
        assert response.json()["user"]["email"] == "jane.doe@example.com"


class TestOAuthLinkRoutes:
    async def test_link_and_unlink_provider(self, test_client, provider_api, session_factory):
        user = await insert_user(session_factory, email="linker@example.com", is_email_verified=True)
        provider_api.set_profile(AuthProvider.DISCORD, {
            "id": "42", "email": "someone.else@example.com", "username": "linker", "global_name": None,
        })

        response = await test_client.post("/auth/discord/link", json={"code": "123456"}, headers=auth_headers(user))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"provider_type": "discord", "provider_user_id": "42"}
        assert await count_rows(session_factory, AuthProviderLink, AuthProviderLink.user_id == user.id) == 1

        response = await test_client.delete("/auth/discord/link", headers=auth_headers(user))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert await count_rows(session_factory, AuthProviderLink) == 0
        assert await load_user(session_factory, user.id) is not None

    async def test_link_identity_owned_by_other_user_returns_409(self, test_client, provider_api, session_factory):
        owner = await insert_user(session_factory, email="owner@example.com", is_email_verified=True)
        other = await insert_user(session_factory, email="other@example.com", is_email_verified=True)
        await insert_link(session_factory, owner.id, AuthProvider.GITHUB, "999")
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)

        response = await test_client.post("/auth/github/link", json={"code": "123456"}, headers=auth_headers(other))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == 409

    async def test_link_requires_authentication(self, test_client):
        response = await test_client.post("/auth/github/link", json={"code": "123456"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"code": 401, "message": "Please authenticate"}

    async def test_link_with_empty_code_returns_400(self, test_client, provider_api, session_factory):
        user = await insert_user(session_factory, email="linker@example.com", is_email_verified=True)

        response = await test_client.post("/auth/github/link", json={"code": ""}, headers=auth_headers(user))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == 400
        assert provider_api.requests == []

    async def test_unlink_when_not_linked_is_noop(self, test_client, session_factory):
        user = await insert_user(session_factory, email="nolinks@example.com", is_email_verified=True)

        response = await test_client.delete("/auth/spotify/link", headers=auth_headers(user))

        assert response.status_code == status.HTTP_204_NO_CONTENT

    async def test_unlink_then_callback_signs_up_again(self, test_client, provider_api, session_factory):
        provider_api.set_profile(AuthProvider.GITHUB, GITHUB_USER)
        first = await test_client.get("/auth/github/callback", params={"code": "123456"})
        first_user = await load_user(session_factory, UUID(first.json()["user"]["id"]))

        response = await test_client.delete("/auth/github/link", headers=auth_headers(first_user))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        provider_api.set_profile(AuthProvider.GITHUB, {**GITHUB_USER, "email": "b@x.com"})

        second = await test_client.get("/auth/github/callback", params={"code": "123456"})

        assert second.status_code == status.HTTP_200_OK
        assert second.json()["user"]["id"] != str(first_user.id)
        assert await count_rows(session_factory, User) == 2
        assert await count_rows(session_factory, AuthProviderLink) == 1

    @pytest.mark.parametrize("method", ["post", "delete"])
    async def test_link_unknown_provider_returns_404(self, test_client, session_factory, method):
        user = await insert_user(session_factory, email="unknown@example.com", is_email_verified=True)

        kwargs = {"json": {"code": "123456"}} if method == "post" else {}
        response = await getattr(test_client, method)("/auth/myspace/link", headers=auth_headers(user), **kwargs)

        assert response.status_code == status.HTTP_404_NOT_FOUND
