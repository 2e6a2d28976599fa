# utils/oauth_providers.py
from typing import Any
from urllib.parse import urlencode, quote

import httpx

from identity_service.config import OAuthClientConfig
from identity_service.enums import AuthProvider
from identity_service.schemas.oauth import NormalizedOauthIdentity
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)

HTTP_TIMEOUT_SECONDS = 20


class OAuthProviderError(Exception):
    """The provider rejected the code or answered with something unusable."""

    def __init__(self, provider: AuthProvider, message: str):
        super().__init__(f"{provider.value}: {message}")
        self.provider = provider


class OAuthProviderAdapter:
    provider_type: AuthProvider
    authorization_endpoint: str

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        # Tests swap in httpx.MockTransport here
        self.transport = transport

    def authorization_params(self, client: OAuthClientConfig) -> dict[str, str]:
        raise NotImplementedError

    def build_authorization_url(self, client: OAuthClientConfig) -> str:
        query = urlencode(self.authorization_params(client), quote_via=quote)
        return f"{self.authorization_endpoint}?{query}"

    async def fetch_access_token(self, http: httpx.AsyncClient, client: OAuthClientConfig, code: str) -> str:
        raise NotImplementedError

    async def fetch_profile(self, http: httpx.AsyncClient, access_token: str) -> dict[str, Any]:
        raise NotImplementedError

    def normalize(self, profile: dict[str, Any]) -> NormalizedOauthIdentity:
        return NormalizedOauthIdentity(
            provider_type=self.provider_type,
            provider_user_id=profile.get("id"),
            email=profile.get("email"),
            name=profile.get("name"),
        )

    async def exchange_code_for_identity(self, client: OAuthClientConfig, code: str) -> NormalizedOauthIdentity:
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS, transport=self.transport) as http:
                access_token = await self.fetch_access_token(http, client, code)
                profile = await self.fetch_profile(http, access_token)
            return self.normalize(profile)
        except httpx.HTTPError as e:
            logger.warning(f"{self.provider_type.value} request failed: {str(e)}")
            raise OAuthProviderError(self.provider_type, "request failed") from e
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            # ValueError covers bad JSON and pydantic validation of the identity
            logger.warning(f"{self.provider_type.value} returned an unusable response: {str(e)}")
            raise OAuthProviderError(self.provider_type, "malformed response") from e

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise OAuthProviderError(self.provider_type, "unexpected response body")
        return data

    def _access_token_from(self, data: dict[str, Any]) -> str:
        access_token = data.get("access_token")
        if not access_token:
            reason = data.get("error_description") or data.get("error") or "no access token returned"
            raise OAuthProviderError(self.provider_type, str(reason))
        return access_token


class GithubProvider(OAuthProviderAdapter):
    provider_type = AuthProvider.GITHUB
    authorization_endpoint = "https://github.com/login/oauth/authorize"
    token_endpoint = "https://github.com/login/oauth/access_token"
    api_url = "https://api.github.com"

    def authorization_params(self, client: OAuthClientConfig) -> dict[str, str]:
        return {
            "allow_signup": "true",
            "client_id": client.client_id,
            "scope": "read:user user:email",
        }

    async def fetch_access_token(self, http: httpx.AsyncClient, client: OAuthClientConfig, code: str) -> str:
        response = await http.post(
            self.token_endpoint,
            json={"client_id": client.client_id, "client_secret": client.client_secret, "code": code},
            headers={"Accept": "application/json"},
        )
        return self._access_token_from(self._json(response))

    async def fetch_profile(self, http: httpx.AsyncClient, access_token: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/vnd.github+json"}
        profile = self._json(await http.get(f"{self.api_url}/user", headers=headers))

        if not profile.get("email"):
            # Private addresses are only exposed through the emails endpoint
            response = await http.get(f"{self.api_url}/user/emails", headers=headers)
            response.raise_for_status()
            emails = response.json()
            primary = next((e for e in emails if e.get("primary") and e.get("verified")), None)
            profile["email"] = primary["email"] if primary else None

        profile["name"] = profile.get("name") or profile.get("login")
        return profile


class GoogleProvider(OAuthProviderAdapter):
    provider_type = AuthProvider.GOOGLE
    authorization_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://www.googleapis.com/oauth2/v2/userinfo"

    def authorization_params(self, client: OAuthClientConfig) -> dict[str, str]:
        return {
            "client_id": client.client_id,
            "include_granted_scopes": "true",
            "redirect_uri": client.redirect_url,
            "response_type": "code",
            "scope": "openid email profile",
            "state": "pass-through value",
        }

    async def fetch_access_token(self, http: httpx.AsyncClient, client: OAuthClientConfig, code: str) -> str:
        response = await http.post(self.token_endpoint, data={
            "code": code,
            "client_id": client.client_id,
            "client_secret": client.client_secret,
            "redirect_uri": client.redirect_url,
            "grant_type": "authorization_code",
        })
        return self._access_token_from(self._json(response))

    async def fetch_profile(self, http: httpx.AsyncClient, access_token: str) -> dict[str, Any]:
        response = await http.get(self.userinfo_endpoint, headers={"Authorization": f"Bearer {access_token}"})
        return self._json(response)


class SpotifyProvider(OAuthProviderAdapter):
    provider_type = AuthProvider.SPOTIFY
    authorization_endpoint = "https://accounts.spotify.com/authorize"
    token_endpoint = "https://accounts.spotify.com/api/token"
    profile_endpoint = "https://api.spotify.com/v1/me"

    def authorization_params(self, client: OAuthClientConfig) -> dict[str, str]:
        return {
            "client_id": client.client_id,
            "redirect_uri": client.redirect_url,
            "response_type": "code",
            "scope": "user-library-read playlist-modify-private",
            "show_dialog": "false",
        }

    async def fetch_access_token(self, http: httpx.AsyncClient, client: OAuthClientConfig, code: str) -> str:
        response = await http.post(
            self.token_endpoint,
            data={"grant_type": "authorization_code", "code": code, "redirect_uri": client.redirect_url},
            auth=(client.client_id, client.client_secret),
        )
        return self._access_token_from(self._json(response))

    async def fetch_profile(self, http: httpx.AsyncClient, access_token: str) -> dict[str, Any]:
        response = await http.get(self.profile_endpoint, headers={"Authorization": f"Bearer {access_token}"})
        profile = self._json(response)
        profile["name"] = profile.get("display_name")
        return profile


class DiscordProvider(OAuthProviderAdapter):
    provider_type = AuthProvider.DISCORD
    authorization_endpoint = "https://discord.com/api/oauth2/authorize"
    token_endpoint = "https://discord.com/api/oauth2/token"
    profile_endpoint = "https://discord.com/api/users/@me"

    def authorization_params(self, client: OAuthClientConfig) -> dict[str, str]:
        return {
            "client_id": client.client_id,
            "redirect_uri": client.redirect_url,
            "response_type": "code",
            "scope": "identify email",
        }

    async def fetch_access_token(self, http: httpx.AsyncClient, client: OAuthClientConfig, code: str) -> str:
        response = await http.post(self.token_endpoint, data={
            "client_id": client.client_id,
            "client_secret": client.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": client.redirect_url,
        })
        return self._access_token_from(self._json(response))

    async def fetch_profile(self, http: httpx.AsyncClient, access_token: str) -> dict[str, Any]:
        response = await http.get(self.profile_endpoint, headers={"Authorization": f"Bearer {access_token}"})
        profile = self._json(response)
        profile["name"] = profile.get("global_name") or profile.get("username")
        return profile


class FacebookProvider(OAuthProviderAdapter):
    provider_type = AuthProvider.FACEBOOK
    authorization_endpoint = "https://www.facebook.com/v4.0/dialog/oauth"
    token_endpoint = "https://graph.facebook.com/v4.0/oauth/access_token"
    profile_endpoint = "https://graph.facebook.com/me"

    def authorization_params(self, client: OAuthClientConfig) -> dict[str, str]:
        return {
            "client_id": client.client_id,
            "redirect_uri": client.redirect_url,
            "scope": "email",
            "response_type": "code",
            "auth_type": "rerequest",
            "display": "popup",
        }

    async def fetch_access_token(self, http: httpx.AsyncClient, client: OAuthClientConfig, code: str) -> str:
        response = await http.get(self.token_endpoint, params={
            "client_id": client.client_id,
            "client_secret": client.client_secret,
            "redirect_uri": client.redirect_url,
            "code": code,
        })
        return self._access_token_from(self._json(response))

    async def fetch_profile(self, http: httpx.AsyncClient, access_token: str) -> dict[str, Any]:
        response = await http.get(self.profile_endpoint, params={
            "fields": "id,email,first_name,last_name",
            "access_token": access_token,
        })
        profile = self._json(response)
        profile["name"] = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}"
        return profile


OAUTH_PROVIDER_CLASSES: dict[AuthProvider, type[OAuthProviderAdapter]] = {
    AuthProvider.GITHUB: GithubProvider,
    AuthProvider.GOOGLE: GoogleProvider,
    AuthProvider.SPOTIFY: SpotifyProvider,
    AuthProvider.DISCORD: DiscordProvider,
    AuthProvider.FACEBOOK: FacebookProvider,
}


def build_oauth_providers(transport: httpx.AsyncBaseTransport | None = None) -> dict[AuthProvider, OAuthProviderAdapter]:
    return {provider: adapter(transport=transport) for provider, adapter in OAUTH_PROVIDER_CLASSES.items()}


oauth_providers = build_oauth_providers()


def get_oauth_providers() -> dict[AuthProvider, OAuthProviderAdapter]:
    return oauth_providers
