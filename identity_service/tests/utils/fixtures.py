import json
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qs

import httpx
from sqlalchemy import select, func

from identity_service.DB.models.users import User, AuthProviderLink
from identity_service.config import settings
from identity_service.enums import AuthProvider, TokenType, UserRole
from identity_service.utils.user_utils import create_jwt_token, generate_pass_hash

DEFAULT_PASSWORD = "password1"

TOKEN_ENDPOINTS = {
    ("github.com", "/login/oauth/access_token"): AuthProvider.GITHUB,
    ("oauth2.googleapis.com", "/token"): AuthProvider.GOOGLE,
    ("accounts.spotify.com", "/api/token"): AuthProvider.SPOTIFY,
    ("discord.com", "/api/oauth2/token"): AuthProvider.DISCORD,
    ("graph.facebook.com", "/v4.0/oauth/access_token"): AuthProvider.FACEBOOK,
}

PROFILE_ENDPOINTS = {
    ("api.github.com", "/user"): AuthProvider.GITHUB,
    ("www.googleapis.com", "/oauth2/v2/userinfo"): AuthProvider.GOOGLE,
    ("api.spotify.com", "/v1/me"): AuthProvider.SPOTIFY,
    ("discord.com", "/api/users/@me"): AuthProvider.DISCORD,
    ("graph.facebook.com", "/me"): AuthProvider.FACEBOOK,
}


class FakeProviderApi:
    """In-memory stand-in for the five providers' token and profile endpoints."""

    access_token = "1234"

    def __init__(self):
        self.profiles: dict[AuthProvider, dict[str, Any]] = {}
        self.github_emails: list[dict[str, Any]] = []
        self.rejected_codes: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def set_profile(self, provider: AuthProvider, profile: dict[str, Any]) -> None:
        self.profiles[provider] = profile

    @staticmethod
    def _code(request: httpx.Request) -> str | None:
        if "code" in request.url.params:
            return request.url.params["code"]
        content = request.content.decode()
        if request.headers.get("content-type", "").startswith("application/json"):
            return json.loads(content).get("code")
        return parse_qs(content).get("code", [None])[0]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.url.host, request.url.path)

        if key in TOKEN_ENDPOINTS:
            if self._code(request) in self.rejected_codes:
                # GitHub reports a bad code in a 200 body, the others with a 4xx
                status_code = 200 if key[0] == "github.com" else 400
                return httpx.Response(status_code, json={"error": "bad_verification_code"})
            return httpx.Response(200, json={"access_token": self.access_token, "token_type": "bearer"})

        if key == ("api.github.com", "/user/emails"):
            return httpx.Response(200, json=self.github_emails)

        if key in PROFILE_ENDPOINTS:
            profile = self.profiles.get(PROFILE_ENDPOINTS[key])
            if profile is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json=profile)

        return httpx.Response(404, json={"message": f"Unexpected call to {request.url}"})


async def insert_user(session_factory, *, name: str = "User One", email: str = "user.one@example.com",
                      password: str | None = DEFAULT_PASSWORD, role: UserRole = UserRole.USER,
                      is_email_verified: bool = False) -> User:
    async with session_factory() as session:
        user = User(
            name=name,
            email=email,
            password_hash=generate_pass_hash(password) if password else None,
            role=role,
            is_email_verified=is_email_verified,
        )
        session.add(user)
        await session.commit()
        return user


async def insert_link(session_factory, user_id, provider_type: AuthProvider, provider_user_id: str) -> AuthProviderLink:
    async with session_factory() as session:
        link = AuthProviderLink(user_id=user_id, provider_type=provider_type, provider_user_id=provider_user_id)
        session.add(link)
        await session.commit()
        return link


async def count_rows(session_factory, model, *conditions) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(model)
        if conditions:
            stmt = stmt.where(*conditions)
        return (await session.execute(stmt)).scalar_one()


async def load_user(session_factory, user_id) -> User | None:
    async with session_factory() as session:
        return (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none()


def access_token_for(user: User, minutes: int = 30) -> str:
    return create_jwt_token(
        str(user.id),
        datetime.now(tz=timezone.utc) + timedelta(minutes=minutes),
        TokenType.ACCESS,
        settings.jwt_config,
        role=UserRole(user.role).value,
        is_email_verified=bool(user.is_email_verified),
    )


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token_for(user)}"}


def typed_token_for(user: User, token_type: TokenType, minutes: int = 10, **claims) -> str:
    return create_jwt_token(
        str(user.id),
        datetime.now(tz=timezone.utc) + timedelta(minutes=minutes),
        token_type,
        settings.jwt_config,
        **claims,
    )
