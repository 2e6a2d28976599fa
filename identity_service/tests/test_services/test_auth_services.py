import pytest
from fastapi import HTTPException

from identity_service.config import settings
from identity_service.schemas.auth import LoginData, NewPassword
from identity_service.schemas.user import UserCreate
from identity_service.services.auth import (
    build_frontend_link,
    register_user,
    login_user,
    change_password,
    forgot_password,
)
from identity_service.tests.utils.fixtures import DEFAULT_PASSWORD, insert_user, load_user
from identity_service.utils.user_utils import verify_hash_pass


class TestAuthServices:
    async def test_user_creation(self, db_session, session_factory, random_email, sent_emails):
        user_data = UserCreate(
            name="Test User",
            email=random_email,
            password="securepassword123",
        )

        response = await register_user(user_data, settings.jwt_config, settings.FRONTEND_URL, db_session)
        assert response.user.email == random_email
        assert response.user.is_email_verified is False

        # Verify password hashing
        db_user = await load_user(session_factory, response.user.id)
        assert db_user.password_hash != "securepassword123"
        assert verify_hash_pass("securepassword123", db_user.password_hash)
        assert sent_emails[0]["to"] == random_email

    async def test_login_is_case_insensitive_on_email(self, db_session, session_factory):
        await insert_user(session_factory, email="case@example.com")

        response = await login_user(LoginData(email="Case@Example.com", password=DEFAULT_PASSWORD),
                                    settings.jwt_config, db_session)

        assert response.user.email == "case@example.com"

    async def test_change_password_for_oauth_only_account_fails(self, db_session, session_factory):
        user = await insert_user(session_factory, email="oauth@example.com", password=None, is_email_verified=True)

        with pytest.raises(HTTPException) as exc_info:
            await change_password(user, NewPassword(old_password="anything1", new_password="newpass123"), db_session)

        assert exc_info.value.status_code == 400

    async def test_forgot_password_link_points_at_frontend(self, db_session, session_factory, sent_emails):
        await insert_user(session_factory, email="forgot@example.com")

        await forgot_password("forgot@example.com", settings.jwt_config, "https://app.example.com/", db_session)

        assert "https://app.example.com/reset-password?token=" in sent_emails[0]["body"]

    def test_build_frontend_link(self):
        assert build_frontend_link("http://localhost:3000/", "verify-email", "abc") == \
               "http://localhost:3000/verify-email?token=abc"
