import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey, Index, UniqueConstraint, Uuid

from identity_service.DB.database import Base
from identity_service.enums import UserRole, AuthProvider


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)  # always stored lower-case
    password_hash = Column(String, nullable=True)  # NULL for accounts created through an OAuth provider
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    is_email_verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, onupdate=utc_now, default=utc_now)


class AuthProviderLink(Base):
    """Binds one provider identity to one local user."""
    __tablename__ = "auth_providers"

    __table_args__ = (
        UniqueConstraint('provider_type', 'provider_user_id', name='uq_auth_providers_provider_identity'),
        UniqueConstraint('user_id', 'provider_type', name='uq_auth_providers_user_provider'),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    provider_type = Column(Enum(AuthProvider), nullable=False)
    provider_user_id = Column(String, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", name="auth_providers_users_fky", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class RefreshToken(Base):
    """This table stores data used to rotate and revoke refresh tokens."""
    __tablename__ = "refresh_tokens"

    __table_args__ = (
        Index('ix_rt_user_id', 'user_id'),  # index over the user_id to improve query performance
    )

    jwt_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", name="refresh_tokens_users_fky", ondelete="CASCADE"), nullable=False)
    hash_refresh_token = Column(String, nullable=False)  # Fernet encrypted refresh token
    refresh_token_exp = Column(DateTime(timezone=True), nullable=False)
    is_black_list = Column(Boolean, nullable=False, default=False)

    issued_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
