from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from identity_service.enums import AuthProvider


class NormalizedOauthIdentity(BaseModel):
    """What every provider adapter hands to the identity resolver."""
    provider_type: AuthProvider
    provider_user_id: str
    email: EmailStr
    name: str = ''

    @field_validator("provider_user_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        # GitHub and Facebook ids may arrive as numbers
        if v is None or v == '':
            raise ValueError("provider user id is missing")
        return str(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> str:
        return (v or '').strip()

    @model_validator(mode="after")
    def default_name(self) -> "NormalizedOauthIdentity":
        if not self.name:
            self.name = self.email.split('@')[0]
        return self


class OAuthLinkRequest(BaseModel):
    code: str = Field(min_length=1)


class AuthProviderRead(BaseModel):
    model_config = ConfigDict(use_enum_values=True, from_attributes=True)
    provider_type: AuthProvider
    provider_user_id: str
