import datetime

from pydantic import BaseModel, EmailStr, field_validator

from identity_service.schemas.user import UserRead, validate_password_strength


class TokenInfo(BaseModel):
    token: str
    expires: datetime.datetime


class TokenPair(BaseModel):
    access: TokenInfo
    refresh: TokenInfo


class AuthResponse(BaseModel):
    user: UserRead
    tokens: TokenPair


class LoginData(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenData(BaseModel):
    refresh_token: str


class EmailData(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordResetRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class NewPassword(BaseModel):
    old_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)
