import re
import uuid
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from identity_service.enums import UserRole

PASSWORD_MIN_LENGTH = 8


def validate_password_strength(password: str) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        raise ValueError("password must contain at least one letter and one number")
    return password


class UserBase(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserCreate(UserBase):
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UserRead(BaseModel):
    model_config = ConfigDict(use_enum_values=True, from_attributes=True)
    id: uuid.UUID
    name: str
    email: EmailStr
    role: UserRole
    is_email_verified: bool


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


class UsersRead(BaseModel):
    users: List[UserRead] = []
    total: int
    skip: int
    limit: int
