# identity_service/DB/__init__.py


__all__ = [
    "Base", "AsyncSessionLocal", "get_db",
    "User", "AuthProviderLink", "RefreshToken"
]

from .database import Base, AsyncSessionLocal, get_db
from .models.users import User, AuthProviderLink, RefreshToken
