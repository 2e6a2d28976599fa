from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt, JWTError
from passlib.context import CryptContext

from identity_service.config import JwtConfig
from identity_service.enums import TokenType

password_context = CryptContext(schemes=['bcrypt'], deprecated='auto')


def generate_pass_hash(password: str) -> str:
    return password_context.hash(password)


def verify_hash_pass(password: str, hash: str | None) -> bool:
    if not hash:
        return False
    return password_context.verify(password, hash)


def create_jwt_token(
        subject: str,
        expires: datetime,
        token_type: TokenType,
        jwt_config: JwtConfig,
        **claims: Any,
) -> str:
    to_encode = dict(claims)
    to_encode.update({
        "sub": subject,
        "iat": datetime.now(tz=timezone.utc),
        "exp": expires,
        "type": token_type.value,
    })
    return jwt.encode(to_encode, jwt_config.secret, algorithm=jwt_config.algorithm)


def decode_jwt_token(token: str, token_type: TokenType, jwt_config: JwtConfig) -> dict:
    """Verify signature, expiry and token type. Raises ``JWTError`` on any mismatch."""
    payload = jwt.decode(token, jwt_config.secret, algorithms=[jwt_config.algorithm])
    if payload.get("type") != token_type.value:
        raise JWTError("Invalid token type")
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload


def expiry_in(minutes: int = 0, days: int = 0) -> datetime:
    return datetime.now(tz=timezone.utc) + timedelta(minutes=minutes, days=days)
