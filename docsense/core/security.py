"""Password hashing and the signed JWTs that carry a user's session.

Two kinds of token are issued: short-lived ``access`` tokens sent as bearer
credentials, and longer-lived ``refresh`` tokens traded in for a new pair.
"""
from datetime import timedelta
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from .config import get_settings
from .time import utcnow

ACCESS = "access"
REFRESH = "refresh"
JWT_ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["iss", "iat", "exp", "sub", "type"]

passwords = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return passwords.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return passwords.verify(password, password_hash)


def _lifetime(kind: str) -> timedelta:
    settings = get_settings()
    minutes = settings.access_token_exp_minutes if kind == ACCESS else settings.refresh_token_exp_minutes
    return timedelta(minutes=minutes)


def _issue(user_id: str, role: str, kind: str) -> str:
    settings = get_settings()
    issued_at = utcnow()
    claims = {
        "sub": user_id,
        "role": role,
        "type": kind,
        "iss": settings.jwt_issuer,
        "iat": issued_at,
        "exp": issued_at + _lifetime(kind),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def create_access_token(user_id: str, role: str) -> str:
    return _issue(user_id, role, ACCESS)


def create_refresh_token(user_id: str, role: str) -> str:
    return _issue(user_id, role, REFRESH)


def decode_token(token: str, kind: str = ACCESS) -> Dict[str, Any]:
    """Verify signature, issuer and expiry, and that the token is of ``kind``.

    Raises ``jwt.InvalidTokenError`` (or a subclass) on any failure.
    """
    settings = get_settings()
    claims = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[JWT_ALGORITHM],
        issuer=settings.jwt_issuer,
        options={"require": REQUIRED_CLAIMS},
    )
    if claims["type"] != kind:
        raise jwt.InvalidTokenError(f"Expected a {kind} token")
    return claims
