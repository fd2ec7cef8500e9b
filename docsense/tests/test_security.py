import jwt
import pytest

from docsense.core import security


def test_password_round_trip():
    hashed = security.hash_password("Secret123!")
    assert hashed.startswith("$pbkdf2-sha256$")
    assert security.verify_password("Secret123!", hashed)
    assert not security.verify_password("secret123!", hashed)


def test_token_kinds_are_not_interchangeable():
    access = security.create_access_token("user-1", "USER")
    refresh = security.create_refresh_token("user-1", "USER")

    claims = security.decode_token(access)
    assert claims["sub"] == "user-1"
    assert claims["role"] == "USER"
    assert security.decode_token(refresh, kind=security.REFRESH)["type"] == "refresh"

    with pytest.raises(jwt.InvalidTokenError):
        security.decode_token(refresh)
    with pytest.raises(jwt.InvalidTokenError):
        security.decode_token(access, kind=security.REFRESH)


def test_token_signed_with_another_secret_is_rejected():
    claims = security.decode_token(security.create_access_token("user-1", "USER"))
    forged = jwt.encode(claims, "not-the-secret", algorithm=security.JWT_ALGORITHM)
    with pytest.raises(jwt.InvalidTokenError):
        security.decode_token(forged)
