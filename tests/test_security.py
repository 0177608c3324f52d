from datetime import timedelta

import pytest
from jose import JWTError

from salon_api.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    get_token_subject,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_token_types_and_subject():
    access = create_access_token("user-1")
    refresh = create_refresh_token("user-1")
    assert decode_token(access)["type"] == "access"
    assert decode_token(refresh)["type"] == "refresh"
    assert get_token_subject(access) == "user-1"


def test_invalid_token():
    assert get_token_subject("garbage") is None
    with pytest.raises(JWTError):
        decode_token("garbage")


def test_expired_token():
    from salon_api.core import security

    token = security._create_token({"sub": "user-1"}, timedelta(seconds=-10), token_type="access")
    assert get_token_subject(token) is None
