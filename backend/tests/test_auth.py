from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from social_sync.deps import decode_owner_id
from social_sync.errors import Unauthenticated

SECRET = "test-secret"


def test_owner_id_read_from_user_id_claim() -> None:
    token = jwt.encode({"userId": 7}, SECRET, algorithm="HS256")
    assert decode_owner_id(token) == 7


def test_numeric_string_claim_is_accepted() -> None:
    token = jwt.encode({"userId": "12"}, SECRET, algorithm="HS256")
    assert decode_owner_id(token) == 12


def test_wrong_secret_rejected() -> None:
    token = jwt.encode({"userId": 7}, "another-secret", algorithm="HS256")
    with pytest.raises(Unauthenticated) as exc_info:
        decode_owner_id(token)
    assert exc_info.value.message == "Invalid token"


def test_expired_token_rejected() -> None:
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = jwt.encode({"userId": 7, "exp": expired}, SECRET, algorithm="HS256")
    with pytest.raises(Unauthenticated):
        decode_owner_id(token)


def test_missing_claim_rejected() -> None:
    token = jwt.encode({"sub": "7"}, SECRET, algorithm="HS256")
    with pytest.raises(Unauthenticated):
        decode_owner_id(token)


def test_garbage_rejected() -> None:
    with pytest.raises(Unauthenticated):
        decode_owner_id("not-a-jwt")
