"""Unit tests for token issuing and verification."""

import uuid
from datetime import timedelta

import pytest
from jose import jwt
from libs.auth.tokens import InvalidToken, issue_token, verify_token
from libs.common.config import get_settings


@pytest.mark.unit
def test_issued_token_verifies_to_same_identity():
    user_id = uuid.uuid4()

    claims = verify_token(issue_token(user_id, is_admin=True))

    assert claims.user_id == user_id
    assert claims.is_admin is True


@pytest.mark.unit
def test_standard_user_token_carries_no_admin_flag():
    claims = verify_token(issue_token(uuid.uuid4(), is_admin=False))

    assert claims.is_admin is False


@pytest.mark.unit
def test_token_expiry_uses_configured_window():
    settings = get_settings()
    token = issue_token(uuid.uuid4(), is_admin=False)

    payload = jwt.get_unverified_claims(token)

    assert payload["exp"] - payload["iat"] == settings.JWT_EXPIRE_MINUTES * 60


@pytest.mark.unit
def test_expired_token_is_rejected():
    token = issue_token(uuid.uuid4(), is_admin=False, expires_delta=timedelta(seconds=-5))

    with pytest.raises(InvalidToken):
        verify_token(token)


@pytest.mark.unit
def test_token_signed_with_other_secret_is_rejected():
    settings = get_settings()
    forged = jwt.encode(
        {"sub": str(uuid.uuid4()), "is_admin": True, "exp": 4102444800},
        "not-the-secret",
        algorithm=settings.JWT_ALGORITHM,
    )

    with pytest.raises(InvalidToken):
        verify_token(forged)


@pytest.mark.unit
def test_tampered_payload_is_rejected():
    token = issue_token(uuid.uuid4(), is_admin=False)
    header, _, signature = token.split(".")
    other_payload = issue_token(uuid.uuid4(), is_admin=True).split(".")[1]

    with pytest.raises(InvalidToken):
        verify_token(f"{header}.{other_payload}.{signature}")


@pytest.mark.unit
@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token_is_rejected(token):
    with pytest.raises(InvalidToken):
        verify_token(token)


@pytest.mark.unit
def test_token_without_subject_is_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"is_admin": False, "exp": 4102444800},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )

    with pytest.raises(InvalidToken):
        verify_token(token)
