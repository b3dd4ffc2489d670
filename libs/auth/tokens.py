"""Signed, time-limited identity tokens (HS256 JWT).

Tokens are stateless: there is no refresh flow and no revocation list, so a
token stays valid until ``exp`` unless the access gate rejects its subject.
"""

import uuid
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import TokenClaims
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now


class InvalidToken(Exception):
    """Signature mismatch, malformed token, missing claims or expired window."""


def issue_token(
    user_id: uuid.UUID,
    is_admin: bool,
    expires_delta: Optional[timedelta] = None,
) -> str:
    settings = get_settings()
    issued_at = utc_now()
    expire = issued_at + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "is_admin": is_admin,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> TokenClaims:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
        return TokenClaims(**payload)
    except (JWTError, ValidationError) as exc:
        raise InvalidToken(str(exc)) from exc
