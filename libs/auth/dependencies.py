from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from libs.auth.credentials import get_user
from libs.auth.models import User
from libs.auth.tokens import InvalidToken, verify_token
from libs.common.exceptions import Forbidden, Unauthenticated
from libs.common.logging import get_logger
from libs.db.session import get_async_db

logger = get_logger(__name__)

# auto_error=False so a missing header goes through our own 401 path.
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_async_db)],
) -> User:
    """
    Resolve the bearer token into a stored user.

    Fails with Unauthenticated when the header is missing, the token does not
    verify, or the token's subject no longer exists. On success the user is
    also attached to ``request.state.user``.
    """
    header = request.headers.get("Authorization")
    if token is None or not header or not header.startswith("Bearer "):
        raise Unauthenticated("No Authorization header")

    try:
        claims = verify_token(token.credentials)
    except InvalidToken as exc:
        logger.warning("Rejected token: %s", exc)
        raise Unauthenticated("Authentication failed") from exc

    user = await get_user(db, claims.user_id)
    if user is None:
        logger.warning("Token subject %s no longer exists", claims.user_id)
        raise Unauthenticated("User not found")

    request.state.user = user
    return user


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Ensure the authenticated user holds the admin role.

    Always chained after ``get_current_user``; it never runs without a
    resolved identity.
    """
    if not current_user.is_admin:
        raise Forbidden("Access denied. Admins only!")
    return current_user
