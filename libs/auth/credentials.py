"""Credential store operations: registration, login, role changes, deletion."""

import hmac
import uuid
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from libs.auth.models import User
from libs.common.exceptions import Conflict, NotFound, Unauthenticated
from libs.common.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def is_admin_code(supplied: Optional[str], configured: Optional[str]) -> bool:
    """Return True when ``supplied`` matches the configured admin registration code.

    An unset configured code never matches, so admin self-registration is off
    unless a deployment opts in.
    """
    if not supplied or not configured:
        return False
    return hmac.compare_digest(supplied.encode(), configured.encode())


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    return await db.get(User, user_id)


async def register_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    admin_code: Optional[str],
    configured_admin_code: Optional[str],
) -> User:
    """Create a user. The admin flag is decided here and nowhere else at signup."""
    if await get_user_by_email(db, email):
        raise Conflict("User already exists")

    user = User(
        email=normalize_email(email),
        password_hash=hash_password(password),
        name=name,
        is_admin=is_admin_code(admin_code, configured_admin_code),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise Conflict("User already exists") from exc
    await db.refresh(user)

    logger.info("Registered user %s (admin=%s)", user.id, user.is_admin)
    return user


async def authenticate_user(db: AsyncSession, *, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise Unauthenticated("Invalid credentials")
    return user


async def set_admin_role(db: AsyncSession, user_id: uuid.UUID, is_admin: bool) -> User:
    user = await get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    user.is_admin = is_admin
    await db.commit()
    await db.refresh(user)
    logger.info("Set admin=%s for user %s", is_admin, user.id)
    return user


async def delete_user_by_email(db: AsyncSession, email: str) -> None:
    """Delete a user. Tokens already issued to them are rejected by the access gate."""
    user = await get_user_by_email(db, email)
    if not user:
        raise NotFound("User not found")
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %s", user.id)
