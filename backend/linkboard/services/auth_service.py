"""
Registration, login and the password reset flow.

Every function takes its collaborators (database session, cache, session
handle, mailer) as arguments; nothing here reaches for request globals.
Failures are raised as ``AppException`` subclasses carrying the offending
field, for the GraphQL layer to return as ``FieldError`` payloads.
"""
import logging
import secrets
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkboard.auth import hash_password_async, verify_password_async
from linkboard.config import settings
from linkboard.exceptions import (
    DuplicateError,
    InvalidCredentialsError,
    SessionUnavailableError,
    NotFoundError,
    TokenExpiredError,
    UserGoneError,
    ValidationError,
)
from linkboard.models import User
from linkboard.services.email_service import EmailService
from linkboard.utils.cache import CacheManager, reset_token_cache_key
from linkboard.utils.cookie_auth import SessionHandle

logger = logging.getLogger(__name__)

MIN_LENGTH = 3
UNIQUE_VIOLATION = "23505"


def validate_register(username: str, email: str, password: str) -> None:
    """Raise ValidationError for the first rule the registration input breaks."""
    if len(username) < MIN_LENGTH:
        raise ValidationError("username", "username length must be greater than 2")
    if "@" in username:
        raise ValidationError("username", "cannot include an @ sign")
    if len(password) < MIN_LENGTH:
        raise ValidationError("password", "password length must be greater than 2")
    if "@" not in email:
        raise ValidationError("email", "invalid email")


def _is_unique_violation(exc: IntegrityError) -> bool:
    if getattr(exc.orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    if getattr(exc.orig, "sqlstate", None) == UNIQUE_VIOLATION:
        return True
    return "unique" in str(exc.orig).lower()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def start_session(session: SessionHandle, user: User) -> None:
    if not await session.set_user_id(user.id):
        raise SessionUnavailableError()


async def register(
    db: AsyncSession,
    session: SessionHandle,
    username: str,
    email: str,
    password: str,
) -> User:
    validate_register(username, email, password)

    if await get_user_by_username(db, username):
        raise DuplicateError("username")

    user = User(
        username=username,
        email=email,
        password=await hash_password_async(password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if not _is_unique_violation(exc):
            raise
        # Lost a race with a concurrent registration.
        field = "email" if "email" in str(exc.orig).lower() else "username"
        logger.warning(f"Unique constraint hit during registration on {field}: {exc.orig}")
        raise DuplicateError(field)

    await db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})

    await start_session(session, user)
    return user


async def login(
    db: AsyncSession,
    session: SessionHandle,
    username_or_email: str,
    password: str,
) -> User:
    if "@" in username_or_email:
        user = await get_user_by_email(db, username_or_email)
    else:
        user = await get_user_by_username(db, username_or_email)

    if not user:
        raise NotFoundError("usernameOrEmail", "that account doesn't exist")

    if not await verify_password_async(password, user.password):
        logger.info("Login rejected: bad password", extra={"user_id": user.id})
        raise InvalidCredentialsError()

    await start_session(session, user)
    return user


async def logout(session: SessionHandle) -> bool:
    destroyed = await session.destroy()
    if not destroyed:
        logger.error("Session could not be destroyed on logout")
    return destroyed


async def me(db: AsyncSession, session: SessionHandle) -> Optional[User]:
    user_id = await session.get_user_id()
    if user_id is None:
        return None
    return await get_user_by_id(db, user_id)


def deliver_reset_email(mailer: EmailService, to_email: str, username: str, token: str) -> bool:
    """Send the reset email; failures are logged since the caller already answered."""
    sent = mailer.send_password_reset_email(to_email=to_email, username=username, token=token)
    if not sent:
        logger.error(f"Password reset email could not be delivered to {to_email}")
    return sent


async def forgot_password(
    db: AsyncSession,
    cache: CacheManager,
    mailer: EmailService,
    background_tasks: BackgroundTasks,
    email: str,
) -> bool:
    """
    Issue a reset token and mail it.

    Always returns True so the response never reveals whether the email is registered.
    """
    user = await get_user_by_email(db, email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return True

    token = secrets.token_urlsafe(32)
    stored = await cache.set(
        reset_token_cache_key(token),
        user.id,
        ttl=settings.RESET_TOKEN_TTL_SECONDS,
    )
    if not stored:
        logger.error("Reset token could not be stored", extra={"user_id": user.id})
        return True

    background_tasks.add_task(deliver_reset_email, mailer, user.email, user.username, token)
    logger.info("Password reset token issued", extra={"user_id": user.id})
    return True


async def change_password(
    db: AsyncSession,
    cache: CacheManager,
    session: SessionHandle,
    token: str,
    new_password: str,
) -> User:
    if len(new_password) < MIN_LENGTH:
        raise ValidationError("newPassword", "length must be greater than 2")

    # GETDEL: the token is spent here whether or not the rest succeeds.
    user_id = await cache.pop(reset_token_cache_key(token))
    if user_id is None:
        raise TokenExpiredError()

    user = await get_user_by_id(db, int(user_id))
    if not user:
        raise UserGoneError()

    user.password = await hash_password_async(new_password)
    await db.commit()
    await db.refresh(user)
    logger.info("Password changed", extra={"user_id": user.id})

    await start_session(session, user)
    return user
