"""
Server-side sessions bound to an httpOnly cookie.

The cookie only carries an opaque session id; the user id lives in Redis under
``sess:<id>`` so a session can be destroyed server-side.
"""
import secrets
import logging
from typing import Optional

from fastapi import Request, Response

from linkboard.config import settings
from linkboard.utils.cache import CacheManager, session_cache_key

logger = logging.getLogger(__name__)

# Cookie settings
COOKIE_NAME = settings.SESSION_COOKIE_NAME
COOKIE_MAX_AGE = settings.session_max_age_seconds


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=session_id,
        httponly=True,  # Prevents JavaScript access (XSS protection)
        secure=settings.is_production,  # HTTPS only in production
        samesite="lax",
        max_age=COOKIE_MAX_AGE,
        path="/"
    )


def get_session_id_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME)


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=COOKIE_NAME,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


class SessionHandle:
    """
    Request-scoped view of the caller's session.

    Reads are cached for the life of the handle, so resolving several
    owner-only fields costs one Redis round trip.
    """

    def __init__(self, cache: CacheManager, request: Request, response: Response):
        self.cache = cache
        self.response = response
        self.session_id = get_session_id_from_cookie(request)
        self._data: Optional[dict] = None

    async def _load(self) -> dict:
        if self._data is None:
            data = None
            if self.session_id:
                data = await self.cache.get(session_cache_key(self.session_id))
            self._data = data if isinstance(data, dict) else {}
        return self._data

    async def get_user_id(self) -> Optional[int]:
        """Return the user id bound to this session, if any."""
        data = await self._load()
        return data.get("userId")

    async def set_user_id(self, user_id: int) -> bool:
        """
        Bind the session to ``user_id`` and issue the cookie.

        A fresh session id is minted on every bind; any previous one is dropped.
        """
        previous = self.session_id
        session_id = secrets.token_urlsafe(32)
        data = {"userId": user_id}

        stored = await self.cache.set(session_cache_key(session_id), data, ttl=COOKIE_MAX_AGE)
        if not stored:
            logger.error("Session could not be stored", extra={"user_id": user_id})
            return False

        if previous:
            await self.cache.delete(session_cache_key(previous))

        self.session_id = session_id
        self._data = data
        set_session_cookie(self.response, session_id)
        logger.info("Session established", extra={"user_id": user_id})
        return True

    async def destroy(self) -> bool:
        """
        Drop the session server-side and clear the cookie.

        Returns False when the store refuses the delete; the cookie is left alone then.
        """
        if self.session_id:
            if not await self.cache.delete(session_cache_key(self.session_id)):
                return False

        clear_session_cookie(self.response)
        self.session_id = None
        self._data = {}
        logger.info("Session destroyed")
        return True
