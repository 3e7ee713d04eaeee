"""
Per-request GraphQL context.
"""
import asyncio
from functools import cached_property
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.fastapi import BaseContext

from linkboard.db import get_db
from linkboard.graphql.loaders import create_updoot_loader, create_user_loader
from linkboard.services.email_service import EmailService, get_mailer
from linkboard.utils.cache import CacheManager, get_cache
from linkboard.utils.cookie_auth import SessionHandle

T = TypeVar("T")


class Context(BaseContext):
    """
    Handles every resolver works with: database session, cache, mailer and the
    caller's session. ``request``/``response``/``background_tasks`` are filled
    in by Strawberry after the context getter returns.
    """

    def __init__(self, db: AsyncSession, cache: CacheManager, mailer: EmailService):
        super().__init__()
        self.db = db
        self.cache = cache
        self.mailer = mailer
        # Sibling resolvers run concurrently but an AsyncSession allows one operation at a time.
        self.db_lock = asyncio.Lock()
        self.user_loader = create_user_loader(db, self.db_lock)
        self.updoot_loader = create_updoot_loader(db, self.db_lock)

    @cached_property
    def session(self) -> SessionHandle:
        return SessionHandle(self.cache, self.request, self.response)

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run a service coroutine with exclusive use of the database session."""
        async with self.db_lock:
            return await fn(*args, **kwargs)


async def get_context(
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
    mailer: EmailService = Depends(get_mailer),
) -> Context:
    return Context(db=db, cache=cache, mailer=mailer)
