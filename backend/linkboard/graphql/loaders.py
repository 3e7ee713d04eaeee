"""
Per-request DataLoaders that batch the N+1 lookups made while resolving a feed.
"""
import asyncio
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.dataloader import DataLoader

from linkboard.models import Updoot, User


def create_user_loader(db: AsyncSession, lock: asyncio.Lock) -> DataLoader[int, Optional[User]]:
    async def load_users(keys: List[int]) -> List[Optional[User]]:
        async with lock:
            result = await db.execute(select(User).where(User.id.in_(keys)))
        users = {user.id: user for user in result.scalars().all()}
        return [users.get(key) for key in keys]

    return DataLoader(load_fn=load_users)


def create_updoot_loader(
    db: AsyncSession, lock: asyncio.Lock
) -> DataLoader[Tuple[int, int], Optional[Updoot]]:
    """Keys are ``(post_id, user_id)`` pairs."""

    async def load_updoots(keys: List[Tuple[int, int]]) -> List[Optional[Updoot]]:
        async with lock:
            result = await db.execute(
                select(Updoot).where(
                    Updoot.post_id.in_(sorted({post_id for post_id, _ in keys})),
                    Updoot.user_id.in_(sorted({user_id for _, user_id in keys})),
                )
            )
        updoots = {(updoot.post_id, updoot.user_id): updoot for updoot in result.scalars().all()}
        return [updoots.get(key) for key in keys]

    return DataLoader(load_fn=load_updoots)
