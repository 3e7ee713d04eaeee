"""
Post feed, post CRUD and voting.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linkboard.config import settings
from linkboard.models import Post, Updoot
from linkboard.utils.pagination import cap_page_size, decode_cursor

logger = logging.getLogger(__name__)


async def list_posts(db: AsyncSession, limit: int, cursor: Optional[str] = None) -> List[Post]:
    """
    Newest-first page of posts.

    Args:
        limit: Requested page size, capped at FEED_MAX_PAGE_SIZE
        cursor: Only posts created strictly before this cursor are returned

    Raises:
        ValueError: If the cursor cannot be decoded
    """
    real_limit = cap_page_size(limit, settings.FEED_MAX_PAGE_SIZE)
    if real_limit == 0:
        return []

    query = select(Post).order_by(Post.created_at.desc(), Post.id.desc()).limit(real_limit)
    if cursor:
        query = query.where(Post.created_at < decode_cursor(cursor))

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_post(db: AsyncSession, post_id: int) -> Optional[Post]:
    return await db.get(Post, post_id)


async def create_post(db: AsyncSession, creator_id: int, title: str, text: str) -> Post:
    post = Post(title=title, text=text, creator_id=creator_id)
    db.add(post)
    await db.commit()
    await db.refresh(post)
    logger.info("Post created", extra={"post_id": post.id, "user_id": creator_id})
    return post


async def update_post(db: AsyncSession, post_id: int, title: Optional[str] = None) -> Optional[Post]:
    """
    Change a post's title.

    Returns the post as it was *before* the update, or None if it does not
    exist. Clients wanting the new title must re-fetch the post.
    """
    post = await db.get(Post, post_id)
    if not post:
        return None

    if title is not None:
        await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(title=title)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    return post


async def delete_post(db: AsyncSession, post_id: int) -> bool:
    """Delete a post and its votes. Reports True whether or not a row matched."""
    await db.execute(delete(Updoot).where(Updoot.post_id == post_id))
    result = await db.execute(delete(Post).where(Post.id == post_id))
    await db.commit()
    if not result.rowcount:
        logger.info("Delete matched no post", extra={"post_id": post_id})
    return True


async def vote(db: AsyncSession, user_id: int, post_id: int, value: int) -> bool:
    """
    Record a user's vote on a post and keep ``Post.points`` in step.

    Any value other than -1 counts as an upvote. Re-casting the same vote is a
    no-op; flipping it moves points by twice the value.

    Returns:
        False if the post does not exist, True otherwise
    """
    real_value = -1 if value == -1 else 1

    post = await db.get(Post, post_id)
    if not post:
        return False

    updoot = await db.get(Updoot, {"user_id": user_id, "post_id": post_id})
    if updoot and updoot.value == real_value:
        return True

    if updoot:
        updoot.value = real_value
        delta = 2 * real_value
    else:
        db.add(Updoot(user_id=user_id, post_id=post_id, value=real_value))
        delta = real_value

    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(points=Post.points + delta)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    # Session copy is stale after the SQL-side increment.
    await db.refresh(post)
    logger.info("Vote recorded", extra={"post_id": post_id, "user_id": user_id})
    return True
