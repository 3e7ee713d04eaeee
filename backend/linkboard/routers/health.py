import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linkboard.db import get_db
from linkboard.utils.cache import CacheManager, get_cache

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db), cache: CacheManager = Depends(get_cache)):
    """Report whether the database and Redis answer."""
    try:
        await db.execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database_ok = False

    cache_ok = await cache.ping()

    return {
        "status": "ok" if database_ok and cache_ok else "degraded",
        "database": database_ok,
        "cache": cache_ok,
    }
