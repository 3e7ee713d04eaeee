"""
Cursor helpers for the post feed.

A cursor is the decimal string of a post's ``created_at`` in epoch
milliseconds. Pages are fetched strictly before it, so rows inserted while a
client is paging never shift or duplicate what it sees.
"""
from datetime import datetime, timedelta
from typing import Optional

EPOCH = datetime(1970, 1, 1)
ONE_MILLISECOND = timedelta(milliseconds=1)


def encode_cursor(created_at: datetime) -> str:
    """Encode a naive UTC timestamp as an opaque cursor string."""
    return str((created_at - EPOCH) // ONE_MILLISECOND)


def decode_cursor(cursor: str) -> datetime:
    """
    Decode a cursor produced by ``encode_cursor``.

    Raises:
        ValueError: If the cursor is not an integer millisecond count
    """
    try:
        return EPOCH + timedelta(milliseconds=int(cursor))
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Invalid cursor: {cursor!r}")


def cap_page_size(limit: Optional[int], max_page_size: int) -> int:
    """Clamp a requested page size into ``[0, max_page_size]``."""
    if limit is None:
        return max_page_size
    return max(0, min(limit, max_page_size))
