from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from linkboard.db import Base


def utcnow_ms() -> datetime:
    """Naive UTC now, truncated to milliseconds so feed cursors round-trip exactly."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # argon2 hash
    created_at = Column(DateTime, default=utcnow_ms, nullable=False)
    updated_at = Column(DateTime, default=utcnow_ms, onupdate=utcnow_ms, nullable=False)

    # Relationships
    posts = relationship("Post", back_populates="creator")
    updoots = relationship("Updoot", back_populates="user")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    text = Column(Text, nullable=False)
    points = Column(Integer, default=0, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow_ms, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow_ms, onupdate=utcnow_ms, nullable=False)

    # Relationships
    creator = relationship("User", back_populates="posts")
    updoots = relationship("Updoot", back_populates="post", passive_deletes=True)


class Updoot(Base):
    """A single user's vote on a post; value is +1 or -1."""

    __tablename__ = "updoots"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    value = Column(Integer, nullable=False)

    # Relationships
    user = relationship("User", back_populates="updoots")
    post = relationship("Post", back_populates="updoots")
