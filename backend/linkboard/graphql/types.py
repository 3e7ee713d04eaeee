"""
GraphQL types.
"""
from datetime import datetime
from typing import List, Optional

import strawberry
from strawberry.types import Info

from linkboard import models
from linkboard.exceptions import AppException
from linkboard.utils.pagination import encode_cursor

SNIPPET_LENGTH = 50


@strawberry.type
class User:
    """User GraphQL type."""
    id: int
    username: str
    created_at: datetime
    updated_at: datetime
    stored_email: strawberry.Private[str]

    @strawberry.field
    async def email(self, info: Info) -> str:
        """The address is only shown to the account's owner."""
        if await info.context.session.get_user_id() == self.id:
            return self.stored_email
        return ""

    @classmethod
    def from_model(cls, user: models.User) -> "User":
        return cls(
            id=user.id,
            username=user.username,
            created_at=user.created_at,
            updated_at=user.updated_at,
            stored_email=user.email,
        )


@strawberry.type
class Post:
    """Post GraphQL type."""
    id: int
    title: str
    text: str
    points: int
    creator_id: int
    created_at: datetime
    updated_at: datetime

    @strawberry.field
    def text_snippet(self) -> str:
        return self.text[:SNIPPET_LENGTH]

    @strawberry.field
    def cursor(self) -> str:
        """Pass back as ``posts(cursor:)`` to fetch the posts older than this one."""
        return encode_cursor(self.created_at)

    @strawberry.field
    async def creator(self, info: Info) -> User:
        user = await info.context.user_loader.load(self.creator_id)
        return User.from_model(user)

    @strawberry.field
    async def vote_status(self, info: Info) -> Optional[int]:
        """The caller's vote on this post: 1, -1, or null."""
        user_id = await info.context.session.get_user_id()
        if user_id is None:
            return None
        updoot = await info.context.updoot_loader.load((self.id, user_id))
        return updoot.value if updoot else None

    @classmethod
    def from_model(cls, post: models.Post) -> "Post":
        return cls(
            id=post.id,
            title=post.title,
            text=post.text,
            points=post.points,
            creator_id=post.creator_id,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


@strawberry.type
class FieldError:
    field: str
    message: str

    @classmethod
    def from_exception(cls, exc: AppException) -> "FieldError":
        return cls(field=exc.field, message=exc.message)


@strawberry.type
class UserResponse:
    """Either ``user`` or ``errors`` is set, never both."""
    errors: Optional[List[FieldError]] = None
    user: Optional[User] = None


@strawberry.input
class UsernamePasswordInput:
    username: str
    email: str
    password: str


@strawberry.input
class PostInput:
    title: str
    text: str
