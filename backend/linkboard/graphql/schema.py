"""
GraphQL schema: queries and mutations.
"""
import logging
from typing import Any, Awaitable, Callable, List, Optional

import strawberry
from strawberry.permission import BasePermission
from strawberry.types import Info

from linkboard.exceptions import AppException
from linkboard.graphql.context import Context
from linkboard.graphql.types import (
    FieldError,
    Post,
    PostInput,
    User,
    UsernamePasswordInput,
    UserResponse,
)
from linkboard.services import auth_service, post_service

logger = logging.getLogger(__name__)


class IsAuthenticated(BasePermission):
    message = "not authenticated"

    async def has_permission(self, source: Any, info: Info, **kwargs: Any) -> bool:
        return await info.context.session.get_user_id() is not None


async def user_response(ctx: Context, fn: Callable[..., Awaitable[Any]], *args: Any) -> UserResponse:
    """Run an auth service call, folding domain errors into the response payload."""
    try:
        user = await ctx.call(fn, *args)
    except AppException as exc:
        logger.info(f"{fn.__name__} rejected: {exc.error_code} on {exc.field}")
        return UserResponse(errors=[FieldError.from_exception(exc)])
    return UserResponse(user=User.from_model(user))


@strawberry.type
class Query:
    """GraphQL queries."""

    @strawberry.field
    async def me(self, info: Info) -> Optional[User]:
        """Get current authenticated user."""
        ctx: Context = info.context
        user = await ctx.call(auth_service.me, ctx.db, ctx.session)
        return User.from_model(user) if user else None

    @strawberry.field
    async def posts(self, info: Info, limit: int, cursor: Optional[str] = None) -> List[Post]:
        """
        Newest posts first.

        Args:
            limit: Page size, capped at 50
            cursor: ``cursor`` of the last post already seen
        """
        ctx: Context = info.context
        posts = await ctx.call(post_service.list_posts, ctx.db, limit, cursor)
        return [Post.from_model(post) for post in posts]

    @strawberry.field
    async def post(self, info: Info, id: int) -> Optional[Post]:
        ctx: Context = info.context
        post = await ctx.call(post_service.get_post, ctx.db, id)
        return Post.from_model(post) if post else None


@strawberry.type
class Mutation:
    """GraphQL mutations."""

    @strawberry.mutation
    async def register(self, info: Info, options: UsernamePasswordInput) -> UserResponse:
        ctx: Context = info.context
        return await user_response(
            ctx, auth_service.register,
            ctx.db, ctx.session, options.username, options.email, options.password,
        )

    @strawberry.mutation
    async def login(self, info: Info, username_or_email: str, password: str) -> UserResponse:
        ctx: Context = info.context
        return await user_response(
            ctx, auth_service.login, ctx.db, ctx.session, username_or_email, password,
        )

    @strawberry.mutation
    async def logout(self, info: Info) -> bool:
        ctx: Context = info.context
        return await auth_service.logout(ctx.session)

    @strawberry.mutation
    async def forgot_password(self, info: Info, email: str) -> bool:
        ctx: Context = info.context
        return await ctx.call(
            auth_service.forgot_password,
            ctx.db, ctx.cache, ctx.mailer, ctx.background_tasks, email,
        )

    @strawberry.mutation
    async def change_password(self, info: Info, token: str, new_password: str) -> UserResponse:
        ctx: Context = info.context
        return await user_response(
            ctx, auth_service.change_password,
            ctx.db, ctx.cache, ctx.session, token, new_password,
        )

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_post(self, info: Info, input: PostInput) -> Post:
        ctx: Context = info.context
        user_id = await ctx.session.get_user_id()
        post = await ctx.call(post_service.create_post, ctx.db, user_id, input.title, input.text)
        return Post.from_model(post)

    @strawberry.mutation
    async def update_post(self, info: Info, id: int, title: Optional[str] = None) -> Optional[Post]:
        """Returns the post as it was before this update, or null if it does not exist."""
        ctx: Context = info.context
        post = await ctx.call(post_service.update_post, ctx.db, id, title)
        return Post.from_model(post) if post else None

    @strawberry.mutation
    async def delete_post(self, info: Info, id: int) -> bool:
        """Always true, including when no post had this id."""
        ctx: Context = info.context
        return await ctx.call(post_service.delete_post, ctx.db, id)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def vote(self, info: Info, post_id: int, value: int) -> bool:
        ctx: Context = info.context
        user_id = await ctx.session.get_user_id()
        return await ctx.call(post_service.vote, ctx.db, user_id, post_id, value)


# Create GraphQL schema
schema = strawberry.Schema(query=Query, mutation=Mutation)
