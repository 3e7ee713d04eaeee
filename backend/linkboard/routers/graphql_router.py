"""
GraphQL router.
"""
from strawberry.fastapi import GraphQLRouter

from linkboard.config import settings
from linkboard.graphql.context import get_context
from linkboard.graphql.schema import schema

# Served at /graphql; the in-browser IDE is only served outside production
router = GraphQLRouter(
    schema,
    path="/graphql",
    context_getter=get_context,
    graphql_ide=None if settings.is_production else "graphiql",
)
