"""
Tests for the post feed, post mutations and voting.
"""
from datetime import datetime, timedelta

import pytest

from linkboard.models import Post
from linkboard.utils.pagination import encode_cursor

pytestmark = pytest.mark.anyio

POSTS = """
query Posts($limit: Int!, $cursor: String) {
  posts(limit: $limit, cursor: $cursor) { id title createdAt cursor points }
}
"""

POST = "query Post($id: Int!) { post(id: $id) { id title text points creatorId } }"

CREATE_POST = """
mutation Create($input: PostInput!) {
  createPost(input: $input) { id title text points creatorId textSnippet creator { id username email } }
}
"""

UPDATE_POST = "mutation Update($id: Int!, $title: String) { updatePost(id: $id, title: $title) { id title } }"
DELETE_POST = "mutation Delete($id: Int!) { deletePost(id: $id) }"
VOTE = "mutation Vote($postId: Int!, $value: Int!) { vote(postId: $postId, value: $value) }"
VOTE_STATE = "query Post($id: Int!) { post(id: $id) { points voteStatus } }"

LOGIN = """
mutation Login($usernameOrEmail: String!, $password: String!) {
  login(usernameOrEmail: $usernameOrEmail, password: $password) { user { id } }
}
"""

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


async def seed_posts(db_session, creator, count, start=BASE_TIME, step=timedelta(minutes=1)):
    """Insert posts with strictly increasing creation times; returns them oldest first."""
    posts = []
    for i in range(count):
        post = Post(
            title=f"post {i}",
            text=f"text of post {i}",
            creator_id=creator.id,
            created_at=start + step * i,
        )
        db_session.add(post)
        posts.append(post)
    await db_session.commit()
    return posts


async def login_as(gql, username, password):
    body = await gql(LOGIN, usernameOrEmail=username, password=password)
    return body["data"]["login"]["user"]["id"]


@pytest.mark.integration
class TestFeed:
    """Test cursor pagination of the feed."""

    async def test_limit_is_capped(self, gql, db_session, alice):
        await seed_posts(db_session, alice, 60)

        body = await gql(POSTS, limit=100)
        assert len(body["data"]["posts"]) == 50

    async def test_posts_are_newest_first(self, gql, db_session, alice):
        await seed_posts(db_session, alice, 10)

        posts = (await gql(POSTS, limit=10))["data"]["posts"]
        created = [post["createdAt"] for post in posts]
        assert created == sorted(created, reverse=True)
        assert len(set(created)) == len(created)

    async def test_cursor_example(self, gql, db_session, alice):
        t1, t2, t3 = await seed_posts(db_session, alice, 3)

        first = (await gql(POSTS, limit=2))["data"]["posts"]
        assert [post["id"] for post in first] == [t3.id, t2.id]

        second = (await gql(POSTS, limit=2, cursor=encode_cursor(t2.created_at)))["data"]["posts"]
        assert [post["id"] for post in second] == [t1.id]

    async def test_last_item_cursor_returns_strictly_older(self, gql, db_session, alice):
        await seed_posts(db_session, alice, 7)

        seen = []
        cursor = None
        while True:
            page = (await gql(POSTS, limit=3, cursor=cursor))["data"]["posts"]
            if not page:
                break
            if seen:
                assert page[0]["createdAt"] < seen[-1]["createdAt"]
            seen.extend(page)
            cursor = page[-1]["cursor"]

        assert len(seen) == 7
        assert len({post["id"] for post in seen}) == 7

    async def test_millisecond_cursor_round_trips(self, gql, db_session, alice):
        posts = await seed_posts(
            db_session, alice, 3,
            start=datetime(2024, 1, 1, 12, 0, 0, 1000),
            step=timedelta(milliseconds=1),
        )

        page = (await gql(POSTS, limit=1, cursor=encode_cursor(posts[1].created_at)))["data"]["posts"]
        assert [post["id"] for post in page] == [posts[0].id]

    async def test_exhausted_feed_is_empty(self, gql, db_session, alice):
        posts = await seed_posts(db_session, alice, 2)

        body = await gql(POSTS, limit=10, cursor=encode_cursor(posts[0].created_at))
        assert body["data"]["posts"] == []
        assert "errors" not in body

    async def test_empty_database(self, gql):
        body = await gql(POSTS, limit=10)
        assert body["data"]["posts"] == []

    async def test_non_positive_limit(self, gql, db_session, alice):
        await seed_posts(db_session, alice, 3)

        body = await gql(POSTS, limit=-1)
        assert body["data"]["posts"] == []

    async def test_malformed_cursor_is_an_error(self, gql, db_session, alice):
        await seed_posts(db_session, alice, 1)

        body = await gql(POSTS, limit=10, cursor="yesterday")
        assert body["data"] is None
        assert "Invalid cursor" in body["errors"][0]["message"]

    @pytest.mark.parametrize("cursor", ["99999999999999999999", "253402300800000"])
    async def test_out_of_range_cursor_is_an_error(self, gql, db_session, alice, cursor):
        await seed_posts(db_session, alice, 1)

        body = await gql(POSTS, limit=5, cursor=cursor)
        assert body["data"] is None
        assert body["errors"][0]["message"] == f"Invalid cursor: {cursor!r}"

    async def test_feed_with_creators_and_vote_status(self, gql, db_session, alice, bob):
        alice_posts = await seed_posts(db_session, alice, 3)
        bob_posts = await seed_posts(
            db_session, bob, 3, start=BASE_TIME + timedelta(seconds=30)
        )
        await login_as(gql, "bob", "bobpw")
        await gql(VOTE, postId=alice_posts[0].id, value=1)
        await gql(VOTE, postId=bob_posts[1].id, value=-1)

        body = await gql(
            """
            query Feed($limit: Int!) {
              posts(limit: $limit) { id creatorId voteStatus creator { id username email } }
            }
            """,
            limit=10,
        )
        assert "errors" not in body
        posts = body["data"]["posts"]
        assert len(posts) == 6

        for post in posts:
            creator = post["creator"]
            assert creator["id"] == post["creatorId"]
            if creator["id"] == bob.id:
                assert creator == {"id": bob.id, "username": "bob", "email": "bob@test.com"}
            else:
                assert creator == {"id": alice.id, "username": "alice", "email": ""}

        statuses = {post["id"]: post["voteStatus"] for post in posts}
        assert statuses[alice_posts[0].id] == 1
        assert statuses[bob_posts[1].id] == -1
        assert [statuses[post.id] for post in alice_posts[1:] + bob_posts[::2]] == [None] * 4


@pytest.mark.integration
class TestPostCrud:
    """Test post queries and mutations."""

    async def test_get_post(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)

        body = await gql(POST, id=post.id)
        assert body["data"]["post"] == {
            "id": post.id,
            "title": "post 0",
            "text": "text of post 0",
            "points": 0,
            "creatorId": alice.id,
        }

    async def test_get_missing_post(self, gql):
        body = await gql(POST, id=12345)
        assert body["data"]["post"] is None

    async def test_create_post_requires_session(self, gql):
        body = await gql(CREATE_POST, input={"title": "hello", "text": "world"})
        assert body["data"] is None
        assert body["errors"][0]["message"] == "not authenticated"

    async def test_create_post(self, gql, alice):
        await login_as(gql, "alice", "rightpw")
        text = "x" * 80

        body = await gql(CREATE_POST, input={"title": "hello", "text": text})
        post = body["data"]["createPost"]
        assert post["id"] is not None
        assert post["title"] == "hello"
        assert post["points"] == 0
        assert post["creatorId"] == alice.id
        assert post["textSnippet"] == "x" * 50
        assert post["creator"] == {"id": alice.id, "username": "alice", "email": "alice@test.com"}

    async def test_creator_email_hidden_from_others(self, gql, db_session, alice, bob):
        (post,) = await seed_posts(db_session, alice, 1)
        await login_as(gql, "bob", "bobpw")

        body = await gql(
            "query Post($id: Int!) { post(id: $id) { creator { username email } } }", id=post.id
        )
        assert body["data"]["post"]["creator"] == {"username": "alice", "email": ""}

    async def test_update_post_returns_previous_snapshot(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)

        body = await gql(UPDATE_POST, id=post.id, title="renamed")
        assert body["data"]["updatePost"] == {"id": post.id, "title": "post 0"}

        fetched = await gql(POST, id=post.id)
        assert fetched["data"]["post"]["title"] == "renamed"

    async def test_update_post_without_title(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)

        body = await gql(UPDATE_POST, id=post.id)
        assert body["data"]["updatePost"]["title"] == "post 0"

    async def test_update_missing_post(self, gql):
        body = await gql(UPDATE_POST, id=12345, title="renamed")
        assert body["data"]["updatePost"] is None

    async def test_delete_post(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)

        body = await gql(DELETE_POST, id=post.id)
        assert body["data"]["deletePost"] is True

        fetched = await gql(POST, id=post.id)
        assert fetched["data"]["post"] is None

    async def test_delete_missing_post_still_true(self, gql):
        body = await gql(DELETE_POST, id=12345)
        assert body["data"]["deletePost"] is True


@pytest.mark.integration
class TestVote:
    """Test voting."""

    async def test_vote_requires_session(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)

        body = await gql(VOTE, postId=post.id, value=1)
        assert body["errors"][0]["message"] == "not authenticated"

    async def test_upvote_then_switch_then_repeat(self, gql, db_session, alice, bob):
        (post,) = await seed_posts(db_session, alice, 1)
        await login_as(gql, "bob", "bobpw")

        assert (await gql(VOTE, postId=post.id, value=1))["data"]["vote"] is True
        state = (await gql(VOTE_STATE, id=post.id))["data"]["post"]
        assert state == {"points": 1, "voteStatus": 1}

        await gql(VOTE, postId=post.id, value=-1)
        state = (await gql(VOTE_STATE, id=post.id))["data"]["post"]
        assert state == {"points": -1, "voteStatus": -1}

        await gql(VOTE, postId=post.id, value=-1)
        state = (await gql(VOTE_STATE, id=post.id))["data"]["post"]
        assert state == {"points": -1, "voteStatus": -1}

    async def test_any_other_value_is_an_upvote(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)
        await login_as(gql, "alice", "rightpw")

        await gql(VOTE, postId=post.id, value=5)
        state = (await gql(VOTE_STATE, id=post.id))["data"]["post"]
        assert state == {"points": 1, "voteStatus": 1}

    async def test_votes_from_two_users_add_up(self, gql, db_session, alice, bob):
        (post,) = await seed_posts(db_session, alice, 1)

        await login_as(gql, "alice", "rightpw")
        await gql(VOTE, postId=post.id, value=1)
        await login_as(gql, "bob", "bobpw")
        await gql(VOTE, postId=post.id, value=1)

        state = (await gql(VOTE_STATE, id=post.id))["data"]["post"]
        assert state == {"points": 2, "voteStatus": 1}

    async def test_vote_status_null_when_anonymous(self, gql, db_session, alice):
        (post,) = await seed_posts(db_session, alice, 1)

        state = (await gql(VOTE_STATE, id=post.id))["data"]["post"]
        assert state == {"points": 0, "voteStatus": None}

    async def test_vote_on_missing_post(self, gql, alice):
        await login_as(gql, "alice", "rightpw")

        body = await gql(VOTE, postId=12345, value=1)
        assert body["data"]["vote"] is False
