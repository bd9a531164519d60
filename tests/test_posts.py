"""
tests/test_posts.py -- Unit tests for PostStore (posts/store.py).

Covers:
  - content must be 1..280 characters
  - unknown author is rejected
  - listing is newest first, with author and case-insensitive text filters
  - LIKE wildcards in the search term match literally
  - limit clamping
  - following feed only shows followed authors
"""

from __future__ import annotations

import pytest

from auth.identity import IdentityRegistry
from core.errors import NotFoundError, ValidationError
from graph.models import FollowTarget
from graph.service import FollowGraph
from posts.store import DEFAULT_LIMIT, MAX_LIMIT, PostStore, clamp_limit


@pytest.fixture
def alice_id(registry: IdentityRegistry) -> str:
    return registry.register("alice@example.com", "password1", "alice").id


@pytest.fixture
def bob_id(registry: IdentityRegistry) -> str:
    return registry.register("bob@example.com", "password1", "bob").id


class TestClampLimit:
    @pytest.mark.parametrize(
        "requested,expected",
        [(None, DEFAULT_LIMIT), (0, DEFAULT_LIMIT), (-5, 1), (1, 1), (50, 50), (1000, MAX_LIMIT)],
    )
    def test_clamp(self, requested: int | None, expected: int) -> None:
        assert clamp_limit(requested) == expected


class TestCreate:
    def test_create(self, post_store: PostStore, alice_id: str) -> None:
        post = post_store.create(alice_id, "hola mundo")
        assert post.id
        assert post.author_id == alice_id
        assert post.author_username == "alice"
        assert post.created_at

    def test_boundaries(self, post_store: PostStore, alice_id: str) -> None:
        assert post_store.create(alice_id, "x").content == "x"
        assert len(post_store.create(alice_id, "x" * 280).content) == 280

    @pytest.mark.parametrize("content", [None, "", "x" * 281])
    def test_invalid_content(self, post_store: PostStore, alice_id: str, content: str | None) -> None:
        with pytest.raises(ValidationError):
            post_store.create(alice_id, content)

    def test_unknown_author(self, post_store: PostStore) -> None:
        with pytest.raises(NotFoundError):
            post_store.create("missing", "hola")


class TestListing:
    def test_newest_first(self, post_store: PostStore, alice_id: str) -> None:
        for text in ("uno", "dos", "tres"):
            post_store.create(alice_id, text)
        assert [p.content for p in post_store.list_posts()] == ["tres", "dos", "uno"]

    def test_author_filter(self, post_store: PostStore, alice_id: str, bob_id: str) -> None:
        post_store.create(alice_id, "de alice")
        post_store.create(bob_id, "de bob")
        rows = post_store.list_posts(author_id=bob_id)
        assert [p.content for p in rows] == ["de bob"]
        assert rows[0].author_username == "bob"

    def test_text_filter_is_case_insensitive(self, post_store: PostStore, alice_id: str) -> None:
        post_store.create(alice_id, "Hola Mundo")
        post_store.create(alice_id, "adios")
        assert [p.content for p in post_store.list_posts(query="MUNDO")] == ["Hola Mundo"]

    def test_wildcards_match_literally(self, post_store: PostStore, alice_id: str) -> None:
        post_store.create(alice_id, "100% seguro")
        post_store.create(alice_id, "1000 cosas")
        assert [p.content for p in post_store.list_posts(query="0%")] == ["100% seguro"]
        assert post_store.list_posts(query="_") == []

    def test_limit(self, post_store: PostStore, alice_id: str) -> None:
        for i in range(12):
            post_store.create(alice_id, f"post {i}")
        assert len(post_store.list_posts()) == DEFAULT_LIMIT
        assert len(post_store.list_posts(limit=3)) == 3


class TestFollowingFeed:
    def test_feed_only_followed_authors(
        self, post_store: PostStore, graph: FollowGraph, registry: IdentityRegistry, alice_id: str, bob_id: str
    ) -> None:
        carol_id = registry.register("carol@example.com", "password1", "carol").id
        post_store.create(bob_id, "de bob")
        post_store.create(carol_id, "de carol")
        post_store.create(alice_id, "de alice")
        graph.follow(alice_id, FollowTarget.by_id(bob_id))

        assert [p.content for p in post_store.following_feed(alice_id)] == ["de bob"]
        assert post_store.following_feed(bob_id) == []
