"""
tests/test_follow_graph.py -- Unit tests for FollowGraph (graph/service.py)
and FollowStore (graph/store.py).

Covers:
  - follow by id and by handle produce the same edge and outcome
  - FOLLOW_SELF (400) is checked before the target is looked up
  - TARGET_NOT_FOUND is 404 on follow and 409 on unfollow
  - ALREADY_FOLLOWING / NOT_FOLLOWING carry the target in data
  - a duplicate insert that loses the race maps to ALREADY_FOLLOWING
  - a delete that finds no row maps to NOT_FOLLOWING
  - following with a session whose account is gone is USER_NOT_FOUND
  - edges are directed
"""

from __future__ import annotations

import pytest

from auth.identity import IdentityRegistry
from auth.models import User
from core.errors import ConflictError, NotFoundError, ValidationError
from graph.deletion import AccountDeleter
from graph.models import FollowCode, FollowTarget
from graph.service import FollowGraph
from graph.store import FollowStore


@pytest.fixture
def alice(registry: IdentityRegistry) -> User:
    return registry.register("alice@example.com", "password1", "alice")


@pytest.fixture
def bob(registry: IdentityRegistry) -> User:
    return registry.register("bob@example.com", "password1", "bob")


class TestFollow:
    def test_follow_by_id(self, graph: FollowGraph, alice: User, bob: User) -> None:
        result = graph.follow(alice.id, FollowTarget.by_id(bob.id))
        assert result.code is FollowCode.FOLLOW_CREATED
        assert result.data["followingId"] == bob.id
        assert result.data["username"] == "bob"
        assert result.data["createdAt"]
        assert bob.id in result.message and "bob" in result.message
        assert graph.is_following(alice.id, bob.id)

    def test_follow_by_handle_is_case_insensitive(self, graph: FollowGraph, alice: User, bob: User) -> None:
        result = graph.follow(alice.id, FollowTarget.by_handle("  BOB "))
        assert result.code is FollowCode.FOLLOW_CREATED
        assert result.data["followingId"] == bob.id

    def test_edges_are_directed(self, graph: FollowGraph, alice: User, bob: User) -> None:
        graph.follow(alice.id, FollowTarget.by_id(bob.id))
        assert graph.is_following(alice.id, bob.id)
        assert not graph.is_following(bob.id, alice.id)

    def test_self_follow_by_id(self, graph: FollowGraph, alice: User) -> None:
        with pytest.raises(ValidationError) as excinfo:
            graph.follow(alice.id, FollowTarget.by_id(alice.id))
        assert excinfo.value.code == "FOLLOW_SELF"
        assert excinfo.value.status_code == 400

    def test_self_follow_by_id_checked_before_lookup(self, graph: FollowGraph) -> None:
        """Even an id that matches no account is a self-follow when it is the actor's own."""
        with pytest.raises(ValidationError) as excinfo:
            graph.follow("ghost", FollowTarget.by_id("ghost"))
        assert excinfo.value.code == "FOLLOW_SELF"

    def test_self_follow_by_handle(self, graph: FollowGraph, alice: User) -> None:
        with pytest.raises(ValidationError) as excinfo:
            graph.follow(alice.id, FollowTarget.by_handle("Alice"))
        assert excinfo.value.code == "FOLLOW_SELF"

    def test_unknown_target(self, graph: FollowGraph, alice: User) -> None:
        with pytest.raises(NotFoundError) as excinfo:
            graph.follow(alice.id, FollowTarget.by_handle("nobody"))
        assert excinfo.value.code == "TARGET_NOT_FOUND"
        assert excinfo.value.status_code == 404

    def test_already_following_either_addressing(self, graph: FollowGraph, alice: User, bob: User) -> None:
        graph.follow(alice.id, FollowTarget.by_handle("bob"))
        with pytest.raises(ConflictError) as excinfo:
            graph.follow(alice.id, FollowTarget.by_id(bob.id))
        assert excinfo.value.code == "ALREADY_FOLLOWING"
        assert excinfo.value.data == {"followingId": bob.id, "username": "bob"}

    def test_duplicate_insert_race(self, graph: FollowGraph, alice: User, bob: User, monkeypatch) -> None:
        graph.follow(alice.id, FollowTarget.by_id(bob.id))
        # The pre-check misses the edge; the unique constraint still catches it.
        checks = iter([False, True])
        monkeypatch.setattr(graph.follows, "exists", lambda a, b: next(checks))
        with pytest.raises(ConflictError) as excinfo:
            graph.follow(alice.id, FollowTarget.by_id(bob.id))
        assert excinfo.value.code == "ALREADY_FOLLOWING"

    def test_deleted_actor_is_not_found(
        self, graph: FollowGraph, deleter: AccountDeleter, alice: User, bob: User
    ) -> None:
        """A session that outlives its account cannot create edges."""
        deleter.delete_account(alice.id)
        with pytest.raises(NotFoundError) as excinfo:
            graph.follow(alice.id, FollowTarget.by_id(bob.id))
        assert excinfo.value.code == "USER_NOT_FOUND"
        assert not graph.is_following(alice.id, bob.id)


class TestUnfollow:
    def test_unfollow(self, graph: FollowGraph, alice: User, bob: User) -> None:
        graph.follow(alice.id, FollowTarget.by_id(bob.id))
        result = graph.unfollow(alice.id, FollowTarget.by_handle("bob"))
        assert result.code is FollowCode.FOLLOW_DELETED
        assert result.data == {"followingId": bob.id, "username": "bob", "deleted": True}
        assert not graph.is_following(alice.id, bob.id)

    def test_not_following(self, graph: FollowGraph, alice: User, bob: User) -> None:
        with pytest.raises(ConflictError) as excinfo:
            graph.unfollow(alice.id, FollowTarget.by_id(bob.id))
        assert excinfo.value.code == "NOT_FOLLOWING"
        assert excinfo.value.data == {"followingId": bob.id, "username": "bob"}

    def test_unknown_target_is_conflict(self, graph: FollowGraph, alice: User) -> None:
        with pytest.raises(ConflictError) as excinfo:
            graph.unfollow(alice.id, FollowTarget.by_id("missing"))
        assert excinfo.value.code == "TARGET_NOT_FOUND"
        assert excinfo.value.status_code == 409

    def test_concurrent_delete_race(self, graph: FollowGraph, alice: User, bob: User, monkeypatch) -> None:
        monkeypatch.setattr(graph.follows, "exists", lambda a, b: True)
        with pytest.raises(ConflictError) as excinfo:
            graph.unfollow(alice.id, FollowTarget.by_id(bob.id))
        assert excinfo.value.code == "NOT_FOLLOWING"

    def test_follow_again_after_unfollow(self, graph: FollowGraph, alice: User, bob: User) -> None:
        graph.follow(alice.id, FollowTarget.by_id(bob.id))
        graph.unfollow(alice.id, FollowTarget.by_id(bob.id))
        result = graph.follow(alice.id, FollowTarget.by_id(bob.id))
        assert result.code is FollowCode.FOLLOW_CREATED


class TestFollowStore:
    def test_followers_and_following(
        self, follow_store: FollowStore, registry: IdentityRegistry, alice: User, bob: User
    ) -> None:
        carol = registry.register("carol@example.com", "password1", "carol")
        follow_store.create_edge(alice.id, bob.id)
        follow_store.create_edge(carol.id, bob.id)
        follow_store.create_edge(bob.id, alice.id)

        followers = {e.follower_id for e in follow_store.followers(bob.id)}
        following = {e.following_id for e in follow_store.following(bob.id)}
        assert followers == {alice.id, carol.id}
        assert following == {alice.id}

    def test_delete_missing_edge_returns_false(self, follow_store: FollowStore, alice: User, bob: User) -> None:
        assert follow_store.delete_edge(alice.id, bob.id) is False
