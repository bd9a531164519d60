"""
graph/service.py -- Follow graph rules.

follow(actor, target):
  id addressing:     self check first (before any lookup), then resolve
  handle addressing: resolve first (the id is unknown until then), then self check
  -> FOLLOW_SELF (400)  TARGET_NOT_FOUND (404)  ALREADY_FOLLOWING (409)
  -> FOLLOW_CREATED

unfollow(actor, target):
  -> TARGET_NOT_FOUND (409)  NOT_FOLLOWING (409)
  -> FOLLOW_DELETED
A missing target on unfollow is a 409, not a 404: "the edge cannot exist" is
part of the follow-state check, not a resource lookup.

The existence check and the write are separate statements. A concurrent
duplicate insert surfaces as IntegrityError and becomes ALREADY_FOLLOWING; a
concurrent delete leaves zero rows to remove and becomes NOT_FOLLOWING.

Messages are human-readable and embed the target's username and id; codes
are the stable contract.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore
from core.errors import ConflictError, NotFoundError, ValidationError
from graph.models import FollowCode, FollowResult, FollowTarget
from graph.store import FollowStore

logger = logging.getLogger("socialgraph.graph")


def _target_data(target: User) -> dict:
    return {"followingId": target.id, "username": target.username}


class FollowGraph:
    """Owns directed follow edges between identities.

    Usage:
        graph = FollowGraph(user_store, follow_store)
        graph.follow(alice.id, FollowTarget.by_handle("bob"))
        graph.is_following(alice.id, bob.id)   # True
        graph.unfollow(alice.id, FollowTarget.by_id(bob.id))
    """

    def __init__(self, users: UserStore, follows: FollowStore) -> None:
        self.users = users
        self.follows = follows

    def resolve(self, target: FollowTarget) -> User | None:
        if target.kind == "id":
            return self.users.get_by_id(target.value)
        return self.users.get_by_username(target.value)

    def is_following(self, follower_id: str, following_id: str) -> bool:
        return self.follows.exists(follower_id, following_id)

    def follow(self, actor_id: str, target: FollowTarget) -> FollowResult:
        if target.kind == "id" and target.value == actor_id:
            raise _self_follow()
        user = self.resolve(target)
        if user is None:
            raise NotFoundError("Usuario a seguir no existe", code=FollowCode.TARGET_NOT_FOUND.value)
        if user.id == actor_id:
            raise _self_follow()
        if self.is_following(actor_id, user.id):
            raise _already_following(user)

        try:
            edge = self.follows.create_edge(actor_id, user.id)
        except IntegrityError as exc:
            # Lost the race against a concurrent follow of the same pair,
            # or the actor's own account was deleted under a live token.
            if self.is_following(actor_id, user.id):
                raise _already_following(user) from exc
            if self.users.get_by_id(actor_id) is None:
                raise NotFoundError("Usuario no encontrado", code="USER_NOT_FOUND") from exc
            raise

        logger.info("User %s followed %s", actor_id, user.id)
        return FollowResult(
            code=FollowCode.FOLLOW_CREATED,
            message=f"Has seguido a {user.username} ({user.id}).",
            data={**_target_data(user), "createdAt": edge.created_at},
            edge=edge,
        )

    def unfollow(self, actor_id: str, target: FollowTarget) -> FollowResult:
        user = self.resolve(target)
        if user is None:
            raise ConflictError(
                "No se puede dejar de seguir: el usuario destino no existe.",
                code=FollowCode.TARGET_NOT_FOUND.value,
            )
        if not self.is_following(actor_id, user.id) or not self.follows.delete_edge(actor_id, user.id):
            raise ConflictError(
                f"No puedes dejar de seguir: no sigues a {user.username} ({user.id}).",
                code=FollowCode.NOT_FOLLOWING.value,
                data=_target_data(user),
            )

        logger.info("User %s unfollowed %s", actor_id, user.id)
        return FollowResult(
            code=FollowCode.FOLLOW_DELETED,
            message=f"Has dejado de seguir a {user.username} ({user.id}).",
            data={**_target_data(user), "deleted": True},
        )


def _self_follow() -> ValidationError:
    return ValidationError("No puedes seguirte a ti mismo", code=FollowCode.FOLLOW_SELF.value)


def _already_following(user: User) -> ConflictError:
    return ConflictError(
        f"Ya sigues a {user.username} ({user.id}).",
        code=FollowCode.ALREADY_FOLLOWING.value,
        data=_target_data(user),
    )
