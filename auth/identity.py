"""
auth/identity.py -- Identity registry: registration, login, username changes.

Validation order matters and is part of the contract:
  1. presence of every required field
  2. normalization (trim + lower-case email and username)
  3. username format, then password length
  4. email uniqueness, then username uniqueness
So a request colliding on both email and username reports the email.

The uniqueness checks and the insert are separate statements. Two concurrent
registrations can both pass step 4; the loser hits the UNIQUE constraint and
its IntegrityError is translated here into the same ConflictError the check
would have produced.

authenticate() returns one generic InvalidCredentialsError for "no such email"
and "wrong password", and always spends one bcrypt verification, so neither
the body nor the response time tells an attacker which accounts exist.

Layer rule: no imports from api/, graph/, or posts/.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.passwords import DEFAULT_ROUNDS, MAX_PASSWORD_BYTES, hash_password, verify_password
from auth.store import UserStore, violated_constraint
from core.errors import AppError, ConflictError, InvalidCredentialsError, NotFoundError, ValidationError

logger = logging.getLogger("socialgraph.auth")

USERNAME_PATTERN = re.compile(r"^[a-z0-9]{3,30}$")
MIN_PASSWORD_LENGTH = 8

_MSG_EMAIL_TAKEN = "email ya en uso"
_MSG_USERNAME_TAKEN = "username ya en uso"
_MSG_USERNAME_FORMAT = "username inválido (solo letras y números, 3..30)"


def normalize(value: object) -> str:
    """Trim and lower-case an email or username."""
    return str(value).strip().lower()


def is_valid_username(username: str | None) -> bool:
    return bool(username) and USERNAME_PATTERN.fullmatch(username) is not None


class IdentityRegistry:
    """Owns user records and their invariants.

    Usage:
        registry = IdentityRegistry(user_store)
        user = registry.register("a@x.com", "password1", "alice")
        user = registry.authenticate("A@X.com", "password1")
        registry.change_username(user.id, "alice2")
    """

    def __init__(self, store: UserStore, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds
        # Same cost as real digests, so an unknown email takes as long as a wrong password.
        self.dummy_hash = hash_password("socialgraph_timing_dummy", rounds=bcrypt_rounds)

    def register(self, email: str | None, password: str | None, username: str | None) -> User:
        if not email or not password or not username:
            raise ValidationError("email, password y username requeridos")
        email = normalize(email)
        username = normalize(username)
        if not email:
            raise ValidationError("email, password y username requeridos")

        if not is_valid_username(username):
            raise ValidationError(_MSG_USERNAME_FORMAT)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("password mínimo 8 caracteres")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError("password máximo 72 bytes")

        if self.store.email_exists(email):
            raise ConflictError(_MSG_EMAIL_TAKEN, code="email_in_use")
        if self.store.username_exists(username):
            raise ConflictError(_MSG_USERNAME_TAKEN, code="username_in_use")

        candidate = User(
            email=email,
            username=username,
            hashed_password=hash_password(password, rounds=self.bcrypt_rounds),
        )
        try:
            user = self.store.create_user(candidate)
        except IntegrityError as exc:
            translated = _translate_integrity_error(exc)
            if translated is None:
                raise
            raise translated from exc
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, email: str | None, password: str | None) -> User:
        if not email or not password:
            raise ValidationError("credenciales requeridas")
        user = self.store.get_by_email(normalize(email))
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt
            verify_password(password, self.dummy_hash)
            raise InvalidCredentialsError("credenciales inválidas")
        if not verify_password(password, user.hashed_password):
            raise InvalidCredentialsError("credenciales inválidas")
        return user

    def get(self, user_id: str) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError("Usuario no encontrado", code="USER_NOT_FOUND")
        return user

    def change_username(self, user_id: str, new_username: str | None) -> User:
        """Set a new username. Re-submitting the current one is a no-op."""
        if not new_username:
            raise ValidationError("username requerido")
        username = normalize(new_username)
        if not is_valid_username(username):
            raise ValidationError(_MSG_USERNAME_FORMAT)

        current = self.get(user_id)
        if current.username == username:
            return current

        try:
            updated = self.store.update_username(user_id, username)
        except IntegrityError as exc:
            translated = _translate_integrity_error(exc)
            if translated is None:
                raise
            raise translated from exc
        if updated is None:
            raise NotFoundError("Usuario no encontrado", code="USER_NOT_FOUND")
        logger.info("User %s changed username", user_id)
        return updated

    @staticmethod
    def needs_username(user: User) -> bool:
        """True when the account has no usable username yet."""
        return not is_valid_username(user.username)


def _translate_integrity_error(exc: IntegrityError) -> AppError | None:
    """Map a users-table constraint violation to the error a pre-check would raise.

    Returns None for anything unrecognised so the caller re-raises it as a 500.
    """
    column = violated_constraint(exc)
    if column == "email":
        return ConflictError(_MSG_EMAIL_TAKEN, code="email_in_use")
    if column == "username":
        return ConflictError(_MSG_USERNAME_TAKEN, code="username_in_use")
    if column == "username_format":
        return ValidationError("username no cumple formato")
    return None
