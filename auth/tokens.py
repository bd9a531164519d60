"""
auth/tokens.py -- Session token issue/verify and bearer extraction.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only the subject (user id), the
       issued-at time and the expiry. Lifetime is fixed by configuration
       (300 seconds) and there is no refresh or revocation: a token dies when
       the clock passes its exp claim. No leeway is granted.

  Signing key: TokenService receives it from core.config.Settings when the
       application starts (see api/main.py lifespan). The Settings validator
       refuses to build without a key in production, so a missing key aborts
       startup instead of failing on the first request.

  Bearer extraction: only a header that literally starts with "Bearer "
       carries a token. Anything else is "no token", never an error, so the
       login flow can fall through to credential checks.

Layer rule: no imports from api/, graph/, or posts/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import Settings
from core.errors import InvalidTokenError

logger = logging.getLogger("socialgraph.auth")

_ALGORITHM = "HS256"
_BEARER_PREFIX = "Bearer "

DEFAULT_EXPIRE_SECONDS = 300


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an Authorization header value, or None.

    The prefix check is case-sensitive with exactly one space: "bearer x" and
    "Bearer  x" are not the same thing as "Bearer x".
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    return authorization[len(_BEARER_PREFIX) :] or None


class TokenService:
    """Mints and validates signed, time-limited bearer tokens.

    Usage:
        tokens = TokenService.from_settings(get_settings())
        token = tokens.issue(user.id)
        claims = tokens.verify(token)        # raises InvalidTokenError
        tokens.seconds_remaining(claims.expires_at)

    clock is injectable so tests can mint tokens that are already expired.
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing key.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(settings.secret_key, expire_seconds=settings.token_expire_seconds)

    def _now(self) -> int:
        return int(self._clock())

    def issue(self, subject_id: str) -> str:
        issued_at = self._now()
        payload = {
            "sub": subject_id,
            "iat": issued_at,
            "exp": issued_at + self.expire_seconds,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a token.

        Raises InvalidTokenError when the signature does not match, the token
        is structurally malformed, the subject is missing, or exp is not in
        the future.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidTokenError("Token inválido o expirado") from exc

        subject = payload.get("sub")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject or not isinstance(expires_at, int):
            raise InvalidTokenError("Token inválido o expirado")
        # Expiry is checked here rather than by jose so the injected clock
        # decides, and so a token expiring this very second is rejected.
        if expires_at <= self._now():
            raise InvalidTokenError("Token inválido o expirado")
        issued_at = payload.get("iat")
        return TokenClaims(
            subject_id=subject,
            issued_at=issued_at if isinstance(issued_at, int) else expires_at - self.expire_seconds,
            expires_at=expires_at,
        )

    def seconds_remaining(self, expires_at: int) -> int:
        """Seconds until expires_at, never negative."""
        return max(0, expires_at - self._now())
