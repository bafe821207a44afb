"""
auth/tokens.py -- Session token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (user id), user_id, iat and
       exp. Verification returns a VerifiedToken and never raises -- the
       session gate turns an invalid result into a 401.

  Algorithm pinning: the unverified header's "alg" must equal the configured
       algorithm before the signature is even checked, and jwt.decode() is
       called with algorithms=[that algorithm]. A token claiming "none",
       "RS256", or no alg at all is rejected (algorithm-confusion defence).

  Expiry: checked against an injectable clock instead of jose's wall clock so
       the 72h boundary is deterministic in tests. A token is valid while
       now < exp.

  Signing key: an explicit frozen SigningKey passed in at construction. There
       is no module-level secret -- tests build a TokenService with whatever
       secret they need.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import VerifiedToken
from core.config import Settings

logger = logging.getLogger("authgate.auth")

ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SigningKey:
    """Process-wide token signing configuration. Immutable after startup."""

    secret: str = field(repr=False)
    algorithm: str = ALGORITHM
    ttl: timedelta = timedelta(hours=72)

    @classmethod
    def from_settings(cls, settings: Settings) -> SigningKey:
        return cls(secret=settings.jwt_secret, ttl=timedelta(seconds=settings.token_ttl_seconds))


class TokenService:
    """Issues and verifies signed, time-limited session tokens."""

    def __init__(self, key: SigningKey, clock: Callable[[], datetime] = _utcnow) -> None:
        self._key = key
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._key.ttl

    def issue(self, user_id: int) -> str:
        """Encode a signed JWT for user_id that expires ttl from now."""
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self._key.ttl).timestamp()),
        }
        return jwt.encode(payload, self._key.secret, algorithm=self._key.algorithm)

    def verify(self, token: str) -> VerifiedToken:
        """Verify signature, algorithm, required claims, and expiry.

        Every failure mode yields the same VerifiedToken.rejected(); the
        reason is logged at DEBUG only.
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            logger.debug("token rejected: unreadable header")
            return VerifiedToken.rejected()
        if header.get("alg") != self._key.algorithm:
            logger.debug("token rejected: unexpected signing algorithm %r", header.get("alg"))
            return VerifiedToken.rejected()

        try:
            claims = jwt.decode(
                token,
                self._key.secret,
                algorithms=[self._key.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.debug("token rejected: %s", exc)
            return VerifiedToken.rejected()

        exp = claims.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            logger.debug("token rejected: missing or malformed exp")
            return VerifiedToken.rejected()
        if self._clock().timestamp() >= exp:
            logger.debug("token rejected: expired")
            return VerifiedToken.rejected()

        try:
            user_id = int(claims["sub"])
        except (KeyError, TypeError, ValueError):
            logger.debug("token rejected: missing or malformed sub")
            return VerifiedToken.rejected()

        return VerifiedToken(valid=True, user_id=user_id)
