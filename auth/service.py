"""
auth/service.py -- Register / login / logout orchestration.

AuthService composes the credential store, password hasher, token service,
and cookie policy. It knows nothing about HTTP: it returns domain objects
(User, Session, SessionCookie) and raises auth.errors exceptions, and the
route layer turns those into responses.

Anti-enumeration rules:
  login()    -- an unknown username and a wrong password raise the same
                InvalidCredentialsError, and both paths run exactly one bcrypt
                verification (against the hasher's dummy hash when the user is
                missing), so neither the message nor the latency tells them
                apart.
  register() -- a duplicate username and any other store failure both surface
                as RegistrationError. The precise cause is logged here and
                nowhere else.

logout() is stateless. It only tells the client to drop the cookie; a token
copied before logout stays valid until its exp claim passes.
"""

from __future__ import annotations

import logging

from auth.cookies import CookiePolicy, SessionCookie
from auth.errors import InvalidCredentialsError, RegistrationError, StoreError, UsernameTakenError, ValidationError
from auth.models import Session, User
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenService

logger = logging.getLogger("authgate.auth")

MAX_USERNAME_LENGTH = 255


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        cookies: CookiePolicy,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.cookies = cookies

    def register(self, username: str | None, password: str | None) -> User:
        """Create an account. Raises ValidationError, RegistrationError, or PasswordHashError."""
        _validate_registration(username, password)

        # PasswordHashError propagates: never store an empty or plaintext hash.
        password_hash = self.hasher.hash(password)

        try:
            user = self.store.create_user(username, password_hash)
        except UsernameTakenError:
            logger.info("Registration rejected: username already exists")
            raise RegistrationError("could not create user") from None
        except StoreError as exc:
            logger.error("Registration failed in credential store: %s", exc)
            raise RegistrationError("could not create user") from exc

        logger.info("Registered user id=%s", user.id)
        return user

    def login(self, username: str, password: str) -> Session:
        """Authenticate and open a session. Raises InvalidCredentialsError on any credential mismatch."""
        user = self.store.get_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return early before running bcrypt.
            self.hasher.verify(password, self.hasher.dummy_hash)
            raise InvalidCredentialsError("unknown username")
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError("password mismatch")

        token = self.tokens.issue(user.id)
        logger.info("Login succeeded for user id=%s", user.id)
        return Session(user=user, token=token, cookie=self.cookies.issue(token))

    def logout(self) -> SessionCookie:
        """Return the cookie instruction that makes the client forget its session."""
        return self.cookies.expire()


def _validate_registration(username: str | None, password: str | None) -> None:
    if not username or not username.strip():
        raise ValidationError("username is required")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"username must be at most {MAX_USERNAME_LENGTH} characters")
    if not password:
        raise ValidationError("password is required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
