"""
auth/errors.py -- Internal error taxonomy for the authentication core.

These exceptions keep the precise failure kind for logging. They carry no
HTTP status and no client-facing wording: api/errors.py is the single place
that maps them to responses, and it deliberately collapses several kinds
into the same generic body.

    AuthGateError
    +-- ValidationError            malformed or missing input (user-correctable)
    +-- AuthenticationError        invalid / expired / malformed session token
    |   +-- InvalidCredentialsError    unknown username or wrong password
    +-- RegistrationError          account could not be created (any cause)
    +-- PasswordHashError          bcrypt could not produce a hash
    +-- StoreError                 persistence layer failure
        +-- UsernameTakenError         UNIQUE(username) violated
        +-- StoreUnavailableError      connection / query failure
"""

from __future__ import annotations


class AuthGateError(Exception):
    """Base class for every error raised by auth/."""


class ValidationError(AuthGateError):
    pass


class AuthenticationError(AuthGateError):
    pass


class InvalidCredentialsError(AuthenticationError):
    pass


class RegistrationError(AuthGateError):
    pass


class PasswordHashError(AuthGateError):
    pass


class StoreError(AuthGateError):
    pass


class UsernameTakenError(StoreError):
    def __init__(self, username: str) -> None:
        super().__init__(f"username already exists: {username!r}")
        self.username = username


class StoreUnavailableError(StoreError):
    pass
