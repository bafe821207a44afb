"""
auth/cookies.py -- Session cookie policy and the helper that writes it.

The service layer decides WHAT the client should hold (a fresh session cookie
on login, an expired one on logout) and returns a SessionCookie. The route
layer applies it with write_cookie(). Keeping the decision here and the
transport in the route means AuthService never touches a Response object.

Cookie attributes:
  httponly=True: JS cannot read the cookie (XSS mitigation).
  samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
  secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
  max_age: equals the token validity window so cookie and token expire together.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SessionCookie:
    name: str
    value: str = field(repr=False)
    max_age: int
    path: str = "/"
    httponly: bool = True
    secure: bool = False
    samesite: str = "lax"

    @property
    def expired(self) -> bool:
        return self.max_age <= 0


@dataclass(frozen=True)
class CookiePolicy:
    """Builds SessionCookie instances with consistent attributes."""

    name: str = "token"
    max_age: int = 72 * 3600
    path: str = "/"
    secure: bool = False

    def issue(self, token: str) -> SessionCookie:
        return SessionCookie(
            name=self.name,
            value=token,
            max_age=self.max_age,
            path=self.path,
            secure=self.secure,
        )

    def expire(self) -> SessionCookie:
        return SessionCookie(name=self.name, value="", max_age=0, path=self.path, secure=self.secure)


def write_cookie(response, cookie: SessionCookie) -> None:
    """Apply a SessionCookie to a FastAPI/Starlette response.

    Expired cookies go through delete_cookie(), which emits Max-Age=0 plus a
    past Expires date so every browser drops the cookie immediately.
    """
    if cookie.expired:
        response.delete_cookie(
            cookie.name,
            path=cookie.path,
            secure=cookie.secure,
            httponly=cookie.httponly,
            samesite=cookie.samesite,
        )
        return
    response.set_cookie(
        cookie.name,
        value=cookie.value,
        max_age=cookie.max_age,
        path=cookie.path,
        secure=cookie.secure,
        httponly=cookie.httponly,
        samesite=cookie.samesite,
    )
