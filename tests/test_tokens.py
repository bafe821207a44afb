"""Unit tests for auth/tokens.py -- session token issuance and verification.

Covers:
- issued token verifies to the same user id
- validity window boundary: valid at +71h59m, invalid at +72h and +72h1m
- wrong secret and single-byte signature tampering are rejected
- algorithm pinning: HS512, "none", and a missing alg header are rejected
- missing / malformed sub and exp claims are rejected
- garbage strings are rejected without raising
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import timedelta

import pytest
from jose import jwt

from auth.models import VerifiedToken
from auth.tokens import SigningKey, TokenService

from conftest import TEST_SECRET, T0, FakeClock


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _hs256_token(header: dict, payload: dict, secret: str = TEST_SECRET) -> str:
    """Hand-build a correctly HS256-signed token with an arbitrary header."""
    signing_input = f"{_b64(json.dumps(header).encode())}.{_b64(json.dumps(payload).encode())}"
    sig = hmac.new(secret.encode(), signing_input.encode(), hashlib.sha256).digest()
    return f"{signing_input}.{_b64(sig)}"


def _valid_claims(user_id: int = 7) -> dict:
    exp = T0 + timedelta(hours=72)
    return {"sub": str(user_id), "user_id": user_id, "iat": int(T0.timestamp()), "exp": int(exp.timestamp())}


# ---------------------------------------------------------------------------
# Happy path and expiry window
# ---------------------------------------------------------------------------


def test_issue_then_verify_returns_subject(tokens: TokenService) -> None:
    result = tokens.verify(tokens.issue(42))
    assert result == VerifiedToken(valid=True, user_id=42)


def test_token_claims_carry_subject_and_72h_expiry(tokens: TokenService) -> None:
    claims = jwt.get_unverified_claims(tokens.issue(5))
    assert claims["sub"] == "5"
    assert claims["user_id"] == 5
    assert claims["exp"] - claims["iat"] == 72 * 3600


@pytest.mark.parametrize(
    "elapsed, valid",
    [
        (timedelta(0), True),
        (timedelta(hours=71, minutes=59), True),
        (timedelta(hours=71, minutes=59, seconds=59), True),
        (timedelta(hours=72), False),
        (timedelta(hours=72, minutes=1), False),
        (timedelta(days=30), False),
    ],
)
def test_validity_window_boundary(tokens: TokenService, clock: FakeClock, elapsed: timedelta, valid: bool) -> None:
    token = tokens.issue(1)
    clock.advance(seconds=elapsed.total_seconds())
    assert tokens.verify(token).valid is valid


def test_rejected_result_has_no_user_id(tokens: TokenService, clock: FakeClock) -> None:
    token = tokens.issue(1)
    clock.advance(hours=73)
    assert tokens.verify(token) == VerifiedToken(valid=False, user_id=None)


# ---------------------------------------------------------------------------
# Signature integrity
# ---------------------------------------------------------------------------


def test_token_from_other_secret_is_rejected(tokens: TokenService, clock: FakeClock) -> None:
    other = TokenService(SigningKey(secret="another-secret-0123456789abcdef0123456789"), clock=clock)
    assert tokens.verify(other.issue(1)).valid is False


def test_single_byte_signature_change_is_rejected(tokens: TokenService) -> None:
    token = tokens.issue(1)
    head, body, sig = token.split(".")
    raw = bytearray(base64.urlsafe_b64decode(sig + "=" * (-len(sig) % 4)))
    raw[len(raw) // 2] ^= 0x01
    tampered = f"{head}.{body}.{_b64(bytes(raw))}"
    assert tampered != token
    assert tokens.verify(tampered).valid is False


def test_modified_payload_is_rejected(tokens: TokenService) -> None:
    head, _body, sig = tokens.issue(1).split(".")
    forged_body = _b64(json.dumps(_valid_claims(user_id=999)).encode())
    assert tokens.verify(f"{head}.{forged_body}.{sig}").valid is False


# ---------------------------------------------------------------------------
# Algorithm pinning
# ---------------------------------------------------------------------------


def test_other_hmac_algorithm_is_rejected(tokens: TokenService) -> None:
    token = jwt.encode(_valid_claims(), TEST_SECRET, algorithm="HS512")
    assert tokens.verify(token).valid is False


def test_alg_none_is_rejected(tokens: TokenService) -> None:
    header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    body = _b64(json.dumps(_valid_claims()).encode())
    assert tokens.verify(f"{header}.{body}.").valid is False


def test_missing_alg_header_is_rejected(tokens: TokenService) -> None:
    token = _hs256_token({"typ": "JWT"}, _valid_claims())
    assert tokens.verify(token).valid is False


def test_hand_built_hs256_token_is_accepted(tokens: TokenService) -> None:
    """Sanity check for the helper used by the rejection tests above."""
    token = _hs256_token({"alg": "HS256", "typ": "JWT"}, _valid_claims(user_id=3))
    assert tokens.verify(token) == VerifiedToken(valid=True, user_id=3)


# ---------------------------------------------------------------------------
# Claims and garbage input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "mutate",
    [
        lambda c: c.pop("sub"),
        lambda c: c.pop("exp"),
        lambda c: c.update(sub="not-a-number"),
        lambda c: c.update(exp="tomorrow"),
        lambda c: c.update(exp=True),
    ],
    ids=["no-sub", "no-exp", "non-numeric-sub", "string-exp", "bool-exp"],
)
def test_missing_or_malformed_claims_are_rejected(tokens: TokenService, mutate) -> None:
    claims = _valid_claims()
    mutate(claims)
    token = _hs256_token({"alg": "HS256", "typ": "JWT"}, claims)
    assert tokens.verify(token).valid is False


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "....", "Bearer xyz"])
def test_garbage_is_rejected_without_raising(tokens: TokenService, garbage: str) -> None:
    assert tokens.verify(garbage).valid is False
