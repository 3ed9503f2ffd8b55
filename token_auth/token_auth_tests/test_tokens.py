"""Tests for bearer token issuance and validation."""
import base64
import json
import time
from datetime import timedelta

import jwt
import pytest

from token_auth.token_auth.auth_service.tokens import (
    Identity,
    InvalidTokenError,
    TokenIssuer,
    TokenValidator,
)

from .conftest import OTHER_SIGNING_KEY, SIGNING_KEY


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _segment(token: str, index: int) -> dict:
    part = token.split(".")[index]
    return json.loads(base64.urlsafe_b64decode(part + "=" * (-len(part) % 4)))


@pytest.fixture
def issuer():
    return TokenIssuer(SIGNING_KEY)


@pytest.fixture
def validator():
    return TokenValidator(SIGNING_KEY)


def test_issued_token_round_trips_subject(issuer, validator):
    token = issuer.issue("8f14e45f-user-id", "alice")

    identity = validator.validate(token)

    assert isinstance(identity, Identity)
    assert identity.user_id == "8f14e45f-user-id"
    assert identity.username == "alice"
    assert identity == Identity(user_id="8f14e45f-user-id", username="alice")


def test_token_is_three_part_hs256_jwt(issuer):
    token = issuer.issue("1", "alice")

    assert token.count(".") == 2
    assert _segment(token, 0) == {"alg": "HS256", "typ": "JWT"}
    payload = _segment(token, 1)
    assert payload["nameidentifier"] == "1"
    assert payload["name"] == "alice"
    assert "exp" in payload


def test_expiry_is_one_hour_after_issue():
    issued_at = 1_700_000_000
    issuer = TokenIssuer(SIGNING_KEY, clock=lambda: issued_at)

    payload = _segment(issuer.issue("1", "alice"), 1)

    assert payload["iat"] == issued_at
    assert payload["nbf"] == issued_at
    assert payload["exp"] == issued_at + 3600


def test_custom_lifetime_is_applied():
    issuer = TokenIssuer(SIGNING_KEY, lifetime=timedelta(minutes=5), clock=lambda: 1000)

    assert _segment(issuer.issue("1", "alice"), 1)["exp"] == 1300


def test_expired_token_rejected(validator):
    issuer = TokenIssuer(SIGNING_KEY, clock=lambda: time.time() - 61 * 60)
    token = issuer.issue("1", "alice")

    with pytest.raises(InvalidTokenError):
        validator.validate(token)


def test_token_expiring_now_rejected(validator):
    issuer = TokenIssuer(SIGNING_KEY, clock=lambda: time.time() - 3600)
    token = issuer.issue("1", "alice")

    with pytest.raises(InvalidTokenError):
        validator.validate(token)


def test_token_signed_with_other_key_rejected(validator):
    token = TokenIssuer(OTHER_SIGNING_KEY).issue("1", "alice")

    with pytest.raises(InvalidTokenError):
        validator.validate(token)


def test_tampered_payload_rejected(issuer, validator):
    header, _, signature = issuer.issue("1", "alice").split(".")
    forged = _b64({"nameidentifier": "2", "name": "mallory", "exp": int(time.time()) + 3600})

    with pytest.raises(InvalidTokenError):
        validator.validate(f"{header}.{forged}.{signature}")


def test_unsigned_token_rejected(validator):
    header = _b64({"alg": "none", "typ": "JWT"})
    payload = _b64({"nameidentifier": "1", "name": "alice", "exp": int(time.time()) + 3600})

    with pytest.raises(InvalidTokenError):
        validator.validate(f"{header}.{payload}.")


@pytest.mark.parametrize("token", [
    "",
    "not-a-token",
    "only.two",
    "a.b.c.d",
    "###.$$$.%%%",
])
def test_malformed_token_rejected(validator, token):
    with pytest.raises(InvalidTokenError):
        validator.validate(token)


def test_token_missing_subject_claims_rejected(validator):
    token = jwt.encode({"exp": int(time.time()) + 3600}, SIGNING_KEY, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        validator.validate(token)


def test_token_without_expiry_rejected(validator):
    token = jwt.encode({"nameidentifier": "1", "name": "alice"}, SIGNING_KEY, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        validator.validate(token)


def test_any_issuer_and_audience_accepted(validator):
    token = jwt.encode(
        {
            "nameidentifier": "1",
            "name": "alice",
            "exp": int(time.time()) + 3600,
            "iss": "https://elsewhere.example",
            "aud": "some-other-api",
        },
        SIGNING_KEY,
        algorithm="HS256",
    )

    assert validator.validate(token).username == "alice"


def test_empty_signing_key_refused():
    with pytest.raises(ValueError):
        TokenIssuer("")
    with pytest.raises(ValueError):
        TokenValidator("")
