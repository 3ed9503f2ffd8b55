"""
Bearer token issuance and validation (HS256 JWT).

Tokens carry the user id in the ``nameidentifier`` claim and the username in
``name``, plus ``iat``/``nbf``/``exp``. Issuer and audience are never checked:
any ``iss``/``aud`` a token carries is accepted.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable
import logging
import time

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
NAME_IDENTIFIER_CLAIM = "nameidentifier"
NAME_CLAIM = "name"
DEFAULT_LIFETIME = timedelta(hours=1)


class InvalidTokenError(Exception):
    """Raised for every token rejection: malformed, bad signature or expired."""


@dataclass(frozen=True)
class Identity:
    """Subject decoded from a validated token."""

    user_id: str
    username: str


class TokenIssuer:
    def __init__(
        self,
        signing_key: str,
        lifetime: timedelta = DEFAULT_LIFETIME,
        clock: Callable[[], float] = time.time,
    ):
        if not signing_key:
            raise ValueError("signing_key must not be empty")
        self._signing_key = signing_key
        self._lifetime = lifetime
        self._clock = clock

    def issue(self, user_id: str, username: str) -> str:
        """
        Create a signed bearer token for an already authenticated user.

        Args:
            user_id: The user's unique id
            username: The user's name

        Returns:
            Compact JWT string (header.payload.signature)
        """
        now = int(self._clock())
        payload = {
            NAME_IDENTIFIER_CLAIM: user_id,
            NAME_CLAIM: username,
            "iat": now,
            "nbf": now,
            "exp": now + int(self._lifetime.total_seconds()),
        }
        return jwt.encode(payload, self._signing_key, algorithm=ALGORITHM)


class TokenValidator:
    def __init__(self, signing_key: str):
        if not signing_key:
            raise ValueError("signing_key must not be empty")
        self._signing_key = signing_key

    def validate(self, token: str) -> Identity:
        """
        Verify signature and expiry and return the token's subject.

        Raises:
            InvalidTokenError: On any failure. The cause is logged at DEBUG
                level and never exposed to the caller.
        """
        try:
            claims = jwt.decode(
                token,
                self._signing_key,
                algorithms=[ALGORITHM],
                leeway=0,
                options={
                    "require": ["exp", NAME_IDENTIFIER_CLAIM, NAME_CLAIM],
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iss": False,
                    "verify_aud": False,
                },
            )
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", exc.__class__.__name__)
            raise InvalidTokenError() from exc

        user_id = claims[NAME_IDENTIFIER_CLAIM]
        username = claims[NAME_CLAIM]
        if not isinstance(user_id, str) or not isinstance(username, str):
            logger.debug("Token rejected: non-string subject claims")
            raise InvalidTokenError()

        return Identity(
            user_id=user_id,
            username=username,
        )
