"""
Request dependencies: credential store wiring and the bearer token guard.
"""
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .db import get_db
from .store import SQLAlchemyCredentialStore
from .tokens import Identity, InvalidTokenError
from .utils.event_logger import log_auth_event


class NotAuthenticated(Exception):
    """Rendered as a bare 401 with a Bearer challenge."""


def get_credential_store(request: Request, db: Session = Depends(get_db)) -> SQLAlchemyCredentialStore:
    return SQLAlchemyCredentialStore(db, request.app.state.password_policy)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def require_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Identity:
    token = extract_bearer_token(authorization)
    if token is None:
        raise NotAuthenticated()
    try:
        identity = request.app.state.token_validator.validate(token)
    except InvalidTokenError as exc:
        log_auth_event("token_rejected", None, request, {"path": request.url.path})
        raise NotAuthenticated() from exc
    request.state.identity = identity
    return identity
