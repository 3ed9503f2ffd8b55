"""
Event logger utility for authentication events.
"""
from datetime import datetime
from typing import Optional
from fastapi import Request
import sys
import logging
import os

logger = logging.getLogger(__name__)


ALLOWED_EVENT_TYPES = {
    "register_success",
    "register_failure",
    "login_success",
    "login_failure",
    "token_rejected",
}


def configure_event_log_file(log_dir: Optional[str]) -> None:
    """
    Additionally write auth events to <log_dir>/auth_events.log.

    Continues with stdout logging only if the directory cannot be created.
    """
    if not log_dir:
        return
    path = os.path.abspath(os.path.join(log_dir, "auth_events.log"))
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
            return
    try:
        os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(path)
    except (OSError, PermissionError) as e:
        print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(message)s"))
    logger.addHandler(handler)


def client_ip(request: Request) -> Optional[str]:
    ip_address = None
    if request.client:
        ip_address = request.client.host

    # Check for X-Forwarded-For header (proxy/load balancer scenarios)
    if not ip_address and request.headers.get("x-forwarded-for"):
        # X-Forwarded-For can contain multiple IPs, take the first one
        ip_address = request.headers.get("x-forwarded-for").split(",")[0].strip()
    return ip_address


def log_auth_event(
    event_type: str,
    username: Optional[str],
    request: Request,
    metadata: dict = None
) -> None:
    """
    Log an authentication event.

    Args:
        event_type: One of: register_success, register_failure,
                    login_success, login_failure, token_rejected
        username: Username the event concerns, if known
        request: FastAPI Request object
        metadata: Optional dictionary of additional context

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    level = logging.INFO if event_type.endswith("_success") else logging.WARNING
    logger.log(
        level,
        "AUTH %s username=%s ip=%s user_agent=%s timestamp=%s metadata=%s",
        event_type,
        username,
        client_ip(request),
        request.headers.get("user-agent"),
        datetime.utcnow().isoformat(),
        metadata or {},
    )
