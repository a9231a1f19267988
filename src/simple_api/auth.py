"""Authentication strategy resolution.

Handles:
- Selecting one AuthStrategy from raw settings at startup
- Applying the strategy to outbound requests (query parameters or headers)
"""

import base64
from typing import Optional
from urllib.parse import quote, urlencode

import httpx

from shared.logging import get_logger
from shared.models import (
    AuthStrategy,
    AuthType,
    BasicAuth,
    BearerAuth,
    NoAuth,
    QueryAuth,
)

logger = get_logger(__name__)


def resolve_auth(
    auth_type: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
    token: Optional[str] = None,
) -> AuthStrategy:
    """
    Resolve raw credentials into a single authentication strategy.

    Incomplete credentials never raise: they degrade to NoAuth, and a
    warning is logged when an auth type was requested but cannot be honoured.

    Args:
        auth_type: "query", "basic" or "bearer"
        user: User name for query/basic auth
        password: Password for query/basic auth
        token: Token for bearer auth

    Returns:
        The resolved AuthStrategy
    """
    if auth_type == AuthType.BEARER.value and token:
        return BearerAuth(token=token)

    if auth_type in (AuthType.BASIC.value, AuthType.QUERY.value) and user and password:
        if auth_type == AuthType.BASIC.value:
            return BasicAuth(user=user, password=password)
        return QueryAuth(user=user, password=password)

    if auth_type:
        logger.warning(
            "Incomplete credentials, continuing without authentication",
            auth_type=auth_type,
            has_user=bool(user),
            has_password=bool(password),
            has_token=bool(token),
        )

    return NoAuth()


def basic_credentials(user: str, password: str) -> str:
    """Encode ``user:password`` for an ``Authorization: Basic`` header."""
    return base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")


def apply_auth(
    auth: AuthStrategy,
    url: httpx.URL,
    headers: dict[str, str],
) -> httpx.URL:
    """
    Apply an authentication strategy to a request.

    Header based strategies update ``headers`` in place; query auth returns
    a new URL with ``user`` and ``pass`` appended. Existing query parameters
    are kept byte for byte.
    """
    if isinstance(auth, QueryAuth):
        # Credentials end up in the backend's access log
        credentials = urlencode({"user": auth.user, "pass": auth.password}, quote_via=quote)
        query = url.query.decode("ascii")
        query = f"{query}&{credentials}" if query else credentials
        url = url.copy_with(query=query.encode("ascii"))
    elif isinstance(auth, BasicAuth):
        headers["Authorization"] = f"Basic {basic_credentials(auth.user, auth.password)}"
    elif isinstance(auth, BearerAuth):
        headers["Authorization"] = f"Bearer {auth.token}"

    return url
