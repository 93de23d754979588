# ============================================================================
# API AUTHENTICATION
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Bearer token dependency
# PURPOSE: Require an authenticated caller on every /api/v1 route
# CREATED: 16 SEP 2026
# ============================================================================
"""
API Authentication

`require_caller` is a FastAPI dependency. It expects
`Authorization: Bearer <token>`.

    API_TOKENS set      token must be one of the comma-separated values
    API_TOKENS unset    any non-empty token passes; verification belongs
                        to the fronting gateway

The returned caller id is a short token fingerprint, recorded as
`imported_by` on dataset versions. Tokens themselves are never logged.
"""

import hashlib
import hmac
import logging
import os
from typing import FrozenSet, Optional

from fastapi import Header

from core.errors import AuthenticationError

logger = logging.getLogger(__name__)

_open_mode_warned = False


def configured_tokens() -> FrozenSet[str]:
    raw = os.environ.get("API_TOKENS", "")
    return frozenset(t.strip() for t in raw.split(",") if t.strip())


def caller_id(token: str) -> str:
    """Stable, non-reversible caller id for a token."""
    return "token:" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


async def require_caller(authorization: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the calling principal from the Authorization header.

    Raises:
        AuthenticationError: header missing, not Bearer, or token unknown
    """
    global _open_mode_warned

    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Authorization must be a Bearer token")

    tokens = configured_tokens()
    if not tokens:
        if not _open_mode_warned:
            logger.warning("API_TOKENS not set: accepting any bearer token")
            _open_mode_warned = True
        return caller_id(token)

    if not any(hmac.compare_digest(token, known) for known in tokens):
        logger.warning(f"Rejected bearer token {caller_id(token)}")
        raise AuthenticationError("Invalid bearer token")
    return caller_id(token)
