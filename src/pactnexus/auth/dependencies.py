"""FastAPI authentication dependencies.

Tokens are issued by the identity provider; this service only verifies them
and reads the user id from the ``sub`` claim.
"""

from __future__ import annotations

import jwt
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pactnexus.config import get_settings
from pactnexus.errors import NotAuthenticatedError

_bearer = HTTPBearer(auto_error=False)


def decode_user_id(token: str) -> str:
    """Verify a bearer token and return its subject."""
    settings = get_settings()
    options = {"require": ["sub"]}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options=options,
        )
    except jwt.InvalidTokenError as e:
        raise NotAuthenticatedError(str(e)) from e
    return str(payload["sub"])


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """Resolve the caller's user id. Raises NotAuthenticatedError (401) on failure."""
    if credentials is None:
        raise NotAuthenticatedError()
    return decode_user_id(credentials.credentials)
