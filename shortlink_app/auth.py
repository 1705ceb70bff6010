"""
Authentication gate for management endpoints.

Tokens are opaque bearer secrets mapped to a principal id in
settings.api_tokens. The gate only answers allow (principal id) or deny.
"""

import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shortlink_app.config import settings
from shortlink_app.errors import Unauthorized

bearer_scheme = HTTPBearer(auto_error=False)


def authenticate(token: Optional[str]) -> Optional[str]:
    """Return the principal id for a token, or None"""
    if not token:
        return None
    for known_token, principal in settings.api_tokens.items():
        if secrets.compare_digest(known_token, token):
            return principal
    return None


def require_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """FastAPI dependency: principal id or 401"""
    principal = authenticate(credentials.credentials if credentials else None)
    if principal is None:
        raise Unauthorized()
    return principal
