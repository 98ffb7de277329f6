"""
FastAPI dependencies for session authentication.

Usage in routers::

    from auth.dependencies import get_current_identity

    @router.get("/me")
    async def me(identity: AuthenticatedIdentity = Depends(get_current_identity)):
        ...
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from config import settings

from .errors import AuthError, AuthFailure
from .jwt_service import AuthenticatedIdentity, authenticate
from .secrets import AuthSecrets

logger = logging.getLogger(__name__)


def get_auth_secrets(request: Request) -> AuthSecrets:
    """
    Return the secrets built at startup.

    Falls back to building them from settings when the lifespan did not run
    (e.g. ASGI transports that skip startup).
    """
    secrets = getattr(request.app.state, "auth_secrets", None)
    if secrets is None:
        secrets = AuthSecrets.from_settings(settings)
        request.app.state.auth_secrets = secrets
    return secrets


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    secrets: AuthSecrets = Depends(get_auth_secrets),
) -> AuthenticatedIdentity:
    """
    Validate the ``Authorization: Bearer <token>`` header.

    The identity is also stored on ``request.state.identity`` for
    middleware and downstream handlers.

    Raises:
        HTTPException 401 if the token is missing or invalid.
    """
    result = authenticate(authorization, secrets)
    if isinstance(result, AuthFailure):
        if result.reason is AuthError.INVALID_TOKEN:
            logger.info(f"Rejected session token on {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.identity = result
    return result
