"""
Authentication endpoints.

Public endpoints:
    POST /api/auth/telegram   exchange Mini App initData for a session token

Protected endpoints:
    GET  /api/auth/me         identity carried by the current session token
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import get_auth_secrets, get_current_identity
from auth.errors import VerificationError, VerificationFailure
from auth.init_data import verify_init_data
from auth.jwt_service import AuthenticatedIdentity, issue_session_token
from auth.secrets import AuthSecrets
from database import get_db
from schemas import (
    ErrorResponse,
    IdentityResponse,
    SessionUser,
    TelegramLoginRequest,
    TokenResponse,
)
from services.user_directory import UserDirectory
from utils.audit import audit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])

# Client-caused payload problems are 400; authenticity failures are 401
_FAILURE_STATUS = {
    VerificationError.MISSING_HASH: status.HTTP_400_BAD_REQUEST,
    VerificationError.MALFORMED_CLAIM: status.HTTP_400_BAD_REQUEST,
    VerificationError.SIGNATURE_MISMATCH: status.HTTP_401_UNAUTHORIZED,
    VerificationError.EXPIRED_PAYLOAD: status.HTTP_401_UNAUTHORIZED,
}


def _reject(failure: VerificationFailure) -> JSONResponse:
    return JSONResponse(
        status_code=_FAILURE_STATUS[failure.reason],
        content=ErrorResponse(detail=failure.message, code=failure.reason.value).model_dump(),
    )


@router.post(
    "/telegram",
    response_model=TokenResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def telegram_login(
    body: TelegramLoginRequest,
    secrets: AuthSecrets = Depends(get_auth_secrets),
    db: AsyncSession = Depends(get_db),
):
    """
    Complete a Mini App login: verify initData, find or create the user,
    return a signed session token.
    """
    issuer_secret = secrets.require_issuer_secret()
    # Fail before touching the directory if tokens cannot be signed
    secrets.require_signing_secret()

    result = verify_init_data(
        body.init_data, issuer_secret, max_age=secrets.init_data_max_age,
    )
    if isinstance(result, VerificationFailure):
        logger.info(f"Telegram login rejected: {result.reason.value}")
        audit.log_login_failure(result.reason.value)
        return _reject(result)

    directory = UserDirectory(db)
    user, created = await directory.resolve(result)
    session = issue_session_token(user, secrets)

    audit.log_login(user_id=user.id, telegram_id=user.external_id, created=created)

    return TokenResponse(
        access_token=session.token,
        expires_in=session.expires_in,
        expires_at=session.expires_at,
        user=SessionUser(
            id=user.id,
            external_id=user.external_id,
            display_name=user.display_name,
        ),
        is_new_user=created,
    )


@router.get("/me", response_model=IdentityResponse)
async def get_me(identity: AuthenticatedIdentity = Depends(get_current_identity)):
    """Return the identity embedded in the caller's session token."""
    return IdentityResponse(
        user_id=identity.user_id,
        external_id=identity.external_id,
        display_name=identity.display_name,
        expires_at=identity.expires_at,
    )
