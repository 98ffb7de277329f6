"""Session token issuance and validation using python-jose."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from .errors import AuthError, AuthFailure
from .secrets import AuthSecrets

logger = logging.getLogger(__name__)

TOKEN_TYPE = "access"


@dataclass(frozen=True)
class ResolvedUser:
    """A user as returned by the user directory."""

    id: int
    external_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


@dataclass(frozen=True)
class SessionToken:
    token: str
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        """Seconds until expiry, measured from now."""
        remaining = self.expires_at - datetime.now(timezone.utc)
        return max(int(remaining.total_seconds()), 0)


@dataclass(frozen=True)
class AuthenticatedIdentity:
    user_id: int
    external_id: str
    display_name: str
    expires_at: datetime


def issue_session_token(
    user: ResolvedUser,
    secrets: AuthSecrets,
    now: Optional[datetime] = None,
) -> SessionToken:
    """
    Create a signed session token for a resolved user.

    Args:
        user: Directory record of the verified user.
        secrets: Auth configuration; only the signing secret, algorithm and
            session TTL are used.
        now: Issuance time (defaults to the current UTC time).

    Returns:
        :class:`SessionToken` with the encoded JWT and its absolute expiry.

    Raises:
        ConfigurationError: If the signing secret is not configured.
    """
    signing_secret = secrets.require_signing_secret()
    if now is None:
        now = datetime.now(timezone.utc)
    expires_at = now + secrets.session_ttl

    payload = {
        "sub": str(user.id),
        "id": user.id,
        "external_id": user.external_id,
        "display_name": user.display_name,
        "iat": now,
        "exp": expires_at,
        "type": TOKEN_TYPE,
    }
    token = jwt.encode(payload, signing_secret, algorithm=secrets.algorithm)
    return SessionToken(token=token, expires_at=expires_at)


def decode_session_token(token: str, secrets: AuthSecrets) -> Dict[str, Any]:
    """
    Verify and decode a session token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered with.
        ConfigurationError: If the signing secret is not configured.
    """
    payload = jwt.decode(
        token,
        secrets.require_signing_secret(),
        algorithms=[secrets.algorithm],
    )
    if payload.get("type") != TOKEN_TYPE:
        raise JWTError("Not an access token")
    return payload


def authenticate(
    header_value: Optional[str],
    secrets: AuthSecrets,
) -> Union[AuthenticatedIdentity, AuthFailure]:
    """
    Validate an ``Authorization`` header value.

    Returns:
        :class:`AuthenticatedIdentity` for a valid bearer token, otherwise
        :class:`AuthFailure` with ``NO_TOKEN`` (absent or not a bearer
        header) or ``INVALID_TOKEN`` (bad signature, expired, corrupt).
    """
    token = _extract_bearer(header_value)
    if token is None:
        return AuthFailure(AuthError.NO_TOKEN, "Missing authorization credentials")

    try:
        payload = decode_session_token(token, secrets)
    except JWTError as exc:
        logger.debug(f"Session token rejected: {exc}")
        return AuthFailure(AuthError.INVALID_TOKEN, "Invalid or expired token")

    user_id = payload.get("id")
    external_id = payload.get("external_id")
    display_name = payload.get("display_name")
    exp = payload.get("exp")
    if (
        isinstance(user_id, bool)
        or not isinstance(user_id, int)
        or not isinstance(external_id, str)
        or not isinstance(display_name, str)
        or not isinstance(exp, (int, float))
    ):
        return AuthFailure(AuthError.INVALID_TOKEN, "Invalid token payload")

    return AuthenticatedIdentity(
        user_id=user_id,
        external_id=external_id,
        display_name=display_name,
        expires_at=datetime.fromtimestamp(exp, timezone.utc),
    )


def _extract_bearer(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
