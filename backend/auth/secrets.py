"""Process-wide secrets for login verification and session signing."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from config import Settings

from .errors import ConfigurationError


@dataclass(frozen=True)
class AuthSecrets:
    """
    Immutable bundle of the two auth secrets plus token parameters.

    Built once at startup and passed explicitly to the verifier, issuer and
    authenticator.  A missing secret is only reported when it is first used,
    so the app can still serve ``/health`` while misconfigured.
    """

    issuer_secret: Optional[bytes]
    signing_secret: Optional[bytes]
    algorithm: str = "HS256"
    session_ttl: timedelta = timedelta(days=7)
    init_data_max_age: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthSecrets":
        return cls(
            issuer_secret=_encode(settings.TELEGRAM_BOT_TOKEN),
            signing_secret=_encode(settings.JWT_SECRET),
            algorithm=settings.JWT_ALGORITHM,
            session_ttl=timedelta(days=settings.SESSION_TTL_DAYS),
            init_data_max_age=settings.INIT_DATA_MAX_AGE_SECONDS,
        )

    def require_issuer_secret(self) -> bytes:
        if not self.issuer_secret:
            raise ConfigurationError("TELEGRAM_BOT_TOKEN is not configured")
        return self.issuer_secret

    def require_signing_secret(self) -> bytes:
        if not self.signing_secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        return self.signing_secret


def _encode(value: Optional[str]) -> Optional[bytes]:
    if not value:
        return None
    return value.encode("utf-8")
