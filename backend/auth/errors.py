"""
Failure taxonomy for login verification and session authentication.

Verifier and authenticator failures are returned as values
(:class:`VerificationFailure`, :class:`AuthFailure`) so the HTTP layer decides
how to reject the request.  Server-side problems are raised as exceptions and
translated by the handlers registered in ``main.py``.
"""

from dataclasses import dataclass
from enum import Enum


class VerificationError(str, Enum):
    """Reasons a Mini App login payload is rejected."""

    MISSING_HASH = "missing_hash"
    SIGNATURE_MISMATCH = "signature_mismatch"
    MALFORMED_CLAIM = "malformed_claim"
    EXPIRED_PAYLOAD = "expired_payload"


class AuthError(str, Enum):
    """Reasons a bearer token is rejected."""

    NO_TOKEN = "no_token"
    INVALID_TOKEN = "invalid_token"


@dataclass(frozen=True)
class VerificationFailure:
    reason: VerificationError
    message: str

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class AuthFailure:
    reason: AuthError
    message: str

    def __bool__(self) -> bool:
        return False


class ConfigurationError(Exception):
    """Raised when a required secret or setting is missing at first use."""


class CollaboratorFailure(Exception):
    """
    Raised when an external collaborator (user directory, object store) fails.

    The original error is chained as ``__cause__`` and logged server-side;
    clients only see an opaque message.
    """

    def __init__(self, collaborator: str, message: str = "External service failure"):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator
        self.message = message
