"""
Telegram Mini App ``initData`` signature verification.

The Mini App hands the backend a URL-encoded query string such as::

    query_id=AA...&user=%7B%22id%22%3A123...%7D&auth_date=1700000000&hash=ab12...

Verification:

1. Every field except ``hash`` is rendered as ``key=value``, sorted by key and
   joined with ``\\n`` (the *check-string*).
2. ``secret_key = HMAC_SHA256(key=issuer_secret, msg="WebAppData")``.
3. ``hash`` must equal ``hex(HMAC_SHA256(key=secret_key, msg=check_string))``,
   compared in constant time.

Duplicate keys resolve deterministically: the last occurrence wins, for the
check-string and for field lookup alike.

Everything here is pure: no I/O, no global configuration.
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode

from .errors import VerificationError, VerificationFailure

WEB_APP_DATA_CONSTANT = b"WebAppData"
HASH_FIELD = "hash"
USER_FIELD = "user"
AUTH_DATE_FIELD = "auth_date"


@dataclass(frozen=True)
class LoginPayload:
    """Parsed ``initData``: ordered field pairs plus the detached ``hash``."""

    pairs: tuple[tuple[str, str], ...]
    hash: Optional[str] = None

    def fields(self) -> dict[str, str]:
        """Collapse pairs into a mapping; later duplicates override earlier ones."""
        return dict(self.pairs)

    def get(self, key: str) -> Optional[str]:
        return self.fields().get(key)


@dataclass(frozen=True)
class IdentityClaim:
    external_id: str
    first_name: str
    last_name: str
    username: Optional[str] = None
    language_code: Optional[str] = None


def parse_login_payload(raw: str) -> LoginPayload:
    """
    Parse a URL-encoded ``initData`` string.

    Blank values are kept.  ``hash`` is removed from the pairs; if it appears
    more than once the last value is used.
    """
    pairs: list[tuple[str, str]] = []
    received_hash: Optional[str] = None
    for key, value in parse_qsl(raw or "", keep_blank_values=True):
        if key == HASH_FIELD:
            received_hash = value
        else:
            pairs.append((key, value))
    return LoginPayload(pairs=tuple(pairs), hash=received_hash)


def build_check_string(pairs: Union[Mapping[str, str], Iterable[tuple[str, str]]]) -> str:
    """Render the canonical newline-joined ``key=value`` string, sorted by key."""
    fields = dict(pairs.items() if isinstance(pairs, Mapping) else pairs)
    fields.pop(HASH_FIELD, None)
    return "\n".join(f"{key}={fields[key]}" for key in sorted(fields))


def derive_secret_key(issuer_secret: bytes) -> bytes:
    """Per-issuer HMAC key: the issuer secret keys an HMAC over ``WebAppData``."""
    return hmac.new(issuer_secret, WEB_APP_DATA_CONSTANT, hashlib.sha256).digest()


def compute_hash(check_string: str, issuer_secret: bytes) -> str:
    secret_key = derive_secret_key(issuer_secret)
    return hmac.new(secret_key, check_string.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_init_data(
    fields: Union[Mapping[str, str], Iterable[tuple[str, str]]],
    issuer_secret: bytes,
) -> str:
    """Build a signed ``initData`` string from plain fields (test and dev tooling)."""
    fields = dict(fields.items() if isinstance(fields, Mapping) else fields)
    fields.pop(HASH_FIELD, None)
    signature = compute_hash(build_check_string(fields), issuer_secret)
    return urlencode([*fields.items(), (HASH_FIELD, signature)])


def verify_init_data(
    payload: Union[LoginPayload, str],
    issuer_secret: bytes,
    max_age: int = 0,
    now: Optional[float] = None,
) -> Union[IdentityClaim, VerificationFailure]:
    """
    Verify a Mini App login payload and extract the user identity.

    Args:
        payload: Parsed payload or the raw ``initData`` string.
        issuer_secret: The bot token as bytes.
        max_age: Reject payloads whose ``auth_date`` is older than this many
            seconds.  ``0`` disables the check.
        now: Current UNIX time, for tests.

    Returns:
        :class:`IdentityClaim` on success, otherwise a
        :class:`VerificationFailure` tagged with the reason.
    """
    if isinstance(payload, str):
        payload = parse_login_payload(payload)

    if not payload.hash:
        return VerificationFailure(
            VerificationError.MISSING_HASH, "Login payload has no hash"
        )

    fields = payload.fields()
    calculated = compute_hash(build_check_string(fields), issuer_secret)
    if not hmac.compare_digest(
        calculated.encode("utf-8"), payload.hash.encode("utf-8")
    ):
        return VerificationFailure(
            VerificationError.SIGNATURE_MISMATCH, "Login payload signature is invalid"
        )

    if max_age > 0:
        stale = _check_auth_date(fields.get(AUTH_DATE_FIELD), max_age, now)
        if stale is not None:
            return stale

    return _extract_claim(fields.get(USER_FIELD))


def _check_auth_date(
    raw: Optional[str], max_age: int, now: Optional[float]
) -> Optional[VerificationFailure]:
    try:
        auth_date = int(raw)
    except (TypeError, ValueError):
        return VerificationFailure(
            VerificationError.MALFORMED_CLAIM, "auth_date is missing or not a number"
        )
    current = time.time() if now is None else now
    if current - auth_date > max_age:
        return VerificationFailure(
            VerificationError.EXPIRED_PAYLOAD, "Login payload is too old"
        )
    return None


def _extract_claim(raw_user: Optional[str]) -> Union[IdentityClaim, VerificationFailure]:
    if not raw_user:
        return VerificationFailure(
            VerificationError.MALFORMED_CLAIM, "Login payload has no user field"
        )
    try:
        user = json.loads(raw_user)
    except ValueError:
        return VerificationFailure(
            VerificationError.MALFORMED_CLAIM, "user field is not valid JSON"
        )
    if not isinstance(user, dict):
        return VerificationFailure(
            VerificationError.MALFORMED_CLAIM, "user field is not an object"
        )

    user_id = user.get("id")
    # bool is an int subclass
    if isinstance(user_id, bool) or not isinstance(user_id, (int, str)) or user_id == "":
        return VerificationFailure(
            VerificationError.MALFORMED_CLAIM, "user field has no id"
        )

    return IdentityClaim(
        external_id=str(user_id),
        first_name=_as_text(user.get("first_name")),
        last_name=_as_text(user.get("last_name")),
        username=user.get("username") or None,
        language_code=user.get("language_code") or None,
    )


def _as_text(value) -> str:
    if value is None:
        return ""
    return str(value)
