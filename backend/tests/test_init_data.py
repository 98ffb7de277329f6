"""
Tests for Telegram Mini App initData verification.

Covers:
- Check-string canonicalization
- Key derivation and hash computation
- Success path and identity extraction
- Tampering, truncation, missing hash and malformed user claims
- Duplicate-key and field-order handling
- Optional auth_date freshness check
"""

import hashlib
import hmac
import json
from urllib.parse import urlencode

import pytest

from auth.errors import VerificationError, VerificationFailure
from auth.init_data import (
    IdentityClaim,
    build_check_string,
    derive_secret_key,
    parse_login_payload,
    sign_init_data,
    verify_init_data,
)

SECRET = b"botsecret"

USER_JSON = '{"id":123,"first_name":"Ada","last_name":"L"}'
FIELDS = {
    "auth_date": "1700000000",
    "query_id": "AA",
    "user": USER_JSON,
}


def _reference_hash(fields: dict, secret: bytes) -> str:
    """Independent implementation of the signing algorithm."""
    check_string = "\n".join(f"{k}={fields[k]}" for k in sorted(fields))
    key = hmac.new(secret, b"WebAppData", hashlib.sha256).digest()
    return hmac.new(key, check_string.encode(), hashlib.sha256).hexdigest()


def _signed(fields: dict, secret: bytes = SECRET) -> str:
    return urlencode([*fields.items(), ("hash", _reference_hash(fields, secret))])


class TestCheckString:
    def test_sorted_newline_joined(self):
        assert build_check_string({"b": "2", "a": "1", "c": "3"}) == "a=1\nb=2\nc=3"

    def test_hash_excluded(self):
        assert build_check_string([("hash", "abc"), ("a", "1")]) == "a=1"

    def test_no_trailing_newline(self):
        assert not build_check_string(FIELDS).endswith("\n")

    def test_empty(self):
        assert build_check_string({}) == ""

    def test_bytewise_key_order(self):
        # Uppercase sorts before lowercase; underscore sorts after uppercase
        assert build_check_string({"a": "1", "B": "2", "_": "3"}) == "B=2\n_=3\na=1"


class TestParse:
    def test_hash_detached(self):
        payload = parse_login_payload("a=1&hash=ff&b=2")
        assert payload.hash == "ff"
        assert payload.pairs == (("a", "1"), ("b", "2"))

    def test_url_decoding(self):
        payload = parse_login_payload(_signed(FIELDS))
        assert payload.get("user") == USER_JSON

    def test_blank_values_kept(self):
        payload = parse_login_payload("a=&b=2")
        assert payload.fields() == {"a": "", "b": "2"}

    def test_duplicate_keys_last_wins(self):
        payload = parse_login_payload("a=1&a=2&hash=x&hash=y")
        assert payload.get("a") == "2"
        assert payload.hash == "y"

    def test_empty_payload(self):
        payload = parse_login_payload("")
        assert payload.pairs == ()
        assert payload.hash is None


class TestVerify:
    def test_concrete_scenario(self):
        result = verify_init_data(_signed(FIELDS), SECRET)

        assert isinstance(result, IdentityClaim)
        assert result.external_id == "123"
        assert result.first_name == "Ada"
        assert result.last_name == "L"

    def test_key_derivation_uses_secret_as_hmac_key(self):
        expected = hmac.new(SECRET, b"WebAppData", hashlib.sha256).digest()
        assert derive_secret_key(SECRET) == expected
        assert len(expected) == 32

    def test_sign_matches_reference(self):
        payload = parse_login_payload(sign_init_data(FIELDS, SECRET))
        assert payload.hash == _reference_hash(FIELDS, SECRET)

    def test_accepts_parsed_payload(self):
        payload = parse_login_payload(_signed(FIELDS))
        assert isinstance(verify_init_data(payload, SECRET), IdentityClaim)

    def test_truncated_hash_mismatch(self):
        raw = _signed(FIELDS)
        assert raw.endswith(_reference_hash(FIELDS, SECRET))
        result = verify_init_data(raw[:-1], SECRET)

        assert isinstance(result, VerificationFailure)
        assert result.reason is VerificationError.SIGNATURE_MISMATCH

    def test_wrong_secret_mismatch(self):
        result = verify_init_data(_signed(FIELDS), b"other-secret")
        assert result.reason is VerificationError.SIGNATURE_MISMATCH

    @pytest.mark.parametrize("field", sorted(FIELDS))
    def test_any_mutated_value_mismatch(self, field):
        signature = _reference_hash(FIELDS, SECRET)
        tampered = dict(FIELDS)
        value = tampered[field]
        tampered[field] = value[:-1] + ("0" if value[-1] != "0" else "1")
        raw = urlencode([*tampered.items(), ("hash", signature)])

        result = verify_init_data(raw, SECRET)
        assert result.reason is VerificationError.SIGNATURE_MISMATCH

    def test_added_field_mismatch(self):
        signature = _reference_hash(FIELDS, SECRET)
        raw = urlencode([*FIELDS.items(), ("extra", "1"), ("hash", signature)])
        assert verify_init_data(raw, SECRET).reason is VerificationError.SIGNATURE_MISMATCH

    def test_field_order_irrelevant(self):
        signature = _reference_hash(FIELDS, SECRET)
        forward = urlencode([*FIELDS.items(), ("hash", signature)])
        backward = urlencode([("hash", signature), *reversed(list(FIELDS.items()))])

        assert verify_init_data(forward, SECRET) == verify_init_data(backward, SECRET)
        assert isinstance(verify_init_data(backward, SECRET), IdentityClaim)

    def test_missing_hash(self):
        result = verify_init_data(urlencode(FIELDS), SECRET)
        assert result.reason is VerificationError.MISSING_HASH

    def test_empty_hash(self):
        result = verify_init_data(urlencode([*FIELDS.items(), ("hash", "")]), SECRET)
        assert result.reason is VerificationError.MISSING_HASH

    def test_empty_payload(self):
        result = verify_init_data("", SECRET)
        assert result.reason is VerificationError.MISSING_HASH

    def test_failure_is_falsy(self):
        assert not verify_init_data("", SECRET)

    def test_duplicate_keys_last_wins(self):
        # Signature covers the last value only
        effective = dict(FIELDS, query_id="BB")
        signature = _reference_hash(effective, SECRET)
        raw = urlencode(
            [("query_id", "AA"), *effective.items(), ("hash", signature)]
        )
        assert isinstance(verify_init_data(raw, SECRET), IdentityClaim)

    def test_non_ascii_hash_is_mismatch(self):
        raw = urlencode([*FIELDS.items(), ("hash", "é" * 64)])
        assert verify_init_data(raw, SECRET).reason is VerificationError.SIGNATURE_MISMATCH


class TestIdentityClaim:
    def _verify_user(self, user_value):
        fields = dict(FIELDS)
        if user_value is None:
            fields.pop("user")
        else:
            fields["user"] = user_value
        return verify_init_data(_signed(fields), SECRET)

    def test_missing_user(self):
        assert self._verify_user(None).reason is VerificationError.MALFORMED_CLAIM

    def test_unparsable_user(self):
        assert self._verify_user("{not json").reason is VerificationError.MALFORMED_CLAIM

    def test_user_not_object(self):
        assert self._verify_user("[1, 2]").reason is VerificationError.MALFORMED_CLAIM

    def test_user_without_id(self):
        result = self._verify_user('{"first_name":"Ada"}')
        assert result.reason is VerificationError.MALFORMED_CLAIM

    def test_boolean_id_rejected(self):
        result = self._verify_user('{"id":true}')
        assert result.reason is VerificationError.MALFORMED_CLAIM

    def test_missing_names_become_empty(self):
        result = self._verify_user('{"id":42}')
        assert result == IdentityClaim(external_id="42", first_name="", last_name="")

    def test_large_id_coerced_to_string(self):
        result = self._verify_user(
            json.dumps({"id": 5379903145, "first_name": "N", "username": "nat"})
        )
        assert result.external_id == "5379903145"
        assert result.username == "nat"


class TestFreshness:
    def test_disabled_by_default(self):
        result = verify_init_data(_signed(FIELDS), SECRET, now=1_900_000_000)
        assert isinstance(result, IdentityClaim)

    def test_fresh_payload_accepted(self):
        result = verify_init_data(
            _signed(FIELDS), SECRET, max_age=3600, now=1_700_000_100
        )
        assert isinstance(result, IdentityClaim)

    def test_stale_payload_rejected(self):
        result = verify_init_data(
            _signed(FIELDS), SECRET, max_age=3600, now=1_700_010_000
        )
        assert result.reason is VerificationError.EXPIRED_PAYLOAD

    def test_missing_auth_date_rejected_when_enabled(self):
        fields = {k: v for k, v in FIELDS.items() if k != "auth_date"}
        result = verify_init_data(_signed(fields), SECRET, max_age=3600)
        assert result.reason is VerificationError.MALFORMED_CLAIM

    def test_signature_checked_before_freshness(self):
        result = verify_init_data(
            _signed(FIELDS)[:-1], SECRET, max_age=3600, now=1_800_000_000
        )
        assert result.reason is VerificationError.SIGNATURE_MISMATCH
