from datetime import timedelta

import pytest
from jose import jwt

from account_api.core.exceptions import APIError, ErrorKind
from account_api.core.security import PasswordHasher, TokenService

SECRET = "unit-test-secret-key-that-is-long-enough"


@pytest.fixture
def fast_hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service():
    return TokenService(SECRET, expire_minutes=30)


def test_hash_is_salted_per_call(fast_hasher):
    first = fast_hasher.hash("longenough1")
    second = fast_hasher.hash("longenough1")
    assert first != second
    assert first != "longenough1"
    assert first.startswith("$2")


def test_hash_uses_configured_cost(fast_hasher):
    assert fast_hasher.hash("longenough1").split("$")[2] == "04"


def test_verify_match_and_mismatch(fast_hasher):
    hashed = fast_hasher.hash("longenough1")
    assert fast_hasher.verify("longenough1", hashed) is True
    assert fast_hasher.verify("wrong-password", hashed) is False


def test_verify_malformed_hash_is_hashing_failure(fast_hasher):
    with pytest.raises(APIError) as exc_info:
        fast_hasher.verify("longenough1", "not-a-bcrypt-hash")
    assert exc_info.value.kind is ErrorKind.HASHING_FAILURE
    assert exc_info.value.status_code == 500


def test_verify_empty_hash_is_hashing_failure(fast_hasher):
    with pytest.raises(APIError) as exc_info:
        fast_hasher.verify("longenough1", "")
    assert exc_info.value.kind is ErrorKind.HASHING_FAILURE


def test_verify_decoy_never_matches(fast_hasher):
    assert fast_hasher.verify_decoy("anything") is False
    assert fast_hasher.verify_decoy("anything") is False


def test_long_passwords_hash_and_verify(fast_hasher):
    password = "x" * 200
    hashed = fast_hasher.hash(password)
    assert fast_hasher.verify(password, hashed) is True


def test_token_round_trip(token_service):
    token = token_service.issue("user-7", "instructor")
    claims = token_service.verify(token)
    assert claims.subject_id == "user-7"
    assert claims.role == "instructor"


def test_token_carries_standard_claims(token_service):
    payload = jwt.decode(token_service.issue("user-7", "student"), SECRET, algorithms=["HS256"])
    assert payload["sub"] == "user-7"
    assert payload["role"] == "student"
    assert payload["typ"] == "access"
    assert payload["exp"] > payload["iat"]


def test_expires_in_matches_configuration(token_service):
    assert token_service.expires_in == 30 * 60


def _assert_invalid(token_service, token):
    with pytest.raises(APIError) as exc_info:
        token_service.verify(token)
    assert exc_info.value.kind is ErrorKind.INVALID_TOKEN
    assert exc_info.value.message == "Invalid or expired token"
    return exc_info.value


def test_expired_token_rejected(token_service):
    token = token_service.issue("user-7", "student", expires_delta=timedelta(seconds=-10))
    _assert_invalid(token_service, token)


def test_wrong_secret_rejected(token_service):
    other = TokenService("another-secret-key-that-is-long-enough")
    _assert_invalid(token_service, other.issue("user-7", "student"))


def test_tampered_and_malformed_tokens_rejected(token_service):
    token = token_service.issue("user-7", "student")
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    errors = [
        _assert_invalid(token_service, tampered),
        _assert_invalid(token_service, "not.a.token"),
        _assert_invalid(token_service, "garbage"),
    ]
    assert {(e.status_code, e.message) for e in errors} == {(401, "Invalid or expired token")}


def test_token_without_role_or_type_rejected(token_service):
    no_role = jwt.encode({"sub": "user-7", "typ": "access"}, SECRET, algorithm="HS256")
    wrong_type = jwt.encode({"sub": "user-7", "role": "admin", "typ": "refresh"}, SECRET, algorithm="HS256")
    _assert_invalid(token_service, no_role)
    _assert_invalid(token_service, wrong_type)
