from datetime import datetime, timedelta

import pytest

from account_api.core.exceptions import APIError, ErrorKind
from account_api.services.auth_service import AuthService


@pytest.fixture
def auth(hasher, tokens):
    return AuthService(hasher=hasher, tokens=tokens)


def _login_error(auth, db_session, email, password):
    with pytest.raises(APIError) as exc_info:
        auth.login(db_session, email, password)
    return exc_info.value


def test_login_issues_token_for_stored_identity(auth, make_user, db_session, tokens):
    user = make_user(role="instructor")

    result = auth.login(db_session, "alice@example.com", "longenough1")

    claims = tokens.verify(result.token)
    assert claims.subject_id == user.id
    assert claims.role == "instructor"
    assert result.user.id == user.id
    assert "password" not in result.user.model_dump_json()
    assert result.expires_in == tokens.expires_in


def test_login_email_is_case_insensitive(auth, make_user, db_session):
    make_user()
    result = auth.login(db_session, "  ALICE@Example.com ", "longenough1")
    assert result.user.email == "alice@example.com"


def test_login_records_success(auth, make_user, db_session, repo):
    user = make_user()
    repo.record_failed_login(user)

    before = datetime.utcnow() - timedelta(seconds=1)
    auth.login(db_session, "alice@example.com", "longenough1")
    after = datetime.utcnow() + timedelta(seconds=1)

    stored = repo.get_by_id(user.id)
    assert stored.failed_login_attempts == 0
    assert before <= stored.last_login_at <= after


def test_wrong_password_and_unknown_email_are_indistinguishable(auth, make_user, db_session):
    make_user()

    wrong_password = _login_error(auth, db_session, "alice@example.com", "not-the-password")
    unknown_email = _login_error(auth, db_session, "nobody@example.com", "longenough1")

    assert wrong_password.kind is unknown_email.kind is ErrorKind.INVALID_CREDENTIALS
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.message == unknown_email.message


def test_deactivated_account_fails_like_bad_credentials(auth, make_user, db_session, tokens, monkeypatch):
    make_user(is_active=False)
    issued = []
    monkeypatch.setattr(tokens, "issue", lambda *args, **kwargs: issued.append(args) or "token")

    error = _login_error(auth, db_session, "alice@example.com", "longenough1")

    assert error.kind is ErrorKind.INVALID_CREDENTIALS
    assert error.message == ErrorKind.INVALID_CREDENTIALS.default_message
    assert issued == []


def test_failed_attempts_are_counted_without_lockout(auth, make_user, db_session, repo):
    user = make_user()
    for _ in range(12):
        _login_error(auth, db_session, "alice@example.com", "not-the-password")

    assert repo.get_by_id(user.id).failed_login_attempts == 12
    # Correct password still works: the counter is observational only
    auth.login(db_session, "alice@example.com", "longenough1")
    assert repo.get_by_id(user.id).failed_login_attempts == 0


def test_no_token_when_login_cannot_be_persisted(auth, make_user, db_session, tokens, monkeypatch):
    make_user()
    issued = []
    monkeypatch.setattr(tokens, "issue", lambda *args, **kwargs: issued.append(args) or "token")

    def failing_commit():
        raise RuntimeError("write failed")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(RuntimeError):
        auth.login(db_session, "alice@example.com", "longenough1")
    assert issued == []
