"""
Unit Tests for the Account Service

Tests AccountService against in-memory SQLite:
- register() validation, uniqueness and token issuance
- login() enumeration resistance and deactivated accounts
- get_account() / deactivate_account()
- ensure_admin() bootstrap
"""

from unittest.mock import Mock

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.database.schema import create_schema
from app.database.session import create_db_engine, create_session_factory
from services.account_service import (
    ACCOUNT_EXISTS_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    AccountService,
)
from services.credentials import PasswordHasher
from services.order_models import AccountRole, ErrorKind, OrderErrorCode
from services.persistence import AccountStore, StoreConstraintError
from services.retry_policy import RetryPolicy
from services.token_service import TokenService


SECRET = "account-service-test-secret-0123456789"
PASSWORD = "Passw0rd!"


@pytest.fixture
def tokens():
    return TokenService(secret=SECRET)


@pytest.fixture
def service(tokens):
    engine = create_db_engine("sqlite://")
    create_schema(engine)
    session = create_session_factory(engine)()
    yield AccountService(
        account_store=AccountStore(session),
        hasher=PasswordHasher(work_factor=4),
        tokens=tokens,
        retry_policy=RetryPolicy(sleep=lambda delay: None),
    )
    session.close()
    engine.dispose()


class TestRegister:
    """Test register()."""

    def test_register_issues_token(self, service, tokens) -> None:
        result = service.register("alice", "alice@x.com", PASSWORD, "corr-r1")

        assert result.success
        assert result.correlation_id == "corr-r1"
        assert result.account.id > 0
        assert result.account.role == AccountRole.STANDARD
        assert result.account.password_hash != PASSWORD
        assert result.account.password_hash.startswith("$2")

        claims = tokens.decode(result.token)
        assert claims.subject_id == result.account.id
        assert claims.username == "alice"
        assert claims.role == "User"
        assert claims.expires_at == result.expires_at.replace(microsecond=0)

    def test_duplicate_username(self, service) -> None:
        assert service.register("alice", "alice@x.com", PASSWORD).success
        result = service.register("alice", "other@x.com", PASSWORD)
        assert result.error_kind == ErrorKind.BUSINESS_RULE
        assert result.error_code == OrderErrorCode.ACCOUNT_EXISTS
        assert result.error_message == ACCOUNT_EXISTS_MESSAGE

    def test_duplicate_email(self, service) -> None:
        assert service.register("alice", "alice@x.com", PASSWORD).success
        result = service.register("alice2", "alice@x.com", PASSWORD)
        assert result.error_code == OrderErrorCode.ACCOUNT_EXISTS

    def test_invalid_fields(self, service) -> None:
        result = service.register("al", "not-an-email", "short")
        assert result.error_kind == ErrorKind.VALIDATION
        assert {e.field for e in result.field_errors} == {"username", "email", "password"}
        assert result.token is None

    def test_constraint_race_reported_as_exists(self, tokens) -> None:
        store = Mock()
        store.exists_username_or_email.return_value = False
        store.add.side_effect = StoreConstraintError("unique")
        service = AccountService(store, PasswordHasher(work_factor=4), tokens)

        result = service.register("alice", "alice@x.com", PASSWORD)
        assert result.error_code == OrderErrorCode.ACCOUNT_EXISTS


class TestLogin:
    """Test login()."""

    def test_login_success(self, service, tokens) -> None:
        registered = service.register("alice", "alice@x.com", PASSWORD)
        result = service.login("alice", PASSWORD)
        assert result.success
        assert result.account.id == registered.account.id
        assert tokens.validate(result.token)

    def test_wrong_password_and_unknown_user_indistinguishable(self, service) -> None:
        service.register("alice", "alice@x.com", PASSWORD)
        wrong = service.login("alice", "Wr0ngPassword")
        unknown = service.login("mallory", PASSWORD)

        for result in (wrong, unknown):
            assert result.error_kind == ErrorKind.AUTH
            assert result.error_code == OrderErrorCode.INVALID_CREDENTIALS
            assert result.error_message == INVALID_CREDENTIALS_MESSAGE
            assert result.token is None

    def test_deactivated_account(self, service) -> None:
        account = service.register("alice", "alice@x.com", PASSWORD).account
        assert service.deactivate_account(account.id).success

        result = service.login("alice", PASSWORD)
        assert result.error_kind == ErrorKind.AUTH
        assert result.error_code == OrderErrorCode.ACCOUNT_INACTIVE

    def test_deactivated_account_wrong_password_still_generic(self, service) -> None:
        account = service.register("alice", "alice@x.com", PASSWORD).account
        service.deactivate_account(account.id)
        assert service.login("alice", "Wr0ngPassword").error_code == OrderErrorCode.INVALID_CREDENTIALS

    def test_missing_fields(self, service) -> None:
        result = service.login("", None)
        assert result.error_kind == ErrorKind.VALIDATION
        assert {e.field for e in result.field_errors} == {"username", "password"}


class TestAccountAdministration:
    """Test get_account(), deactivate_account() and ensure_admin()."""

    def test_get_account(self, service) -> None:
        account = service.register("alice", "alice@x.com", PASSWORD).account
        result = service.get_account(account.id)
        assert result.success
        assert result.account.username == "alice"
        assert "password_hash" not in result.account.to_dict()

    def test_deactivated_account_not_found(self, service) -> None:
        account = service.register("alice", "alice@x.com", PASSWORD).account
        service.deactivate_account(account.id)
        assert service.get_account(account.id).error_code == OrderErrorCode.ACCOUNT_NOT_FOUND

    def test_deactivate_missing(self, service) -> None:
        result = service.deactivate_account(9999)
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_ensure_admin_creates_once(self, service) -> None:
        assert service.ensure_admin("root", "root@x.com", "Adm1nPassword").success
        login = service.login("root", "Adm1nPassword")
        assert login.account.role == AccountRole.ADMINISTRATOR

        # Existing username is left untouched, password included
        assert service.ensure_admin("root", "root@x.com", "Different1Password").success
        assert service.login("root", "Adm1nPassword").success
        assert not service.login("root", "Different1Password").success
