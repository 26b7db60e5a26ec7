"""
============================================================================
Order Management API - Account Service
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Plaintext passwords are never stored or logged
Side Effects: Database writes, token issuance, audit logging

OPERATIONS:
    register(username, email, password)  → account + token
    login(username, password)            → account + token
    get_account(account_id)              → active account summary
    deactivate_account(account_id)       → revoke access (admin)
    ensure_admin(username, email, pw)    → startup administrator bootstrap

ENUMERATION RESISTANCE:
    Unknown username and wrong password produce the same AUTH result with
    the same message, and both spend one bcrypt verification.

============================================================================
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import logging
import uuid

from services.credentials import PasswordHasher
from services.order_models import (
    Account,
    AccountResult,
    AccountRole,
    AuthResult,
    ErrorKind,
    OrderErrorCode,
    OperationResult,
)
from services.persistence import (
    AccountStore,
    StoreConstraintError,
    TransientStoreError,
)
from services.retry_policy import RetryPolicy
from services.token_service import TokenService
from services.validation import validate_login, validate_register
from app.observability.metrics import record_auth_attempt

# Configure module logger
logger = logging.getLogger(__name__)


INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
ACCOUNT_INACTIVE_MESSAGE = "Account is deactivated"
ACCOUNT_EXISTS_MESSAGE = "User already exists"
ACCOUNT_NOT_FOUND_MESSAGE = "Account not found"
INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AccountService:
    """
    Registration, authentication and profile lookup.

    Reliability Level: L5 High
    Input Constraints: AccountStore bound to the current request's session
    Side Effects: Writes accounts, issues tokens
    """

    def __init__(
        self,
        account_store: AccountStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        retry_policy: Optional[RetryPolicy] = None,
        log: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._accounts = account_store
        self._hasher = hasher
        self._tokens = tokens
        self._logger = log or logger
        self._retry = retry_policy or RetryPolicy(log=self._logger)
        self._clock = clock or _utc_now

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _failure(result_cls, kind: ErrorKind, code: str, message: str, correlation_id: str, field_errors=None):
        return result_cls(
            success=False,
            error_kind=kind,
            error_code=code,
            error_message=message,
            correlation_id=correlation_id,
            field_errors=field_errors or [],
        )

    def _internal_failure(self, result_cls, operation: str, error: Exception, correlation_id: str):
        code = OrderErrorCode.TRANSIENT_STORE if isinstance(error, TransientStoreError) else OrderErrorCode.INTERNAL
        self._logger.error(
            f"[{code}] {operation} failed: {type(error).__name__}: {error} | "
            f"correlation_id={correlation_id}",
            exc_info=code == OrderErrorCode.INTERNAL,
        )
        return self._failure(result_cls, ErrorKind.INTERNAL, code, INTERNAL_ERROR_MESSAGE, correlation_id)

    def _issue(self, account: Account, correlation_id: str) -> AuthResult:
        issued = self._tokens.issue(account.id, account.username, account.role.value)
        return AuthResult(
            success=True,
            account=account,
            token=issued.token,
            expires_at=issued.expires_at,
            correlation_id=correlation_id,
        )

    def _create(self, username: str, email: str, password: str, role: AccountRole, correlation_id: str) -> Account:
        account = Account(
            id=0,
            username=username,
            email=email,
            password_hash=self._hasher.hash(password),
            role=role,
            is_active=True,
            created_at=self._clock(),
        )
        return self._retry.execute(lambda: self._accounts.add(account), "register", correlation_id)

    # =========================================================================
    # register() Method
    # =========================================================================

    def register(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        correlation_id: Optional[str] = None,
    ) -> AuthResult:
        """
        Register a standard account and sign the caller in.

        Fails BUSINESS_RULE (BUS-002) if the username OR the email is
        already taken.
        """
        corr_id = correlation_id or str(uuid.uuid4())

        errors = validate_register(username, email, password)
        if errors:
            self._logger.warning(
                f"[VALIDATION] register rejected | "
                f"fields={','.join(sorted({e.field for e in errors}))} | "
                f"correlation_id={corr_id}"
            )
            record_auth_attempt("register", OrderErrorCode.VALIDATION_FAILED, corr_id)
            return self._failure(
                AuthResult,
                ErrorKind.VALIDATION,
                OrderErrorCode.VALIDATION_FAILED,
                "Request validation failed",
                corr_id,
                errors,
            )

        try:
            if self._accounts.exists_username_or_email(username, email):
                return self._account_exists(username, corr_id)
            account = self._create(username, email, password, AccountRole.STANDARD, corr_id)
        except StoreConstraintError:
            # Lost a race with a concurrent registration of the same name
            return self._account_exists(username, corr_id)
        except Exception as e:
            return self._internal_failure(AuthResult, "register", e, corr_id)

        record_auth_attempt("register", "success", corr_id)
        self._logger.info(
            f"[AUDIT] Account registered | "
            f"account_id={account.id} | "
            f"username={account.username} | "
            f"role={account.role.value} | "
            f"correlation_id={corr_id}"
        )
        return self._issue(account, corr_id)

    def _account_exists(self, username: str, correlation_id: str) -> AuthResult:
        self._logger.warning(
            f"[BUSINESS] Registration refused, account exists | "
            f"username={username} | "
            f"correlation_id={correlation_id}"
        )
        record_auth_attempt("register", OrderErrorCode.ACCOUNT_EXISTS, correlation_id)
        return self._failure(
            AuthResult,
            ErrorKind.BUSINESS_RULE,
            OrderErrorCode.ACCOUNT_EXISTS,
            ACCOUNT_EXISTS_MESSAGE,
            correlation_id,
        )

    # =========================================================================
    # login() Method
    # =========================================================================

    def login(
        self,
        username: Optional[str],
        password: Optional[str],
        correlation_id: Optional[str] = None,
    ) -> AuthResult:
        """
        Authenticate and issue a token.

        Unknown user and wrong password are indistinguishable (SEC-010).
        A deactivated account with the right password gets SEC-011.
        """
        corr_id = correlation_id or str(uuid.uuid4())

        errors = validate_login(username, password)
        if errors:
            record_auth_attempt("login", OrderErrorCode.VALIDATION_FAILED, corr_id)
            return self._failure(
                AuthResult,
                ErrorKind.VALIDATION,
                OrderErrorCode.VALIDATION_FAILED,
                "Request validation failed",
                corr_id,
                errors,
            )

        try:
            account = self._accounts.find_by_username(username)
        except Exception as e:
            return self._internal_failure(AuthResult, "login", e, corr_id)

        if account is None:
            self._hasher.burn(password)
            verified = False
        else:
            verified = self._hasher.verify(password, account.password_hash)

        if not verified:
            self._logger.warning(
                f"[AUTH] Login failed | "
                f"username={username} | "
                f"correlation_id={corr_id}"
            )
            record_auth_attempt("login", OrderErrorCode.INVALID_CREDENTIALS, corr_id)
            return self._failure(
                AuthResult,
                ErrorKind.AUTH,
                OrderErrorCode.INVALID_CREDENTIALS,
                INVALID_CREDENTIALS_MESSAGE,
                corr_id,
            )

        if not account.is_active:
            self._logger.warning(
                f"[AUTH] Login refused, account deactivated | "
                f"account_id={account.id} | "
                f"correlation_id={corr_id}"
            )
            record_auth_attempt("login", OrderErrorCode.ACCOUNT_INACTIVE, corr_id)
            return self._failure(
                AuthResult,
                ErrorKind.AUTH,
                OrderErrorCode.ACCOUNT_INACTIVE,
                ACCOUNT_INACTIVE_MESSAGE,
                corr_id,
            )

        record_auth_attempt("login", "success", corr_id)
        self._logger.info(
            f"[AUDIT] Login succeeded | "
            f"account_id={account.id} | "
            f"role={account.role.value} | "
            f"correlation_id={corr_id}"
        )
        return self._issue(account, corr_id)

    # =========================================================================
    # Profile and administration
    # =========================================================================

    def get_account(self, account_id: int, correlation_id: Optional[str] = None) -> AccountResult:
        """Summary of an active account, otherwise NOT_FOUND."""
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            account = self._accounts.find_by_id(account_id)
        except Exception as e:
            return self._internal_failure(AccountResult, "get_account", e, corr_id)

        if account is None or not account.is_active:
            return self._failure(
                AccountResult,
                ErrorKind.NOT_FOUND,
                OrderErrorCode.ACCOUNT_NOT_FOUND,
                ACCOUNT_NOT_FOUND_MESSAGE,
                corr_id,
            )
        return AccountResult(success=True, account=account, correlation_id=corr_id)

    def deactivate_account(self, account_id: int, correlation_id: Optional[str] = None) -> AccountResult:
        """
        Revoke access without deleting the account.

        Tokens already issued stay cryptographically valid until expiry;
        the HTTP layer re-checks is_active on every authenticated request.
        """
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            account = self._accounts.find_by_id(account_id)
            if account is None:
                return self._failure(
                    AccountResult,
                    ErrorKind.NOT_FOUND,
                    OrderErrorCode.ACCOUNT_NOT_FOUND,
                    ACCOUNT_NOT_FOUND_MESSAGE,
                    corr_id,
                )
            self._retry.execute(
                lambda: self._accounts.set_active(account_id, False),
                "deactivate_account",
                corr_id,
            )
            account.is_active = False
        except Exception as e:
            return self._internal_failure(AccountResult, "deactivate_account", e, corr_id)

        self._logger.info(
            f"[AUDIT] Account deactivated | "
            f"account_id={account_id} | "
            f"correlation_id={corr_id}"
        )
        return AccountResult(success=True, account=account, correlation_id=corr_id)

    def ensure_admin(
        self,
        username: str,
        email: str,
        password: str,
        correlation_id: Optional[str] = None,
    ) -> OperationResult:
        """
        Create the bootstrap administrator if the username is free.

        An existing account with that username is left untouched.
        """
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            if self._accounts.find_by_username(username) is not None:
                self._logger.info(
                    f"[BOOTSTRAP] Administrator already present | username={username}"
                )
                return OperationResult(success=True, correlation_id=corr_id)
            account = self._create(username, email, password, AccountRole.ADMINISTRATOR, corr_id)
        except Exception as e:
            return self._internal_failure(OperationResult, "ensure_admin", e, corr_id)

        self._logger.info(
            f"[BOOTSTRAP] Administrator created | "
            f"account_id={account.id} | "
            f"username={username} | "
            f"correlation_id={corr_id}"
        )
        return OperationResult(success=True, correlation_id=corr_id)


__all__ = ["AccountService"]
