"""
============================================================================
Order Management API
API Dependencies - Authentication and Service Wiring
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints:
    - Bearer token (HS256 JWT) in the Authorization header
    - app.state populated by the application lifespan
Side Effects: Reads the accounts table on every authenticated request

Everything a router needs is built per request from app.state (config,
hasher, token service) and the request's database session. There are no
module-level singletons.

ERROR CODES:
    SEC-001: Missing or invalid authentication
    SEC-090: Role not permitted

============================================================================
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.database.session import get_db
from services.account_service import AccountService
from services.credentials import PasswordHasher
from services.order_config import OrderApiConfig
from services.order_models import AccountRole, OrderErrorCode
from services.order_service import OrderLifecycleService
from services.persistence import AccountStore, OrderStore
from services.retry_policy import RetryPolicy
from services.token_service import TokenService

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# Application State Accessors
# ============================================================================

def get_config(request: Request) -> OrderApiConfig:
    return request.app.state.config


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_correlation_id(
    x_correlation_id: Optional[str] = Header(None, description="Caller-supplied trace id")
) -> str:
    """Use the caller's X-Correlation-ID when given, otherwise mint one."""
    if x_correlation_id and x_correlation_id.strip():
        return x_correlation_id.strip()[:64]
    return str(uuid.uuid4())


def _retry_policy(config: OrderApiConfig) -> RetryPolicy:
    return RetryPolicy(
        max_retries=config.store_max_retries,
        base_delay=config.store_retry_base_delay_seconds,
    )


# ============================================================================
# Service Factories
# ============================================================================

def get_account_service(
    db: Session = Depends(get_db),
    config: OrderApiConfig = Depends(get_config),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> AccountService:
    return AccountService(
        account_store=AccountStore(db),
        hasher=hasher,
        tokens=tokens,
        retry_policy=_retry_policy(config),
    )


def get_order_service(
    db: Session = Depends(get_db),
    config: OrderApiConfig = Depends(get_config),
) -> OrderLifecycleService:
    return OrderLifecycleService(
        order_store=OrderStore(db),
        account_store=AccountStore(db),
        config=config,
        retry_policy=_retry_policy(config),
    )


# ============================================================================
# Authentication
# ============================================================================

@dataclass
class Principal:
    """The authenticated caller."""
    account_id: int
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMINISTRATOR.value


def get_current_principal(
    authorization: Optional[str] = Header(None, description="Bearer token"),
    tokens: TokenService = Depends(get_token_service),
    db: Session = Depends(get_db),
    correlation_id: str = Depends(get_correlation_id),
) -> Principal:
    """
    Resolve the caller from the Bearer token.

    The account must still exist and be active, so deactivation takes
    effect immediately rather than at token expiry.

    Raises:
        HTTPException: 401 SEC-001 if authentication missing/invalid
    """
    if not authorization:
        logger.warning(f"[{OrderErrorCode.AUTH_REQUIRED}] Missing Authorization header | correlation_id={correlation_id}")
        raise api_error(
            401,
            OrderErrorCode.AUTH_REQUIRED,
            "Authorization header required. Use: Bearer <token>",
            correlation_id,
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        logger.warning(f"[{OrderErrorCode.AUTH_REQUIRED}] Invalid authorization format | correlation_id={correlation_id}")
        raise api_error(
            401,
            OrderErrorCode.AUTH_REQUIRED,
            "Invalid authorization format. Use: Bearer <token>",
            correlation_id,
        )

    claims = tokens.decode(token.strip())
    if claims is None:
        logger.warning(f"[{OrderErrorCode.AUTH_REQUIRED}] Token rejected | correlation_id={correlation_id}")
        raise api_error(401, OrderErrorCode.AUTH_REQUIRED, "Invalid or expired token", correlation_id)

    account = AccountStore(db).find_by_id(claims.subject_id)
    if account is None or not account.is_active:
        logger.warning(
            f"[{OrderErrorCode.AUTH_REQUIRED}] Token subject inactive or missing | "
            f"account_id={claims.subject_id} | "
            f"correlation_id={correlation_id}"
        )
        raise api_error(401, OrderErrorCode.AUTH_REQUIRED, "Invalid or expired token", correlation_id)

    return Principal(account_id=account.id, username=account.username, role=account.role.value)


def require_admin(
    principal: Principal = Depends(get_current_principal),
    correlation_id: str = Depends(get_correlation_id),
) -> Principal:
    """
    Raises:
        HTTPException: 403 SEC-090 if the caller is not an administrator
    """
    if not principal.is_admin:
        logger.warning(
            f"[{OrderErrorCode.ROLE_FORBIDDEN}] Administrator role required | "
            f"account_id={principal.account_id} | "
            f"correlation_id={correlation_id}"
        )
        raise api_error(403, OrderErrorCode.ROLE_FORBIDDEN, "Administrator role required", correlation_id)
    return principal
