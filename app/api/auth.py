"""
============================================================================
Order Management API
Auth API Endpoints
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: JSON bodies; Bearer token for profile/admin routes
Side Effects:
    - Database writes to accounts table
    - Audit log entries for registrations and logins
    - Prometheus auth counters

ENDPOINTS:
    POST /api/auth/register                  - Create account, return token
    POST /api/auth/login                     - Authenticate, return token
    GET  /api/auth/profile                   - Current account summary
    POST /api/auth/accounts/{id}/deactivate  - Revoke access (Admin)

ERROR CODES:
    VAL-001: Request validation failed
    BUS-002: Username or email already registered
    SEC-010: Invalid credentials
    SEC-011: Account deactivated
    SEC-001: Missing/invalid authentication
    SEC-090: Administrator role required
    NF-002:  Account not found

============================================================================
"""

import logging

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    Principal,
    get_account_service,
    get_correlation_id,
    get_current_principal,
    require_admin,
)
from app.api.errors import raise_for_result
from app.schemas.auth import AccountOut, AuthResponse, LoginRequest, RegisterRequest
from services.account_service import AccountService
from services.order_models import AuthResult

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# Router Configuration
# ============================================================================

router = APIRouter()


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        account=AccountOut.from_account(result.account),
        token=result.token,
        expires_at=result.expires_at.isoformat(),
        correlation_id=result.correlation_id,
    )


# ============================================================================
# Endpoints
# ============================================================================

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    summary="Register a new account",
)
def register(
    body: RegisterRequest,
    service: AccountService = Depends(get_account_service),
    correlation_id: str = Depends(get_correlation_id),
) -> AuthResponse:
    result = service.register(body.username, body.email, body.password, correlation_id)
    raise_for_result(result)
    return _auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and obtain a token",
)
def login(
    body: LoginRequest,
    service: AccountService = Depends(get_account_service),
    correlation_id: str = Depends(get_correlation_id),
) -> AuthResponse:
    result = service.login(body.username, body.password, correlation_id)
    raise_for_result(result)
    return _auth_response(result)


@router.get(
    "/profile",
    response_model=AccountOut,
    summary="Current account",
)
def profile(
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
    correlation_id: str = Depends(get_correlation_id),
) -> AccountOut:
    result = service.get_account(principal.account_id, correlation_id)
    raise_for_result(result)
    return AccountOut.from_account(result.account)


@router.post(
    "/accounts/{account_id}/deactivate",
    response_model=AccountOut,
    summary="Deactivate an account (Admin)",
)
def deactivate_account(
    account_id: int,
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
    correlation_id: str = Depends(get_correlation_id),
) -> AccountOut:
    logger.info(
        f"[AUTH-API] Deactivation requested | "
        f"account_id={account_id} | "
        f"admin_id={admin.account_id} | "
        f"correlation_id={correlation_id}"
    )
    result = service.deactivate_account(account_id, correlation_id)
    raise_for_result(result)
    return AccountOut.from_account(result.account)
