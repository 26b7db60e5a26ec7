"""
============================================================================
Order Management API
Auth Schemas - Pydantic Models for Registration, Login and Profile
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Field rules are enforced by services.validation, so the
                   request models only fix the JSON shape
Side Effects: None (pure data)

============================================================================
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from services.order_models import Account


# ============================================================================
# REQUEST MODELS
# ============================================================================

class RegisterRequest(BaseModel):
    """Registration body."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "username": "alice",
                "email": "alice@example.com",
                "password": "Secur3!pass",
            }
        }
    )

    username: Optional[str] = Field(None, description="3-50 chars: letters, digits, '.', '_' or '-'")
    email: Optional[str] = Field(None, description="Unique e-mail address")
    password: Optional[str] = Field(None, description="8-100 chars with upper, lower and digit")


class LoginRequest(BaseModel):
    """Login body."""

    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(None, description="Registered username")
    password: Optional[str] = Field(None, description="Account password")


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class AccountOut(BaseModel):
    """Public account summary (never includes the password hash)."""
    id: int
    username: str
    email: str
    role: str = Field(..., description="User or Admin")
    is_active: bool
    created_at: Optional[str] = Field(None, description="ISO-8601 UTC")

    @classmethod
    def from_account(cls, account: Account) -> "AccountOut":
        return cls(**account.to_dict())


class AuthResponse(BaseModel):
    """Issued credential plus the account it belongs to."""
    account: AccountOut
    token: str = Field(..., description="Bearer token (HS256 JWT)")
    token_type: str = "Bearer"
    expires_at: str = Field(..., description="ISO-8601 UTC expiry")
    correlation_id: str
