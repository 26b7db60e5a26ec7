"""
============================================================================
Order Management API - Token Issuer/Validator
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Signing secret of at least 32 characters
Side Effects: None

HS256 JSON Web Tokens via PyJWT.

CLAIMS:
    sub  - account id (string)
    name - username
    role - "User" | "Admin"
    iss  - issuer (default OrderManagementAPI)
    aud  - audience (default OrderManagementClient)
    iat  - issued at
    exp  - expiry (default 60 minutes)

Validation checks signature, issuer, audience and expiry with zero
clock skew. validate() and decode() never raise on bad input.

============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Callable
import logging

import jwt

# Configure module logger
logger = logging.getLogger(__name__)


ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
DEFAULT_ISSUER = "OrderManagementAPI"
DEFAULT_AUDIENCE = "OrderManagementClient"
DEFAULT_EXPIRATION_MINUTES = 60


@dataclass
class TokenClaims:
    """Verified identity carried by a token."""
    subject_id: int
    username: str
    role: str
    expires_at: datetime


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Issues and validates signed, time-bounded credentials.

    Reliability Level: L5 High
    """

    def __init__(
        self,
        secret: str,
        issuer: str = DEFAULT_ISSUER,
        audience: str = DEFAULT_AUDIENCE,
        expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT secret must be at least {MIN_SECRET_LENGTH} characters")
        if expiration_minutes <= 0:
            raise ValueError("expiration_minutes must be positive")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.expiration_minutes = expiration_minutes
        self._clock = clock or _utc_now

    def issue(self, subject_id: int, username: str, role: str) -> IssuedToken:
        """Sign a token for the given identity."""
        now = self._clock()
        expires_at = now + timedelta(minutes=self.expiration_minutes)
        payload = {
            "sub": str(subject_id),
            "name": username,
            "role": role,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedToken(token=token, expires_at=expires_at)

    def decode(self, token: Optional[str]) -> Optional[TokenClaims]:
        """
        Verify a token and return its claims, or None if it is invalid.

        Malformed strings, bad signatures, wrong issuer/audience, expired
        tokens and missing claims all yield None.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                leeway=0,
                options={"require": ["sub", "exp", "iss", "aud"]},
            )
            return TokenClaims(
                subject_id=int(payload["sub"]),
                username=payload.get("name", ""),
                role=payload.get("role", ""),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except jwt.ExpiredSignatureError:
            logger.debug("[AUTH] Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug(f"[AUTH] Token rejected | reason={type(e).__name__}")
            return None
        except (ValueError, TypeError, KeyError):
            logger.debug("[AUTH] Token carries malformed claims")
            return None

    def validate(self, token: Optional[str]) -> bool:
        """True if the token is authentic, unexpired and addressed to us."""
        return self.decode(token) is not None


__all__ = ["TokenService", "TokenClaims", "IssuedToken", "MIN_SECRET_LENGTH"]
