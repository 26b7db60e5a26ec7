"""
============================================================================
Order Management API - Credential Hasher
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Plaintext secrets as str
Side Effects: None (CPU-bound hashing)

bcrypt with a fixed work factor (default 12). bcrypt only reads the
first 72 bytes of a secret, so the UTF-8 encoding is truncated there
explicitly rather than left to the library.

verify() never raises: a None, empty or malformed stored hash simply
does not match. bcrypt.checkpw compares in constant time.

============================================================================
"""

from typing import Optional
import logging

import bcrypt

# Configure module logger
logger = logging.getLogger(__name__)


DEFAULT_WORK_FACTOR = 12
BCRYPT_MAX_SECRET_BYTES = 72


def _encode(secret: str) -> bytes:
    return secret.encode("utf-8")[:BCRYPT_MAX_SECRET_BYTES]


class PasswordHasher:
    """
    Salted adaptive one-way hashing.

    Reliability Level: L5 High
    """

    def __init__(self, work_factor: int = DEFAULT_WORK_FACTOR):
        if not 4 <= work_factor <= 31:
            raise ValueError("bcrypt work factor must be between 4 and 31")
        self.work_factor = work_factor
        self._dummy_hash: Optional[bytes] = None

    def hash(self, secret: str) -> str:
        """Return a bcrypt hash string ($2b$...) for the secret."""
        hashed = bcrypt.hashpw(_encode(secret), bcrypt.gensalt(rounds=self.work_factor))
        return hashed.decode("ascii")

    def verify(self, secret: Optional[str], hashed: Optional[str]) -> bool:
        """True only if secret matches hashed. Never raises."""
        if not secret or not hashed:
            return False
        try:
            return bcrypt.checkpw(_encode(secret), hashed.encode("ascii"))
        except (ValueError, TypeError, UnicodeEncodeError):
            logger.debug("[AUTH] Stored hash is malformed, treating as mismatch")
            return False

    def burn(self, secret: Optional[str]) -> None:
        """
        Spend one verification's worth of time against a throwaway hash.

        Used when the account does not exist so that login latency does
        not reveal whether a username is registered.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"unused-dummy-secret", bcrypt.gensalt(rounds=self.work_factor))
        bcrypt.checkpw(_encode(secret or ""), self._dummy_hash)


__all__ = ["PasswordHasher", "DEFAULT_WORK_FACTOR"]
