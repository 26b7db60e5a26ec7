"""
============================================================================
Order Management API - Configuration
============================================================================

Reliability Level: L5 High (Production Tier)
Traceability: Configuration is logged on load (secrets redacted)

This module provides configuration management for the API:
- Environment variable parsing with type safety
- Default values for optional configuration
- Validation of required configuration
- Fail-closed behavior on missing or unsafe config (CFG-001)

The config object is built once by the application factory and passed
explicitly to everything that needs it.

ENVIRONMENT VARIABLES:
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./orders.db)
    - DB_ECHO: Echo SQL statements (default: false)
    - JWT_SECRET: Token signing secret, >= 32 chars (REQUIRED)
    - JWT_ISSUER: Token issuer (default: OrderManagementAPI)
    - JWT_AUDIENCE: Token audience (default: OrderManagementClient)
    - JWT_EXPIRATION_MINUTES: Token lifetime (default: 60)
    - BCRYPT_WORK_FACTOR: bcrypt cost (default: 12)
    - STORE_MAX_RETRIES: Retries on transient store faults (default: 3)
    - STORE_RETRY_BASE_DELAY_MS: First backoff delay (default: 100)
    - ORDER_NUMBER_PREFIX: Order number prefix (default: ORD)
    - ORDER_NUMBER_MAX_ATTEMPTS: Collision retry cap (default: 10)
    - ORDER_STRICT_STATUS_TRANSITIONS: Enforce status table (default: false)
    - CORS_ORIGINS: Comma-separated allowed origins (default: none)
    - ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD: Bootstrap administrator
    - LOG_LEVEL: Root log level (default: INFO)

ERROR CODES:
    - CFG-001: Required configuration missing or invalid

============================================================================
"""

from typing import Optional, List, Mapping
from dataclasses import dataclass, field
import logging
import os

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ConfigErrorCode:
    """Configuration-specific error codes for audit logging."""
    CONFIG_INVALID = "CFG-001"


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_DATABASE_URL = "sqlite:///./orders.db"
DEFAULT_JWT_ISSUER = "OrderManagementAPI"
DEFAULT_JWT_AUDIENCE = "OrderManagementClient"
DEFAULT_JWT_EXPIRATION_MINUTES = 60
DEFAULT_BCRYPT_WORK_FACTOR = 12
DEFAULT_STORE_MAX_RETRIES = 3
DEFAULT_STORE_RETRY_BASE_DELAY_MS = 100
DEFAULT_ORDER_NUMBER_PREFIX = "ORD"
DEFAULT_ORDER_NUMBER_MAX_ATTEMPTS = 10
DEFAULT_LOG_LEVEL = "INFO"

MIN_JWT_SECRET_LENGTH = 32

_TRUE_VALUES = ("true", "1", "yes", "on")


# =============================================================================
# Configuration Validation Exception
# =============================================================================

class OrderConfigurationError(Exception):
    """
    Raised when configuration is invalid or missing.

    Raised during startup so the service never runs half-configured.
    """

    def __init__(self, message: str, error_code: str = ConfigErrorCode.CONFIG_INVALID):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# OrderApiConfig Class
# =============================================================================

@dataclass
class OrderApiConfig:
    """
    Order Management API configuration.

    Reliability Level: L5 High
    Input Constraints: jwt_secret must be at least 32 characters
    Side Effects: Logs configuration on validate()
    """

    database_url: str = DEFAULT_DATABASE_URL
    db_echo: bool = False

    jwt_secret: str = ""
    jwt_issuer: str = DEFAULT_JWT_ISSUER
    jwt_audience: str = DEFAULT_JWT_AUDIENCE
    jwt_expiration_minutes: int = DEFAULT_JWT_EXPIRATION_MINUTES

    bcrypt_work_factor: int = DEFAULT_BCRYPT_WORK_FACTOR

    store_max_retries: int = DEFAULT_STORE_MAX_RETRIES
    store_retry_base_delay_ms: int = DEFAULT_STORE_RETRY_BASE_DELAY_MS

    order_number_prefix: str = DEFAULT_ORDER_NUMBER_PREFIX
    order_number_max_attempts: int = DEFAULT_ORDER_NUMBER_MAX_ATTEMPTS

    # Off: any status 0-4 may be set on update
    strict_status_transitions: bool = False

    cors_origins: List[str] = field(default_factory=list)

    admin_username: Optional[str] = None
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None

    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def store_retry_base_delay_seconds(self) -> float:
        return self.store_retry_base_delay_ms / 1000.0

    @property
    def bootstrap_admin_enabled(self) -> bool:
        return bool(self.admin_username and self.admin_email and self.admin_password)

    def validate(self) -> None:
        """
        Validate configuration completeness.

        Raises:
            OrderConfigurationError: listing every problem found
        """
        errors: List[str] = []

        if not self.database_url:
            errors.append("DATABASE_URL must not be empty")

        if len(self.jwt_secret or "") < MIN_JWT_SECRET_LENGTH:
            errors.append(f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters")

        if self.jwt_expiration_minutes <= 0:
            errors.append(
                f"JWT_EXPIRATION_MINUTES must be positive, got: {self.jwt_expiration_minutes}"
            )

        if not 4 <= self.bcrypt_work_factor <= 31:
            errors.append(
                f"BCRYPT_WORK_FACTOR must be between 4 and 31, got: {self.bcrypt_work_factor}"
            )

        if self.store_max_retries < 0:
            errors.append(f"STORE_MAX_RETRIES must be >= 0, got: {self.store_max_retries}")

        if self.store_retry_base_delay_ms < 0:
            errors.append(
                f"STORE_RETRY_BASE_DELAY_MS must be >= 0, got: {self.store_retry_base_delay_ms}"
            )

        if not self.order_number_prefix or "-" in self.order_number_prefix:
            errors.append("ORDER_NUMBER_PREFIX must be non-empty and must not contain '-'")

        if self.order_number_max_attempts < 1:
            errors.append(
                f"ORDER_NUMBER_MAX_ATTEMPTS must be >= 1, got: {self.order_number_max_attempts}"
            )

        admin_fields = [self.admin_username, self.admin_email, self.admin_password]
        if any(admin_fields) and not all(admin_fields):
            errors.append("ADMIN_USERNAME, ADMIN_EMAIL and ADMIN_PASSWORD must be set together")

        if errors:
            error_msg = "Configuration validation failed: " + "; ".join(errors)
            logger.error(f"[{ConfigErrorCode.CONFIG_INVALID}] {error_msg}")
            raise OrderConfigurationError(error_msg)

        logger.info(
            f"[CONFIG] Configuration validated | "
            f"jwt_issuer={self.jwt_issuer} | "
            f"jwt_expiration_minutes={self.jwt_expiration_minutes} | "
            f"store_max_retries={self.store_max_retries} | "
            f"strict_status_transitions={self.strict_status_transitions} | "
            f"bootstrap_admin={self.bootstrap_admin_enabled}"
        )

    @classmethod
    def from_environment(
        cls,
        validate: bool = True,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "OrderApiConfig":
        """
        Load configuration from environment variables.

        Args:
            validate: Whether to validate configuration after loading
            environ: Mapping to read instead of os.environ

        Raises:
            OrderConfigurationError: If validation is requested and fails
        """
        env = os.environ if environ is None else environ

        def read_int(name: str, default: int) -> int:
            raw = env.get(name, str(default))
            try:
                return int(raw.strip())
            except ValueError:
                logger.warning(
                    f"[CONFIG] Invalid {name} value: {raw}, using default: {default}"
                )
                return default

        def read_bool(name: str, default: bool) -> bool:
            raw = env.get(name)
            if raw is None:
                return default
            return raw.lower().strip() in _TRUE_VALUES

        def read_optional(name: str) -> Optional[str]:
            raw = env.get(name, "").strip()
            return raw or None

        origins = [
            origin.strip()
            for origin in env.get("CORS_ORIGINS", "").split(",")
            if origin.strip()
        ]

        config = cls(
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL).strip(),
            db_echo=read_bool("DB_ECHO", False),
            jwt_secret=env.get("JWT_SECRET", ""),
            jwt_issuer=env.get("JWT_ISSUER", DEFAULT_JWT_ISSUER),
            jwt_audience=env.get("JWT_AUDIENCE", DEFAULT_JWT_AUDIENCE),
            jwt_expiration_minutes=read_int("JWT_EXPIRATION_MINUTES", DEFAULT_JWT_EXPIRATION_MINUTES),
            bcrypt_work_factor=read_int("BCRYPT_WORK_FACTOR", DEFAULT_BCRYPT_WORK_FACTOR),
            store_max_retries=read_int("STORE_MAX_RETRIES", DEFAULT_STORE_MAX_RETRIES),
            store_retry_base_delay_ms=read_int("STORE_RETRY_BASE_DELAY_MS", DEFAULT_STORE_RETRY_BASE_DELAY_MS),
            order_number_prefix=env.get("ORDER_NUMBER_PREFIX", DEFAULT_ORDER_NUMBER_PREFIX).strip(),
            order_number_max_attempts=read_int("ORDER_NUMBER_MAX_ATTEMPTS", DEFAULT_ORDER_NUMBER_MAX_ATTEMPTS),
            strict_status_transitions=read_bool("ORDER_STRICT_STATUS_TRANSITIONS", False),
            cors_origins=origins,
            admin_username=read_optional("ADMIN_USERNAME"),
            admin_email=read_optional("ADMIN_EMAIL"),
            admin_password=read_optional("ADMIN_PASSWORD"),
            log_level=env.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper().strip(),
        )

        logger.info(
            f"[CONFIG] Loading configuration from environment | "
            f"DATABASE_URL_SCHEME={config.database_url.split(':', 1)[0]} | "
            f"JWT_SECRET_SET={bool(config.jwt_secret)} | "
            f"CORS_ORIGINS_COUNT={len(origins)}"
        )

        if validate:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Configuration for logging. Secrets are redacted."""
        return {
            "database_url_scheme": self.database_url.split(":", 1)[0],
            "db_echo": self.db_echo,
            "jwt_secret": "***" if self.jwt_secret else "",
            "jwt_issuer": self.jwt_issuer,
            "jwt_audience": self.jwt_audience,
            "jwt_expiration_minutes": self.jwt_expiration_minutes,
            "bcrypt_work_factor": self.bcrypt_work_factor,
            "store_max_retries": self.store_max_retries,
            "store_retry_base_delay_ms": self.store_retry_base_delay_ms,
            "order_number_prefix": self.order_number_prefix,
            "order_number_max_attempts": self.order_number_max_attempts,
            "strict_status_transitions": self.strict_status_transitions,
            "cors_origins": list(self.cors_origins),
            "bootstrap_admin": self.bootstrap_admin_enabled,
            "log_level": self.log_level,
        }


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "OrderApiConfig",
    "OrderConfigurationError",
    "ConfigErrorCode",
    "DEFAULT_DATABASE_URL",
    "MIN_JWT_SECRET_LENGTH",
]
