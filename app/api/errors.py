"""
============================================================================
Order Management API
API Error Mapping - Result Kinds to HTTP Responses
============================================================================

Reliability Level: L5 High (Production Tier)
Side Effects: None

STATUS MAPPING:
    VALIDATION     → 400
    BUSINESS_RULE  → 400
    NOT_FOUND      → 404
    AUTH           → 401
    INTERNAL       → 500

Every error body has the same shape:
    {"detail": {"error_code", "message", "timestamp", "correlation_id",
                "field_errors"?}}

============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from services.order_models import ErrorKind, FieldError, OperationResult


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.BUSINESS_RULE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AUTH: 401,
    ErrorKind.INTERNAL: 500,
}


def error_detail(
    error_code: str,
    message: str,
    correlation_id: Optional[str] = None,
    field_errors: Optional[List[FieldError]] = None,
) -> Dict[str, Any]:
    """Build the standard error body."""
    detail: Dict[str, Any] = {
        "error_code": error_code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "correlation_id": correlation_id,
    }
    if field_errors:
        detail["field_errors"] = [e.to_dict() for e in field_errors]
    return detail


def api_error(
    status_code: int,
    error_code: str,
    message: str,
    correlation_id: Optional[str] = None,
    field_errors: Optional[List[FieldError]] = None,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=error_detail(error_code, message, correlation_id, field_errors),
    )


def raise_for_result(result: OperationResult) -> None:
    """Raise the HTTPException matching a failed result; no-op on success."""
    if result.success:
        return
    status_code = STATUS_BY_KIND.get(result.error_kind, 500)
    raise api_error(
        status_code,
        result.error_code,
        result.error_message,
        result.correlation_id,
        result.field_errors,
    )
