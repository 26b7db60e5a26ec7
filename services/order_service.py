"""
============================================================================
Order Management API - Order Lifecycle Service
============================================================================

Reliability Level: L5 High (Production Tier)
Decimal Integrity: Totals derived from line items, never client-supplied
Traceability: Every operation logs and returns its correlation_id

ORDER LIFECYCLE:
    create   → status=PENDING, approval_status=PENDING
    update   → owner edits description/status/items (total recomputed)
    delete   → soft delete by owner (row kept for audit)
    approve  → admin: APPROVED, approved_at=now, rejection_reason cleared
    reject   → admin: REJECTED, reason recorded, approved_at cleared

OWNERSHIP:
    get/update/delete only see the requester's own non-deleted orders.
    "Missing" and "not yours" produce the same NOT_FOUND result.

PERSISTENCE:
    Mutations are saved through the RetryPolicy. Transient faults that
    outlive the retries, and any unexpected exception, are returned as
    INTERNAL with a generic message; details go to the log only.

============================================================================
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Type, TypeVar
import logging
import uuid

from services.order_config import OrderApiConfig
from services.order_models import (
    ApprovalStatus,
    ErrorKind,
    FieldError,
    Order,
    OrderErrorCode,
    OrderItemInput,
    OrderListResult,
    OrderResult,
    OperationResult,
    OrderStatus,
)
from services.order_numbering import (
    OrderNumberExhaustedError,
    OrderNumberGenerator,
    build_order_items,
    compute_total,
)
from services.order_state_machine import is_terminal_state, validate_transition
from services.persistence import AccountStore, OrderStore, TransientStoreError
from services.retry_policy import RetryPolicy
from services.validation import (
    validate_create_order,
    validate_reject_reason,
    validate_update_order,
)
from app.observability.metrics import record_order_created, record_order_decision

# Configure module logger
logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OperationResult)

ZERO = Decimal("0")

ORDER_NOT_FOUND_MESSAGE = "Order not found"
INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycleService:
    """
    Owns order create/read/update/soft-delete/approve/reject.

    Reliability Level: L5 High
    Input Constraints: Stores bound to the current request's session
    Side Effects: Database writes, audit logging, Prometheus counters
    """

    def __init__(
        self,
        order_store: OrderStore,
        account_store: AccountStore,
        config: Optional[OrderApiConfig] = None,
        numbering: Optional[OrderNumberGenerator] = None,
        retry_policy: Optional[RetryPolicy] = None,
        log: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._orders = order_store
        self._accounts = account_store
        self._config = config or OrderApiConfig()
        self._logger = log or logger
        self._numbering = numbering or OrderNumberGenerator(
            prefix=self._config.order_number_prefix,
            max_attempts=self._config.order_number_max_attempts,
            log=self._logger,
        )
        self._retry = retry_policy or RetryPolicy(
            max_retries=self._config.store_max_retries,
            base_delay=self._config.store_retry_base_delay_seconds,
            log=self._logger,
        )
        self._clock = clock or _utc_now

    # =========================================================================
    # Result helpers
    # =========================================================================

    @staticmethod
    def _failure(
        result_cls: Type[R],
        kind: ErrorKind,
        code: str,
        message: str,
        correlation_id: str,
        field_errors: Optional[List[FieldError]] = None,
    ) -> R:
        return result_cls(
            success=False,
            error_kind=kind,
            error_code=code,
            error_message=message,
            correlation_id=correlation_id,
            field_errors=field_errors or [],
        )

    def _validation_failure(
        self,
        result_cls: Type[R],
        operation: str,
        errors: List[FieldError],
        correlation_id: str,
    ) -> R:
        self._logger.warning(
            f"[VALIDATION] {operation} rejected | "
            f"fields={','.join(sorted({e.field for e in errors}))} | "
            f"correlation_id={correlation_id}"
        )
        return self._failure(
            result_cls,
            ErrorKind.VALIDATION,
            OrderErrorCode.VALIDATION_FAILED,
            "Request validation failed",
            correlation_id,
            errors,
        )

    def _not_found(self, result_cls: Type[R], operation: str, order_id: int, correlation_id: str) -> R:
        self._logger.warning(
            f"[BUSINESS] Order not found for {operation} | "
            f"order_id={order_id} | "
            f"correlation_id={correlation_id}"
        )
        return self._failure(
            result_cls,
            ErrorKind.NOT_FOUND,
            OrderErrorCode.ORDER_NOT_FOUND,
            ORDER_NOT_FOUND_MESSAGE,
            correlation_id,
        )

    def _internal_failure(
        self,
        result_cls: Type[R],
        operation: str,
        error: Exception,
        correlation_id: str,
    ) -> R:
        if isinstance(error, TransientStoreError):
            code = OrderErrorCode.TRANSIENT_STORE
        elif isinstance(error, OrderNumberExhaustedError):
            code = OrderErrorCode.NUMBERING_EXHAUSTED
        else:
            code = OrderErrorCode.INTERNAL
        self._logger.error(
            f"[{code}] {operation} failed: {type(error).__name__}: {error} | "
            f"correlation_id={correlation_id}",
            exc_info=code == OrderErrorCode.INTERNAL,
        )
        return self._failure(result_cls, ErrorKind.INTERNAL, code, INTERNAL_ERROR_MESSAGE, correlation_id)

    def _invalid_total(self, total: Decimal, correlation_id: str) -> OrderResult:
        self._logger.warning(
            f"[BUSINESS] Order total must be greater than zero | "
            f"total={total} | "
            f"correlation_id={correlation_id}"
        )
        return self._failure(
            OrderResult,
            ErrorKind.BUSINESS_RULE,
            OrderErrorCode.INVALID_TOTAL,
            "Order total must be greater than zero",
            correlation_id,
        )

    # =========================================================================
    # create_order() Method
    # =========================================================================

    def create_order(
        self,
        owner_id: int,
        description: Optional[str],
        items: Optional[Sequence[OrderItemInput]],
        correlation_id: Optional[str] = None,
    ) -> OrderResult:
        """
        Create an order for owner_id.

        Steps:
            1. Validate request fields
            2. Confirm the owner account exists
            3. Drop placeholder items and derive the total (must be > 0)
            4. Generate a unique order number
            5. Persist header + items atomically (with retry)
            6. Reload with owner and items populated
        """
        corr_id = correlation_id or str(uuid.uuid4())

        # Step 1: Field validation
        errors = validate_create_order(description, items)
        if errors:
            return self._validation_failure(OrderResult, "create_order", errors, corr_id)

        try:
            # Step 2: Owner must exist
            owner = self._accounts.find_by_id(owner_id)
            if owner is None:
                self._logger.warning(
                    f"[BUSINESS] Owner account not found | "
                    f"owner_id={owner_id} | "
                    f"correlation_id={corr_id}"
                )
                return self._failure(
                    OrderResult,
                    ErrorKind.NOT_FOUND,
                    OrderErrorCode.ACCOUNT_NOT_FOUND,
                    "Account not found",
                    corr_id,
                )

            # Step 3: Derive items and total
            order_items = build_order_items(items)
            total = compute_total(items)
            if total <= ZERO:
                return self._invalid_total(total, corr_id)

            # Step 4: Unique order number
            order_number = self._numbering.generate_unique(self._orders.order_number_exists, corr_id)

            # Step 5: Persist atomically
            order = Order(
                id=None,
                order_number=order_number,
                owner_id=owner_id,
                description=description,
                total=total,
                status=OrderStatus.PENDING,
                approval_status=ApprovalStatus.PENDING,
                created_at=self._clock(),
                items=order_items,
            )
            self._retry.execute(lambda: self._orders.add_order(order), "create_order", corr_id)

            # Step 6: Reload
            created = self._orders.find_active(order.id) or order
        except Exception as e:
            return self._internal_failure(OrderResult, "create_order", e, corr_id)

        record_order_created(corr_id)
        self._logger.info(
            f"[AUDIT] Order created | "
            f"order_id={created.id} | "
            f"order_number={created.order_number} | "
            f"owner_id={owner_id} | "
            f"items={len(created.items)} | "
            f"total={created.total} | "
            f"correlation_id={corr_id}"
        )
        return OrderResult(success=True, order=created, correlation_id=corr_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_order(
        self,
        order_id: int,
        requester_id: int,
        correlation_id: Optional[str] = None,
    ) -> OrderResult:
        """The requester's non-deleted order, or NOT_FOUND."""
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            order = self._orders.find_active(order_id, owner_id=requester_id)
        except Exception as e:
            return self._internal_failure(OrderResult, "get_order", e, corr_id)

        if order is None:
            return self._not_found(OrderResult, "get_order", order_id, corr_id)
        return OrderResult(success=True, order=order, correlation_id=corr_id)

    def list_orders_for_user(
        self,
        user_id: int,
        correlation_id: Optional[str] = None,
    ) -> OrderListResult:
        """The user's non-deleted orders, newest first."""
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            orders = self._orders.list_active(owner_id=user_id)
        except Exception as e:
            return self._internal_failure(OrderListResult, "list_orders_for_user", e, corr_id)

        self._logger.debug(
            f"[ORDER-LIST] user_id={user_id} | count={len(orders)} | correlation_id={corr_id}"
        )
        return OrderListResult(success=True, orders=orders, correlation_id=corr_id)

    def list_all_orders(self, correlation_id: Optional[str] = None) -> OrderListResult:
        """Administrator view: every non-deleted order, newest first."""
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            orders = self._orders.list_active()
        except Exception as e:
            return self._internal_failure(OrderListResult, "list_all_orders", e, corr_id)

        self._logger.info(
            f"[AUDIT] Admin listed all orders | count={len(orders)} | correlation_id={corr_id}"
        )
        return OrderListResult(success=True, orders=orders, correlation_id=corr_id)

    # =========================================================================
    # update_order() Method
    # =========================================================================

    def update_order(
        self,
        order_id: int,
        requester_id: int,
        description: Optional[str],
        status: int,
        items: Optional[Sequence[OrderItemInput]] = None,
        correlation_id: Optional[str] = None,
    ) -> OrderResult:
        """
        Update the requester's order.

        - description is replaced only when non-blank
        - status is always overwritten (checked against the transition
          table only in strict mode)
        - a non-empty items list replaces the full set and the total
        """
        corr_id = correlation_id or str(uuid.uuid4())

        errors = validate_update_order(description, status, items)
        if errors:
            return self._validation_failure(OrderResult, "update_order", errors, corr_id)

        try:
            order = self._orders.find_active(order_id, owner_id=requester_id)
            if order is None:
                return self._not_found(OrderResult, "update_order", order_id, corr_id)

            new_status = OrderStatus(status)
            if self._config.strict_status_transitions:
                allowed, code = validate_transition(order.status, new_status, corr_id)
                if not allowed:
                    if is_terminal_state(order.status):
                        message = f"Order is in terminal status {order.status.name}"
                    else:
                        message = f"Cannot change status from {order.status.name} to {new_status.name}"
                    return self._failure(
                        OrderResult,
                        ErrorKind.BUSINESS_RULE,
                        code,
                        message,
                        corr_id,
                    )

            if description and description.strip():
                order.description = description
            order.status = new_status

            replace_items = bool(items)
            if replace_items:
                new_items = build_order_items(items)
                total = compute_total(items)
                if total <= ZERO:
                    return self._invalid_total(total, corr_id)
                order.items = new_items
                order.total = total

            order.updated_at = self._clock()

            if replace_items:
                self._retry.execute(lambda: self._orders.replace_items(order), "update_order", corr_id)
            else:
                self._retry.execute(lambda: self._orders.save_header(order), "update_order", corr_id)

            updated = self._orders.find_active(order_id, owner_id=requester_id) or order
        except Exception as e:
            return self._internal_failure(OrderResult, "update_order", e, corr_id)

        self._logger.info(
            f"[AUDIT] Order updated | "
            f"order_id={order_id} | "
            f"order_number={updated.order_number} | "
            f"status={updated.status.name} | "
            f"items_replaced={replace_items} | "
            f"total={updated.total} | "
            f"correlation_id={corr_id}"
        )
        return OrderResult(success=True, order=updated, correlation_id=corr_id)

    # =========================================================================
    # soft_delete_order() Method
    # =========================================================================

    def soft_delete_order(
        self,
        order_id: int,
        requester_id: int,
        correlation_id: Optional[str] = None,
    ) -> OrderResult:
        """
        Mark the requester's order deleted. The row is kept.

        Deleting twice yields NOT_FOUND the second time.
        """
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            order = self._orders.find_active(order_id, owner_id=requester_id)
            if order is None:
                return self._not_found(OrderResult, "soft_delete_order", order_id, corr_id)

            order.is_deleted = True
            order.deleted_at = self._clock()
            self._retry.execute(lambda: self._orders.save_header(order), "soft_delete_order", corr_id)
        except Exception as e:
            return self._internal_failure(OrderResult, "soft_delete_order", e, corr_id)

        self._logger.info(
            f"[AUDIT] Order soft-deleted | "
            f"order_id={order_id} | "
            f"order_number={order.order_number} | "
            f"deleted_at={order.deleted_at.isoformat()} | "
            f"correlation_id={corr_id}"
        )
        return OrderResult(success=True, order=order, correlation_id=corr_id)

    # =========================================================================
    # Approval Decisions (administrator)
    # =========================================================================

    def approve_order(self, order_id: int, correlation_id: Optional[str] = None) -> OrderResult:
        """APPROVED, approved_at=now, rejection_reason cleared. Any owner."""
        corr_id = correlation_id or str(uuid.uuid4())
        try:
            order = self._orders.find_active(order_id)
            if order is None:
                return self._not_found(OrderResult, "approve_order", order_id, corr_id)

            now = self._clock()
            order.approval_status = ApprovalStatus.APPROVED
            order.approved_at = now
            order.rejection_reason = None
            order.updated_at = now
            self._retry.execute(lambda: self._orders.save_header(order), "approve_order", corr_id)
        except Exception as e:
            return self._internal_failure(OrderResult, "approve_order", e, corr_id)

        record_order_decision("approved", corr_id)
        self._logger.info(
            f"[AUDIT] Order approved | "
            f"order_id={order_id} | "
            f"order_number={order.order_number} | "
            f"correlation_id={corr_id}"
        )
        return OrderResult(success=True, order=order, correlation_id=corr_id)

    def reject_order(
        self,
        order_id: int,
        reason: Optional[str],
        correlation_id: Optional[str] = None,
    ) -> OrderResult:
        """REJECTED with reason, approved_at cleared. Blank reason fails validation."""
        corr_id = correlation_id or str(uuid.uuid4())

        errors = validate_reject_reason(reason)
        if errors:
            return self._validation_failure(OrderResult, "reject_order", errors, corr_id)

        try:
            order = self._orders.find_active(order_id)
            if order is None:
                return self._not_found(OrderResult, "reject_order", order_id, corr_id)

            order.approval_status = ApprovalStatus.REJECTED
            order.rejection_reason = reason
            order.approved_at = None
            order.updated_at = self._clock()
            self._retry.execute(lambda: self._orders.save_header(order), "reject_order", corr_id)
        except Exception as e:
            return self._internal_failure(OrderResult, "reject_order", e, corr_id)

        record_order_decision("rejected", corr_id)
        self._logger.info(
            f"[AUDIT] Order rejected | "
            f"order_id={order_id} | "
            f"order_number={order.order_number} | "
            f"reason={reason[:50]} | "
            f"correlation_id={corr_id}"
        )
        return OrderResult(success=True, order=order, correlation_id=corr_id)


__all__ = ["OrderLifecycleService"]
