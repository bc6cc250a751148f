"""
Typed Exception Hierarchy for the Payables Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the reconciliation workflows must tell apart "the input was wrong,
nothing was written" from "something failed halfway and the transaction was
rolled back" from "another writer got there first, try again".  Parsing
message strings for that is fragile.  Therefore:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.record_payment(order_id, amount=Decimal("300"), ...)
    except OverpaymentError as e:
        notify(f"Payment cannot exceed remaining balance of {e.remaining}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayablesError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   |   +-- OverpaymentError
    |   +-- AlreadyReceivedError
    |   +-- InsufficientStockError
    |
    +-- NotFoundError
    |   +-- OrderNotFoundError
    |   +-- CreditorNotFoundError
    |   +-- VariantNotFoundError
    |
    +-- PartialFailureError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- DeadlineExceededError
    |
    +-- IdempotencyConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Missing supplier, empty items, bad field
                | INVALID_AMOUNT              | Amount <= 0 or not numeric
                | OVERPAYMENT                 | Payment exceeds remaining balance
                | ALREADY_RECEIVED            | Receiving an order twice
                | INSUFFICIENT_STOCK          | Reversal would drive stock below zero
----------------|-----------------------------|-----------------------------------------
Not found       | ORDER_NOT_FOUND             | Unknown purchase order
                | CREDITOR_NOT_FOUND          | Unknown supplier
                | VARIANT_NOT_FOUND           | Unknown product variant
----------------|-----------------------------|-----------------------------------------
Workflow        | PARTIAL_FAILURE             | A step failed after writes began;
                |                             | the transaction was rolled back
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Aggregate changed under us
----------------|-----------------------------|-----------------------------------------
Deadline        | DEADLINE_EXCEEDED           | Request deadline passed before commit
----------------|-----------------------------|-----------------------------------------
Idempotency     | IDEMPOTENCY_CONFLICT        | Key reused for a different workflow

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION errors are raised before any write.  Show the message; there is
   nothing to clean up.

2. PARTIAL_FAILURE means a multi-store workflow failed after its first write.
   The transaction was rolled back, so the stores are consistent; the error
   names the failed step and the steps that had been executed.

3. CONCURRENCY errors are safe to retry with freshly loaded state.
"""

from decimal import Decimal


class PayablesError(Exception):
    """
    Base exception for all payables kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYABLES_ERROR"


# Validation


class ValidationError(PayablesError):
    """Input rejected before any write."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidAmountError(ValidationError):
    """Amount is non-positive, non-numeric, or otherwise not acceptable."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount, message: str | None = None):
        self.amount = amount
        super().__init__(message or f"Invalid amount: {amount}", field="amount")


class OverpaymentError(InvalidAmountError):
    """Payment exceeds the remaining balance of the order."""

    code: str = "OVERPAYMENT"

    def __init__(self, amount: Decimal, remaining: Decimal, order_ref: str | None = None):
        self.remaining = remaining
        self.order_ref = order_ref
        target = f" on {order_ref}" if order_ref else ""
        super().__init__(
            amount,
            f"Payment {amount} exceeds remaining balance {remaining}{target}",
        )


class AlreadyReceivedError(ValidationError):
    """Goods for this order have already been received."""

    code: str = "ALREADY_RECEIVED"

    def __init__(self, order_id: str, received_at):
        self.order_id = order_id
        self.received_at = received_at
        super().__init__(
            f"Purchase order {order_id} was already received at {received_at}"
        )


class InsufficientStockError(ValidationError):
    """A stock decrement would take on-hand quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, variant_id: str, on_hand: Decimal, requested: Decimal):
        self.variant_id = variant_id
        self.on_hand = on_hand
        self.requested = requested
        super().__init__(
            f"Cannot remove {requested} of variant {variant_id}: "
            f"only {on_hand} on hand"
        )


# Not found


class NotFoundError(PayablesError):
    """Base exception for unknown entities."""

    code: str = "NOT_FOUND"


class OrderNotFoundError(NotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Purchase order not found: {order_id}")


class CreditorNotFoundError(NotFoundError):
    """Creditor (supplier) with given ID was not found."""

    code: str = "CREDITOR_NOT_FOUND"

    def __init__(self, creditor_id: str):
        self.creditor_id = creditor_id
        super().__init__(f"Creditor not found: {creditor_id}")


class VariantNotFoundError(NotFoundError):
    """Product variant with given ID was not found."""

    code: str = "VARIANT_NOT_FOUND"

    def __init__(self, variant_id: str):
        self.variant_id = variant_id
        super().__init__(f"Product variant not found: {variant_id}")


# Workflow


class PartialFailureError(PayablesError):
    """
    A multi-step workflow failed after its first write.

    The enclosing transaction has been rolled back (rolled_back=True), so no
    step listed in completed_steps is visible to other sessions.
    """

    code: str = "PARTIAL_FAILURE"

    def __init__(
        self,
        workflow: str,
        failed_step: str,
        completed_steps: tuple[str, ...],
        cause: BaseException,
        rolled_back: bool = True,
    ):
        self.workflow = workflow
        self.failed_step = failed_step
        self.completed_steps = completed_steps
        self.cause = cause
        self.rolled_back = rolled_back
        super().__init__(
            f"{workflow} failed at step '{failed_step}' after "
            f"{len(completed_steps)} step(s): {cause}"
        )


# Concurrency


class ConcurrencyError(PayablesError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Deadlines


class DeadlineExceededError(PayablesError):
    """The request deadline passed before the workflow could commit."""

    code: str = "DEADLINE_EXCEEDED"

    def __init__(self, workflow: str, step: str, deadline):
        self.workflow = workflow
        self.step = step
        self.deadline = deadline
        super().__init__(
            f"{workflow} aborted at step '{step}': deadline {deadline} exceeded"
        )


# Idempotency


class IdempotencyConflictError(PayablesError):
    """An idempotency key was reused for a different workflow or order."""

    code: str = "IDEMPOTENCY_CONFLICT"

    def __init__(
        self,
        idempotency_key: str,
        expected_workflow: str,
        actual_workflow: str,
        expected_aggregate_id: str | None = None,
        actual_aggregate_id: str | None = None,
    ):
        self.idempotency_key = idempotency_key
        self.expected_workflow = expected_workflow
        self.actual_workflow = actual_workflow
        self.expected_aggregate_id = expected_aggregate_id
        self.actual_aggregate_id = actual_aggregate_id
        if expected_workflow != actual_workflow:
            message = (
                f"Idempotency key {idempotency_key!r} belongs to {actual_workflow}, "
                f"not {expected_workflow}"
            )
        else:
            message = (
                f"Idempotency key {idempotency_key!r} was used for {actual_workflow} "
                f"on {actual_aggregate_id}, not {expected_aggregate_id}"
            )
        super().__init__(message)
