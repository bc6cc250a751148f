"""
Purchasing Module Service (``payables_modules.purchasing.service``).

Responsibility
--------------
Orchestrates the purchase order lifecycle -- create, record payment,
receive goods, delete, update notes -- across the four stores it touches:
the purchase order aggregate, the creditor ledger, inventory and the payment
records.  Pure computation (landed cost, status derivation) is delegated to
``payables_kernel.domain`` and ``workflows``; every write goes through a
flush-only kernel service.

Architecture position
---------------------
**Modules layer** -- ``PurchaseOrderService`` is the sole public entry point
for purchasing writes.  It composes ``CreditorService``,
``InventoryService``, ``ProductService`` and ``WorkflowRunService``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary: one commit on success,
  rollback on any exception.  No workflow ever leaves a committed prefix of
  its steps behind.
* paid_amount == sum(payments); status == derive_status(paid, total).
* Creditor.outstanding_balance moves in the same transaction as the ledger
  entries that justify it.
* Rows are locked in a fixed order (order, creditor, inventory by variant)
  and carry version counters, so concurrent workflows on one aggregate
  serialize or fail with ``OptimisticLockError``.

Failure modes
-------------
* ``ValidationError`` / ``NotFoundError`` subclasses -- raised before any
  write; nothing to undo.
* ``OptimisticLockError`` -- another transaction changed a locked row first;
  rolled back, safe to retry.
* ``DeadlineExceededError`` -- deadline passed between steps or right
  before commit; rolled back.
* ``PartialFailureError`` -- anything else after the first write; rolled
  back, carries the failed step and the steps that had run.

Audit relevance
---------------
Every run is recorded in ``workflow_runs``: completed runs inside the
workflow transaction, failed runs in a follow-up transaction after the
rollback.  Structured log events are emitted at start, commit and rollback.

Usage::

    service = PurchaseOrderService(session, clock=clock)
    order = service.create_order(
        creditor_id=supplier.id,
        items=[LineItemInput(variant_id, Decimal("10"), Decimal("100"))],
        actor_id=actor_id,
        freight_cost=Decimal("50"),
    )
    service.record_payment(order.id, Decimal("400"), actor_id=actor_id)
    service.receive_order(order.id, actor_id=actor_id)
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from payables_kernel.db.types import ZERO, round_money, to_decimal
from payables_kernel.domain.clock import Clock, SystemClock
from payables_kernel.domain.deadline import Deadline
from payables_kernel.domain.landed_cost import (
    LandedCostLine,
    VariableCosts,
    allocate_landed_costs,
)
from payables_kernel.exceptions import (
    AlreadyReceivedError,
    ConcurrencyError,
    DeadlineExceededError,
    IdempotencyConflictError,
    InvalidAmountError,
    NotFoundError,
    OptimisticLockError,
    OrderNotFoundError,
    OverpaymentError,
    PartialFailureError,
    ValidationError,
)
from payables_kernel.logging_config import LogContext, get_logger
from payables_kernel.models.creditor import Creditor
from payables_kernel.models.workflow_run import WorkflowRun
from payables_kernel.services.creditor_service import CreditorInfo, CreditorService
from payables_kernel.services.inventory_service import InventoryService
from payables_kernel.services.product_service import ProductService
from payables_kernel.services.workflow_run_service import WorkflowRunService
from payables_modules.purchasing.config import PurchasingConfig
from payables_modules.purchasing.models import (
    DeletionResult,
    InitialPayment,
    LineItemInput,
    OrderStatus,
    PaymentInfo,
    PaymentMethod,
    PurchaseOrderInfo,
    ReceiptResult,
)
from payables_modules.purchasing.orm import (
    PurchaseOrderItemModel,
    PurchaseOrderModel,
    PurchaseOrderPaymentModel,
)
from payables_modules.purchasing.workflows import derive_status, transition_for_payment

logger = get_logger("modules.purchasing.service")

T = TypeVar("T")

WORKFLOW_CREATE = "create"
WORKFLOW_PAY = "pay"
WORKFLOW_RECEIVE = "receive"
WORKFLOW_DELETE = "delete"

_STALE_TABLE = re.compile(r"table '(\w+)'")


class _StepTracker:
    """Names the running step and checks the deadline before each one."""

    def __init__(self, workflow: str, deadline: Deadline | None):
        self.workflow = workflow
        self.deadline = deadline
        self.current: str | None = None
        self.completed: list[str] = []

    @property
    def writes_started(self) -> bool:
        return self.current is not None

    def check_deadline(self, step: str) -> None:
        if self.deadline is not None:
            self.deadline.check(self.workflow, step)

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        self.check_deadline(name)
        self.current = name
        yield
        self.completed.append(name)


class PurchaseOrderService:
    """
    Orchestrates purchase order workflows over the payables stores.

    Contract
    --------
    * Every workflow method returns a frozen DTO built before commit.
    * Callers may pass an ``idempotency_key`` to create/pay/receive; a
      replayed key returns the original outcome without writing.

    Guarantees
    ----------
    * Session is committed only when every step succeeded and the deadline
      (if any) has not passed.
    * Clock and config are injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT retry on conflict; the caller decides.
    * Does NOT bill freight, customs or handling to the supplier ledger --
      they only raise landed unit costs.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
        inventory_service: InventoryService | None = None,
        product_service: ProductService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or PurchasingConfig()

        self._creditors = CreditorService(session, self._clock)
        self._inventory = inventory_service or InventoryService(session, self._clock)
        self._products = product_service or ProductService(session, self._clock)
        self._runs = WorkflowRunService(session, self._clock)

    # =========================================================================
    # Transaction boundary
    # =========================================================================

    def _resolve_deadline(self, deadline: Deadline | None) -> Deadline | None:
        if deadline is not None:
            return deadline
        if self._config.default_deadline_seconds is not None:
            return Deadline.after(self._clock, self._config.default_deadline_seconds)
        return None

    def _execute(
        self,
        workflow: str,
        actor_id: UUID,
        body: Callable[[_StepTracker], T],
        aggregate_id: UUID | None = None,
        deadline: Deadline | None = None,
    ) -> T:
        """Run ``body`` in one transaction and map failures to typed errors."""
        tracker = _StepTracker(workflow, self._resolve_deadline(deadline))
        try:
            result = body(tracker)
            tracker.check_deadline("commit")
            self._session.commit()
            return result
        except (ValidationError, NotFoundError, IdempotencyConflictError) as exc:
            self._rollback(tracker, exc)
            self._record_failure(workflow, actor_id, exc, aggregate_id, tracker.current)
            raise
        except StaleDataError as exc:
            self._rollback(tracker, exc)
            match = _STALE_TABLE.search(str(exc))
            error = OptimisticLockError(
                match.group(1) if match else "unknown",
                str(aggregate_id) if aggregate_id is not None else "unknown",
            )
            self._record_failure(workflow, actor_id, error, aggregate_id, tracker.current)
            raise error from exc
        except (ConcurrencyError, DeadlineExceededError) as exc:
            self._rollback(tracker, exc)
            self._record_failure(workflow, actor_id, exc, aggregate_id, tracker.current)
            raise
        except Exception as exc:
            self._rollback(tracker, exc)
            if not tracker.writes_started:
                self._record_failure(workflow, actor_id, exc, aggregate_id, None)
                raise
            error = PartialFailureError(
                workflow,
                tracker.current,
                tuple(tracker.completed),
                exc,
                rolled_back=True,
            )
            self._record_failure(workflow, actor_id, error, aggregate_id, tracker.current)
            raise error from exc

    def _rollback(self, tracker: _StepTracker, exc: BaseException) -> None:
        self._session.rollback()
        logger.warning(
            "po_workflow_rolled_back",
            extra={
                "failed_step": tracker.current,
                "completed_steps": list(tracker.completed),
                "error_type": type(exc).__name__,
                "error_code": getattr(exc, "code", None),
            },
        )

    def _record_failure(
        self,
        workflow: str,
        actor_id: UUID,
        error: BaseException,
        aggregate_id: UUID | None,
        failed_step: str | None,
    ) -> None:
        try:
            self._runs.record_failed(
                workflow, actor_id, error,
                aggregate_id=aggregate_id, failed_step=failed_step,
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            logger.error("workflow_failure_not_recorded", exc_info=True)

    def _replay(
        self,
        idempotency_key: str | None,
        workflow: str,
        aggregate_id: UUID | None = None,
    ) -> WorkflowRun | None:
        """
        Completed run for the key, or None.

        Raises IdempotencyConflictError if the key belongs to another workflow,
        or to another order when ``aggregate_id`` is given.
        """
        if idempotency_key is None:
            return None
        run = self._runs.find_by_key(idempotency_key)
        if run is None:
            return None
        if run.workflow != workflow:
            raise IdempotencyConflictError(idempotency_key, workflow, run.workflow)
        if aggregate_id is not None and run.aggregate_id != aggregate_id:
            raise IdempotencyConflictError(
                idempotency_key, workflow, run.workflow,
                expected_aggregate_id=str(aggregate_id),
                actual_aggregate_id=str(run.aggregate_id),
            )
        return run

    # =========================================================================
    # Lookups shared by the workflows
    # =========================================================================

    def _lock_order(self, order_id: UUID) -> PurchaseOrderModel:
        order = self._session.execute(
            select(PurchaseOrderModel)
            .where(PurchaseOrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def _order_number_taken(self, order_number: str) -> bool:
        return self._session.execute(
            select(PurchaseOrderModel.id).where(PurchaseOrderModel.order_number == order_number)
        ).first() is not None

    def _next_order_number(self) -> str:
        """Prefix + last N digits of the clock's epoch milliseconds, -N on collision."""
        millis = str(int(self._clock.now().timestamp() * 1000))
        base = f"{self._config.order_number_prefix}{millis[-self._config.order_number_digits:]}"
        candidate = base
        suffix = 1
        while self._order_number_taken(candidate):
            suffix += 1
            candidate = f"{base}-{suffix}"
        return candidate

    def _payment_reference(self, order_number: str) -> str:
        return f"{self._config.payment_reference_prefix}{order_number}"

    def _payment_method(self, value: PaymentMethod | str | None) -> PaymentMethod:
        if value is None:
            return self._config.default_payment_method
        try:
            method = PaymentMethod(value)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown payment method '{value}'", field="payment_method"
            ) from exc
        if method not in self._config.allowed_payment_methods:
            raise ValidationError(
                f"Payment method '{method.value}' is not accepted",
                field="payment_method",
            )
        return method

    @staticmethod
    def _amount(value, field_name: str = "amount") -> Decimal:
        try:
            return to_decimal(value)
        except ValueError as exc:
            raise InvalidAmountError(value, f"Invalid {field_name}: {value!r}") from exc

    # =========================================================================
    # Suppliers
    # =========================================================================

    def create_creditor(
        self,
        name: str,
        actor_id: UUID,
        contact_person: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> CreditorInfo:
        """Add a supplier (balance 0).  Raises ValidationError on a blank name."""
        try:
            info = self._creditors.create_creditor(
                name, actor_id,
                contact_person=contact_person, phone=phone, email=email, address=address,
            )
            self._session.commit()
            return info
        except Exception:
            self._session.rollback()
            raise

    def get_or_create_anonymous_vendor(self, actor_id: UUID) -> CreditorInfo:
        """The walk-in supplier, created on first use."""
        try:
            info = self._creditors.get_or_create_anonymous_vendor(
                actor_id, name=self._config.anonymous_vendor_name
            )
            self._session.commit()
            return info
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Create
    # =========================================================================

    def create_order(
        self,
        creditor_id: UUID | None,
        items: Sequence[LineItemInput],
        actor_id: UUID,
        initial_payment: InitialPayment | None = None,
        freight_cost: Decimal = ZERO,
        customs_cost: Decimal = ZERO,
        handling_cost: Decimal = ZERO,
        expected_date: date | None = None,
        order_date: date | None = None,
        notes: str | None = None,
        order_number: str | None = None,
        idempotency_key: str | None = None,
        deadline: Deadline | None = None,
    ) -> PurchaseOrderInfo:
        """
        Create a purchase order, bill the supplier and apply any initial payment.

        Steps (one transaction): insert order (paid 0) -> insert items ->
        bill ledger entry (reference = order number) -> initial payment
        (ledger entry ``PAY-<order number>``, payment record, paid/status)
        -> creditor balance += total - initial payment.

        Preconditions:
            - creditor exists; at least one item; every variant exists.
            - quantity > 0, unit_cost >= 0, variable costs >= 0.
            - 0 <= initial payment <= total.
        Raises:
            ValidationError, CreditorNotFoundError, VariantNotFoundError,
            OverpaymentError: before any write.
            PartialFailureError: a step failed; nothing was committed.
        """
        with LogContext.bind(workflow=WORKFLOW_CREATE, actor_id=actor_id, creditor_id=creditor_id):

            def body(run: _StepTracker) -> PurchaseOrderInfo:
                replay = self._replay(idempotency_key, WORKFLOW_CREATE)
                if replay is not None:
                    order = self._session.get(PurchaseOrderModel, replay.aggregate_id)
                    if order is None:
                        raise OrderNotFoundError(str(replay.aggregate_id))
                    logger.info("po_create_replayed", extra={"order_id": str(order.id)})
                    return order.to_dto()

                # Validation -- nothing is written until every check passes
                if creditor_id is None:
                    raise ValidationError("Please select a supplier", field="creditor_id")
                if not items:
                    raise ValidationError("Please add at least one item", field="items")
                lines = [
                    LandedCostLine(
                        variant_id=item.variant_id,
                        quantity=self._amount(item.quantity, "quantity"),
                        unit_cost=self._amount(item.unit_cost, "unit_cost"),
                    )
                    for item in items
                ]
                variable_costs = VariableCosts(
                    freight=self._amount(freight_cost, "freight_cost"),
                    customs=self._amount(customs_cost, "customs_cost"),
                    handling=self._amount(handling_cost, "handling_cost"),
                )
                self._products.require_variants(line.variant_id for line in lines)

                total = sum((line.subtotal for line in lines), ZERO)

                paid_up_front = ZERO
                method = self._config.default_payment_method
                if initial_payment is not None:
                    paid_up_front = self._amount(initial_payment.amount)
                    method = self._payment_method(initial_payment.method)
                    if paid_up_front < ZERO:
                        raise InvalidAmountError(
                            paid_up_front, "Initial payment cannot be negative"
                        )
                    if paid_up_front > total:
                        raise OverpaymentError(paid_up_front, total)

                if order_number is not None and self._order_number_taken(order_number):
                    raise ValidationError(
                        f"Order number {order_number} already exists", field="order_number"
                    )

                creditor = self._creditors.lock(creditor_id)
                number = order_number or self._next_order_number()
                now = self._clock.now()

                logger.info(
                    "po_create_started",
                    extra={
                        "order_number": number,
                        "item_count": len(lines),
                        "total_amount": str(total),
                        "initial_payment": str(paid_up_front),
                    },
                )

                with run.step("insert_order"):
                    order = PurchaseOrderModel(
                        creditor_id=creditor.id,
                        order_number=number,
                        total_amount=total,
                        paid_amount=ZERO,
                        status=derive_status(ZERO, total).value,
                        freight_cost=variable_costs.freight,
                        customs_cost=variable_costs.customs,
                        handling_cost=variable_costs.handling,
                        order_date=order_date or now.date(),
                        expected_date=expected_date,
                        notes=notes,
                        created_at=now,
                        created_by_id=actor_id,
                    )
                    self._session.add(order)
                    self._session.flush()

                with run.step("insert_items"):
                    for line_number, line in enumerate(lines, start=1):
                        order.items.append(
                            PurchaseOrderItemModel(
                                line_number=line_number,
                                variant_id=line.variant_id,
                                quantity=line.quantity,
                                unit_cost=line.unit_cost,
                                subtotal=line.subtotal,
                                created_by_id=actor_id,
                            )
                        )
                    self._session.flush()

                # A zero-total order has nothing to bill
                if total > ZERO:
                    with run.step("post_bill"):
                        self._creditors.post_bill(
                            creditor, total, actor_id,
                            purchase_order_id=order.id,
                            reference_number=number,
                            notes="Purchase Order Bill",
                        )

                if paid_up_front > ZERO:
                    with run.step("record_initial_payment"):
                        self._apply_payment(
                            order, creditor, paid_up_front, method, actor_id,
                            payment_date=order.order_date,
                            reference_number=initial_payment.reference_number,
                            notes=initial_payment.notes,
                            ledger_notes=initial_payment.notes or "Initial Payment",
                        )

                with run.step("adjust_creditor_balance"):
                    self._creditors.adjust_balance(creditor, total - paid_up_front, actor_id)

                self._runs.record_completed(
                    WORKFLOW_CREATE, actor_id, order.id, idempotency_key=idempotency_key,
                )
                info = order.to_dto()
                logger.info(
                    "po_create_committed",
                    extra={
                        "order_id": str(order.id),
                        "order_number": number,
                        "status": info.status.value,
                    },
                )
                return info

            return self._execute(WORKFLOW_CREATE, actor_id, body, deadline=deadline)

    def _apply_payment(
        self,
        order: PurchaseOrderModel,
        creditor: Creditor,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date,
        reference_number: str | None,
        notes: str | None,
        ledger_notes: str,
    ) -> PurchaseOrderPaymentModel:
        """Payment record + ledger payment + paid/status, without the balance move."""
        payment = PurchaseOrderPaymentModel(
            amount=amount,
            payment_date=payment_date,
            payment_method=method.value,
            reference_number=reference_number or self._payment_reference(order.order_number),
            notes=notes,
            created_at=self._clock.now(),
            created_by_id=actor_id,
        )
        order.payments.append(payment)
        self._session.flush()

        self._creditors.post_payment(
            creditor, amount, actor_id,
            purchase_order_id=order.id,
            purchase_order_payment_id=payment.id,
            reference_number=self._payment_reference(order.order_number),
            notes=ledger_notes,
        )

        new_paid = order.paid_amount + amount
        order.status = transition_for_payment(
            OrderStatus(order.status), new_paid, order.total_amount
        ).value
        order.paid_amount = new_paid
        order.updated_by_id = actor_id
        self._session.flush()
        return payment

    # =========================================================================
    # Record payment
    # =========================================================================

    def record_payment(
        self,
        order_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        payment_method: PaymentMethod | str | None = None,
        payment_date: date | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
        idempotency_key: str | None = None,
        deadline: Deadline | None = None,
    ) -> PaymentInfo:
        """
        Record a supplier payment against an order.

        Steps (one transaction): insert payment record -> ledger payment
        (``PAY-<order number>``) -> creditor balance -= amount ->
        paid_amount += amount and status re-derived.

        Raises:
            InvalidAmountError: amount <= 0 or not numeric.
            OverpaymentError: amount > remaining + epsilon.
            OrderNotFoundError: unknown order.
        """
        with LogContext.bind(workflow=WORKFLOW_PAY, actor_id=actor_id, order_id=order_id):

            def body(run: _StepTracker) -> PaymentInfo:
                replay = self._replay(idempotency_key, WORKFLOW_PAY, order_id)
                if replay is not None:
                    payment = self._session.get(PurchaseOrderPaymentModel, replay.result_id)
                    if payment is None:
                        raise OrderNotFoundError(str(replay.aggregate_id))
                    logger.info("po_payment_replayed", extra={"payment_id": str(payment.id)})
                    return payment.to_dto()

                value = self._amount(amount)
                if value <= ZERO:
                    raise InvalidAmountError(value, "Please enter a valid payment amount")
                method = self._payment_method(payment_method)

                order = self._lock_order(order_id)
                remaining = order.total_amount - order.paid_amount
                if value > remaining + self._config.payment_epsilon:
                    raise OverpaymentError(value, remaining, order.order_number)

                creditor = self._creditors.lock(order.creditor_id)
                logger.info(
                    "po_payment_started",
                    extra={
                        "order_number": order.order_number,
                        "amount": str(value),
                        "remaining_before": str(remaining),
                    },
                )

                with run.step("record_payment"):
                    payment = self._apply_payment(
                        order, creditor, value, method, actor_id,
                        payment_date=payment_date or self._clock.now().date(),
                        reference_number=reference_number,
                        notes=notes,
                        ledger_notes=notes or f"Payment for PO #{order.order_number}",
                    )

                with run.step("adjust_creditor_balance"):
                    self._creditors.adjust_balance(creditor, -value, actor_id)

                self._runs.record_completed(
                    WORKFLOW_PAY, actor_id, order.id,
                    idempotency_key=idempotency_key, result_id=payment.id,
                )
                logger.info(
                    "po_payment_committed",
                    extra={
                        "payment_id": str(payment.id),
                        "paid_amount": str(order.paid_amount),
                        "status": order.status,
                    },
                )
                return payment.to_dto()

            return self._execute(WORKFLOW_PAY, actor_id, body, aggregate_id=order_id, deadline=deadline)

    # =========================================================================
    # Receive
    # =========================================================================

    def receive_order(
        self,
        order_id: UUID,
        actor_id: UUID,
        idempotency_key: str | None = None,
        deadline: Deadline | None = None,
    ) -> ReceiptResult:
        """
        Receive an order's goods with landed-cost allocation.

        Per item: inventory += quantity with a ``purchase_recv`` movement,
        then cost_price = rounded landed unit cost.  Finally received_at is
        set.  A failure on any item rolls back the whole receipt.

        Raises:
            OrderNotFoundError: unknown order.
            AlreadyReceivedError: received_at is already set.
        """
        with LogContext.bind(workflow=WORKFLOW_RECEIVE, actor_id=actor_id, order_id=order_id):

            def body(run: _StepTracker) -> ReceiptResult:
                replay = self._replay(idempotency_key, WORKFLOW_RECEIVE, order_id)
                order = self._lock_order(order_id)
                variable_costs = VariableCosts(
                    freight=order.freight_cost,
                    customs=order.customs_cost,
                    handling=order.handling_cost,
                )
                lines = [
                    LandedCostLine(
                        variant_id=item.variant_id,
                        quantity=item.quantity,
                        unit_cost=item.unit_cost,
                    )
                    for item in order.items
                ]
                allocations = allocate_landed_costs(lines, variable_costs)

                if replay is not None and order.received_at is not None:
                    logger.info("po_receive_replayed", extra={"order_number": order.order_number})
                    return ReceiptResult(order.id, order.received_at, allocations)
                if order.received_at is not None:
                    raise AlreadyReceivedError(str(order.id), order.received_at)
                self._products.require_variants(line.variant_id for line in lines)
                for variant_id in sorted({line.variant_id for line in lines}, key=str):
                    self._inventory.lock_record(variant_id, actor_id, create=False)

                logger.info(
                    "po_receive_started",
                    extra={
                        "order_number": order.order_number,
                        "item_count": len(lines),
                        "variable_cost_total": str(variable_costs.total),
                    },
                )

                for index, allocation in enumerate(allocations, start=1):
                    with run.step(f"receive_item_{index}"):
                        self._inventory.receive(
                            allocation.variant_id,
                            allocation.quantity,
                            actor_id,
                            reference_id=order.id,
                            notes=f"PO #{order.order_number}",
                        )
                        self._products.set_cost_price(
                            allocation.variant_id,
                            round_money(allocation.new_unit_cost),
                            actor_id,
                        )

                with run.step("mark_received"):
                    received_at = self._clock.now()
                    order.received_at = received_at
                    order.updated_by_id = actor_id
                    self._session.flush()

                self._runs.record_completed(
                    WORKFLOW_RECEIVE, actor_id, order.id, idempotency_key=idempotency_key,
                )
                logger.info(
                    "po_receive_committed",
                    extra={
                        "order_number": order.order_number,
                        "item_count": len(lines),
                        "landed_value": str(sum((a.landed_total for a in allocations), ZERO)),
                    },
                )
                return ReceiptResult(order.id, received_at, allocations)

            return self._execute(
                WORKFLOW_RECEIVE, actor_id, body, aggregate_id=order_id, deadline=deadline,
            )

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_order(
        self,
        order_id: UUID,
        actor_id: UUID,
        deadline: Deadline | None = None,
    ) -> DeletionResult:
        """
        Delete an order and reverse its effects.

        Steps (one transaction): if received, a ``purchase_reversal``
        movement per item -> creditor balance -= (total - paid) -> delete the
        order's ledger entries -> delete the order with its items and
        payments.

        Deleting an order that an earlier call already deleted returns
        ``already_deleted=True`` and writes nothing.

        Raises:
            OrderNotFoundError: the order never existed.
            InsufficientStockError: reversing the receipt would take stock
                below zero; checked before any write.
        """
        with LogContext.bind(workflow=WORKFLOW_DELETE, actor_id=actor_id, order_id=order_id):

            def body(run: _StepTracker) -> DeletionResult:
                order = self._session.execute(
                    select(PurchaseOrderModel)
                    .where(PurchaseOrderModel.id == order_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()
                if order is None:
                    if self._runs.find_completed(WORKFLOW_DELETE, order_id) is not None:
                        logger.info("po_delete_replayed")
                        return DeletionResult(order_id=order_id, already_deleted=True)
                    raise OrderNotFoundError(str(order_id))

                creditor = self._creditors.lock(order.creditor_id)
                was_received = order.received_at is not None
                items = list(order.items)
                if was_received:
                    requirements: dict[UUID, Decimal] = {}
                    for item in items:
                        requirements[item.variant_id] = (
                            requirements.get(item.variant_id, ZERO) + item.quantity
                        )
                    self._inventory.check_available(requirements)

                balance_adjustment = order.paid_amount - order.total_amount
                order_number = order.order_number

                logger.info(
                    "po_delete_started",
                    extra={
                        "order_number": order_number,
                        "was_received": was_received,
                        "balance_adjustment": str(balance_adjustment),
                    },
                )

                if was_received:
                    for index, item in enumerate(items, start=1):
                        with run.step(f"reverse_item_{index}"):
                            self._inventory.reverse_receipt(
                                item.variant_id,
                                item.quantity,
                                actor_id,
                                reference_id=order.id,
                                notes=f"Reversal of PO #{order_number}",
                            )

                with run.step("adjust_creditor_balance"):
                    self._creditors.adjust_balance(creditor, balance_adjustment, actor_id)

                with run.step("remove_ledger_entries"):
                    removed = self._creditors.remove_order_transactions(creditor, order.id)

                with run.step("delete_order"):
                    self._session.delete(order)
                    self._session.flush()

                self._runs.record_completed(WORKFLOW_DELETE, actor_id, order_id)
                logger.info(
                    "po_delete_committed",
                    extra={"order_number": order_number, "removed_ledger_entries": removed},
                )
                return DeletionResult(
                    order_id=order_id,
                    order_number=order_number,
                    was_received=was_received,
                    reversed_lines=len(items) if was_received else 0,
                    balance_adjustment=balance_adjustment,
                    removed_ledger_entries=removed,
                )

            return self._execute(
                WORKFLOW_DELETE, actor_id, body, aggregate_id=order_id, deadline=deadline,
            )

    # =========================================================================
    # Notes
    # =========================================================================

    def update_notes(self, order_id: UUID, notes: str | None, actor_id: UUID) -> PurchaseOrderInfo:
        """
        Replace the order's notes.  No other field changes.

        Raises:
            OrderNotFoundError: unknown order.
            OptimisticLockError: the order changed under us.
        """
        try:
            order = self._lock_order(order_id)
            order.notes = notes
            order.updated_by_id = actor_id
            self._session.flush()
            info = order.to_dto()
            self._session.commit()
            logger.info("po_notes_updated", extra={"order_id": str(order_id)})
            return info
        except StaleDataError as exc:
            self._session.rollback()
            raise OptimisticLockError("purchase_orders", str(order_id)) from exc
        except Exception:
            self._session.rollback()
            raise
