"""
LedgerAuditService -- fold-over-logs verification of the payables stores.

Responsibility:
    Recomputes every cached value from the append-only logs and reports each
    place where the two disagree.  Also provides the recovery pass that
    resets cached creditor balances to the ledger fold.

Architecture: payables_services -- composition layer above the kernel and
    the modules.  Reads purchase orders through the purchasing ORM; the
    purchasing module never imports this package.

Invariants checked (payables_kernel.invariants.LedgerInvariant):
    PAID_EQUALS_PAYMENTS, STATUS_DERIVED, ITEMS_SUM_TO_TOTAL per order;
    BALANCE_EQUALS_LEDGER per creditor; INVENTORY_CHAIN and
    NON_NEGATIVE_STOCK per variant.

Failure modes:
    - audit() is read-only and raises only on database errors.
    - repair_creditor_balances() commits on success and rolls back on any
      exception, which is re-raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from payables_kernel.db.types import ZERO
from payables_kernel.domain.clock import Clock, SystemClock
from payables_kernel.invariants import LedgerInvariant
from payables_kernel.logging_config import get_logger
from payables_kernel.models.creditor import Creditor
from payables_kernel.models.inventory import InventoryRecord, InventoryTransaction
from payables_kernel.selectors.ledger_selector import LedgerSelector
from payables_modules.purchasing.orm import PurchaseOrderModel
from payables_modules.purchasing.workflows import derive_status

logger = get_logger("services.ledger_audit")


@dataclass(frozen=True)
class InvariantViolation:
    """One disagreement between a cached value and its log."""

    invariant: LedgerInvariant
    entity_type: str
    entity_id: UUID
    expected: Decimal | str | None
    actual: Decimal | str | None
    message: str


@dataclass(frozen=True)
class AuditReport:
    checked_at: datetime
    orders_checked: int
    creditors_checked: int
    variants_checked: int
    violations: tuple[InvariantViolation, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return not self.violations

    def by_invariant(self, invariant: LedgerInvariant) -> list[InvariantViolation]:
        return [v for v in self.violations if v.invariant == invariant]


@dataclass(frozen=True)
class BalanceRepair:
    creditor_id: UUID
    previous_balance: Decimal
    repaired_balance: Decimal


class LedgerAuditService:
    """Audits and repairs cached values against the append-only logs.

    Contract:
        - ``audit()`` never writes.
        - ``repair_creditor_balances()`` only touches
          ``Creditor.outstanding_balance`` and owns its transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._ledger = LedgerSelector(session)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def audit(self) -> AuditReport:
        violations: list[InvariantViolation] = []

        orders = self._session.execute(
            select(PurchaseOrderModel).options(
                selectinload(PurchaseOrderModel.items),
                selectinload(PurchaseOrderModel.payments),
            )
        ).scalars().all()
        for order in orders:
            violations.extend(self._check_order(order))

        derived = self._ledger.derived_balances()
        creditors = self._session.execute(select(Creditor)).scalars().all()
        for creditor in creditors:
            expected = derived.get(creditor.id, ZERO)
            if creditor.outstanding_balance != expected:
                violations.append(
                    InvariantViolation(
                        invariant=LedgerInvariant.BALANCE_EQUALS_LEDGER,
                        entity_type="creditor",
                        entity_id=creditor.id,
                        expected=expected,
                        actual=creditor.outstanding_balance,
                        message=(
                            f"Creditor {creditor.name} caches {creditor.outstanding_balance} "
                            f"but its ledger folds to {expected}"
                        ),
                    )
                )

        records = self._session.execute(select(InventoryRecord)).scalars().all()
        for record in records:
            violations.extend(self._check_inventory(record))

        report = AuditReport(
            checked_at=self._clock.now(),
            orders_checked=len(orders),
            creditors_checked=len(creditors),
            variants_checked=len(records),
            violations=tuple(violations),
        )
        for violation in report.violations:
            logger.warning(
                "ledger_invariant_violated",
                extra={
                    "invariant": violation.invariant.value,
                    "entity_type": violation.entity_type,
                    "entity_id": str(violation.entity_id),
                    "expected": str(violation.expected),
                    "actual": str(violation.actual),
                },
            )
        logger.info(
            "ledger_audit_completed",
            extra={
                "orders_checked": report.orders_checked,
                "creditors_checked": report.creditors_checked,
                "variants_checked": report.variants_checked,
                "violation_count": len(report.violations),
            },
        )
        return report

    def _check_order(self, order: PurchaseOrderModel) -> list[InvariantViolation]:
        found = []
        payments_total = sum((p.amount for p in order.payments), ZERO)
        if order.paid_amount != payments_total:
            found.append(
                InvariantViolation(
                    LedgerInvariant.PAID_EQUALS_PAYMENTS, "purchase_order", order.id,
                    payments_total, order.paid_amount,
                    f"{order.order_number} paid_amount {order.paid_amount} != "
                    f"payments {payments_total}",
                )
            )

        expected_status = derive_status(order.paid_amount, order.total_amount).value
        if order.status != expected_status:
            found.append(
                InvariantViolation(
                    LedgerInvariant.STATUS_DERIVED, "purchase_order", order.id,
                    expected_status, order.status,
                    f"{order.order_number} status {order.status} should be {expected_status}",
                )
            )

        items_total = sum((i.subtotal for i in order.items), ZERO)
        if items_total != order.total_amount:
            found.append(
                InvariantViolation(
                    LedgerInvariant.ITEMS_SUM_TO_TOTAL, "purchase_order", order.id,
                    items_total, order.total_amount,
                    f"{order.order_number} total {order.total_amount} != items {items_total}",
                )
            )
        return found

    def _check_inventory(self, record: InventoryRecord) -> list[InvariantViolation]:
        found = []
        if record.quantity < ZERO:
            found.append(
                InvariantViolation(
                    LedgerInvariant.NON_NEGATIVE_STOCK, "inventory", record.variant_id,
                    ZERO, record.quantity,
                    f"Variant {record.variant_id} has negative stock {record.quantity}",
                )
            )

        movements = self._session.execute(
            select(InventoryTransaction)
            .where(InventoryTransaction.variant_id == record.variant_id)
            .order_by(InventoryTransaction.sequence)
        ).scalars().all()

        running = ZERO
        for movement in movements:
            if movement.previous_quantity != running:
                found.append(
                    InvariantViolation(
                        LedgerInvariant.INVENTORY_CHAIN, "inventory_transaction", movement.id,
                        running, movement.previous_quantity,
                        f"Movement #{movement.sequence} of {record.variant_id} starts at "
                        f"{movement.previous_quantity}, predecessor ended at {running}",
                    )
                )
            if movement.new_quantity != movement.previous_quantity + movement.quantity_change:
                found.append(
                    InvariantViolation(
                        LedgerInvariant.INVENTORY_CHAIN, "inventory_transaction", movement.id,
                        movement.previous_quantity + movement.quantity_change,
                        movement.new_quantity,
                        f"Movement #{movement.sequence} of {record.variant_id} does not add up",
                    )
                )
            running = movement.new_quantity

        if running != record.quantity:
            found.append(
                InvariantViolation(
                    LedgerInvariant.INVENTORY_CHAIN, "inventory", record.variant_id,
                    running, record.quantity,
                    f"Variant {record.variant_id} on hand {record.quantity} but its "
                    f"movements end at {running}",
                )
            )
        return found

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    def repair_creditor_balances(self, actor_id: UUID) -> list[BalanceRepair]:
        """Reset every drifted cached balance to the ledger fold and commit."""
        try:
            derived = self._ledger.derived_balances()
            repairs = []
            creditors = self._session.execute(
                select(Creditor).order_by(Creditor.name).with_for_update()
            ).scalars().all()
            for creditor in creditors:
                expected = derived.get(creditor.id, ZERO)
                if creditor.outstanding_balance == expected:
                    continue
                repairs.append(
                    BalanceRepair(creditor.id, creditor.outstanding_balance, expected)
                )
                creditor.outstanding_balance = expected
                creditor.updated_by_id = actor_id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        for repair in repairs:
            logger.warning(
                "creditor_balance_repaired",
                extra={
                    "creditor_id": str(repair.creditor_id),
                    "previous_balance": str(repair.previous_balance),
                    "repaired_balance": str(repair.repaired_balance),
                },
            )
        return repairs
