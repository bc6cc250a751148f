"""
Tests for LedgerAuditService.

Every workflow must leave the audit clean.  Tampering with a cached value
behind the services' back must be reported against the right invariant,
and repair_creditor_balances must restore the ledger fold.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select, update

from payables_kernel.invariants import LedgerInvariant
from payables_kernel.models.creditor import Creditor
from payables_kernel.models.inventory import InventoryRecord
from payables_modules.purchasing.orm import PurchaseOrderItemModel, PurchaseOrderModel
from payables_services import LedgerAuditService


@pytest.fixture
def auditor(session, clock):
    return LedgerAuditService(session, clock)


@pytest.fixture
def busy_ledger(place_order, purchasing, actor_id, stock, variants):
    """A mix of paid, received and deleted orders."""
    stock(variants[2], Decimal("7"))
    first = place_order(lines=[(0, "10", "100"), (1, "3", "33.33")], freight_cost=Decimal("12.5"))
    purchasing.record_payment(first.id, Decimal("500"), actor_id)
    purchasing.receive_order(first.id, actor_id)
    second = place_order(lines=[(2, "5", "80")], initial="400")
    purchasing.receive_order(second.id, actor_id)
    third = place_order(initial="100")
    purchasing.delete_order(third.id, actor_id)
    return first, second


class TestCleanAudit:

    def test_empty_database_is_clean(self, engine, auditor):
        report = auditor.audit()

        assert report.is_clean
        assert report.orders_checked == 0

    def test_workflows_leave_audit_clean(self, busy_ledger, auditor, clock, captured_logs):
        report = auditor.audit()

        assert report.is_clean, report.violations
        assert report.orders_checked == 2
        assert report.creditors_checked == 1
        assert report.variants_checked == 3
        assert report.checked_at == clock.now()
        completed = [r for r in captured_logs() if r["message"] == "ledger_audit_completed"]
        assert completed[0]["violation_count"] == 0


class TestTamperDetection:

    def test_drifted_creditor_balance(self, busy_ledger, session, supplier, auditor):
        session.execute(
            update(Creditor)
            .where(Creditor.id == supplier.id)
            .values(outstanding_balance=Decimal("1"))
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.expire_all()

        report = auditor.audit()

        violations = report.by_invariant(LedgerInvariant.BALANCE_EQUALS_LEDGER)
        assert len(violations) == 1
        assert violations[0].entity_id == supplier.id
        assert violations[0].actual == Decimal("1")

    def test_paid_amount_not_matching_payments(self, busy_ledger, session, auditor):
        first, _ = busy_ledger
        session.execute(
            update(PurchaseOrderModel)
            .where(PurchaseOrderModel.id == first.id)
            .values(paid_amount=Decimal("999"))
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.expire_all()

        report = auditor.audit()

        paid = report.by_invariant(LedgerInvariant.PAID_EQUALS_PAYMENTS)
        assert [v.entity_id for v in paid] == [first.id]
        assert paid[0].expected == Decimal("500")
        assert report.by_invariant(LedgerInvariant.STATUS_DERIVED) == []

    def test_status_not_derived(self, busy_ledger, session, auditor):
        first, _ = busy_ledger
        session.execute(
            update(PurchaseOrderModel)
            .where(PurchaseOrderModel.id == first.id)
            .values(status="completed")
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.expire_all()

        violations = auditor.audit().by_invariant(LedgerInvariant.STATUS_DERIVED)

        assert len(violations) == 1
        assert violations[0].expected == "partial"
        assert violations[0].actual == "completed"

    def test_item_subtotals_not_matching_total(self, busy_ledger, session, auditor):
        _, second = busy_ledger
        session.execute(
            update(PurchaseOrderItemModel)
            .where(PurchaseOrderItemModel.purchase_order_id == second.id)
            .values(subtotal=Decimal("1"))
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.expire_all()

        violations = auditor.audit().by_invariant(LedgerInvariant.ITEMS_SUM_TO_TOTAL)

        assert [v.entity_id for v in violations] == [second.id]

    def test_inventory_quantity_off_its_movements(self, busy_ledger, session, variants, auditor):
        session.execute(
            update(InventoryRecord)
            .where(InventoryRecord.variant_id == variants[2])
            .values(quantity=Decimal("100"))
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.expire_all()

        violations = auditor.audit().by_invariant(LedgerInvariant.INVENTORY_CHAIN)

        assert len(violations) == 1
        assert violations[0].entity_id == variants[2]
        assert violations[0].expected == Decimal("12")
        assert violations[0].actual == Decimal("100")


class TestRepair:

    def test_repair_restores_ledger_fold(self, busy_ledger, session, supplier, auditor, ledger, actor_id):
        session.execute(
            update(Creditor)
            .where(Creditor.id == supplier.id)
            .values(outstanding_balance=Decimal("0"))
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.expire_all()

        repairs = auditor.repair_creditor_balances(actor_id)

        assert len(repairs) == 1
        assert repairs[0].creditor_id == supplier.id
        assert repairs[0].previous_balance == Decimal("0")
        assert repairs[0].repaired_balance == ledger.derived_balance(supplier.id)
        assert auditor.audit().is_clean
        stored = session.execute(select(Creditor).where(Creditor.id == supplier.id)).scalar_one()
        assert stored.updated_by_id == actor_id

    def test_repair_on_consistent_ledger_is_a_no_op(self, busy_ledger, auditor, actor_id):
        assert auditor.repair_creditor_balances(actor_id) == []
