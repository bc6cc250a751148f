"""
Request deadlines.

A workflow checks its deadline before every step and once more before
commit.  Expiry aborts with DeadlineExceededError and a rollback, so no
partial effects are ever committed.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from payables_kernel.domain.clock import DeterministicClock
from payables_kernel.domain.deadline import Deadline
from payables_kernel.exceptions import DeadlineExceededError
from payables_kernel.services.creditor_service import CreditorService
from payables_modules.purchasing import LineItemInput, PurchaseOrderService, PurchasingConfig


class AdvancingClock(DeterministicClock):
    """Moves forward a minute every time it is read."""

    def now(self):
        current = super().now()
        self.advance(60)
        return current


class TestDeadlines:

    def test_expired_deadline_aborts_before_first_write(self, purchasing, session, clock, supplier, variants, orders, actor_id):
        deadline = Deadline(expires_at=clock.now(), clock=clock)

        with pytest.raises(DeadlineExceededError) as exc_info:
            purchasing.create_order(
                creditor_id=supplier.id,
                items=[LineItemInput(variants[0], Decimal("1"), Decimal("10"))],
                actor_id=actor_id,
                deadline=deadline,
            )

        assert exc_info.value.workflow == "create"
        assert exc_info.value.step == "insert_order"
        assert orders.list_orders() == []

    def test_deadline_passing_mid_workflow_rolls_back(self, session, supplier, variants, orders, actor_id):
        clock = AdvancingClock()
        service = PurchaseOrderService(session, clock=clock)
        deadline = Deadline(expires_at=clock.now() + timedelta(minutes=4), clock=clock)

        with pytest.raises(DeadlineExceededError):
            service.create_order(
                creditor_id=supplier.id,
                items=[LineItemInput(variants[0], Decimal("1"), Decimal("10"))],
                actor_id=actor_id,
                deadline=deadline,
            )

        assert orders.list_orders() == []
        creditor = CreditorService(session, clock).get_by_id(supplier.id)
        assert creditor.outstanding_balance == Decimal("0")

    def test_payment_deadline_leaves_order_unpaid(self, place_order, purchasing, clock, orders, actor_id):
        order = place_order()
        deadline = Deadline.after(clock, 30)
        clock.advance(31)

        with pytest.raises(DeadlineExceededError) as exc_info:
            purchasing.record_payment(order.id, Decimal("100"), actor_id, deadline=deadline)

        assert exc_info.value.step == "record_payment"
        assert orders.get_order(order.id).paid_amount == Decimal("0")

    def test_configured_default_deadline(self, session, supplier, variants, orders, actor_id):
        clock = AdvancingClock()
        service = PurchaseOrderService(
            session, clock=clock, config=PurchasingConfig(default_deadline_seconds=90),
        )

        with pytest.raises(DeadlineExceededError):
            service.create_order(
                creditor_id=supplier.id,
                items=[LineItemInput(variants[0], Decimal("1"), Decimal("10"))],
                actor_id=actor_id,
            )
        assert orders.list_orders() == []

    def test_generous_deadline_commits(self, place_order, clock, orders):
        order = place_order(deadline=Deadline.after(clock, 60))

        assert orders.get_order(order.id).total_amount == Decimal("1000")
