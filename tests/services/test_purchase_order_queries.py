"""Suppliers, notes, and the read side (order lists and supplier statements)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from payables_kernel.exceptions import OrderNotFoundError, ValidationError
from payables_kernel.services.creditor_service import CreditorService
from payables_modules.purchasing import OrderStatus, PurchaseOrderService, PurchasingConfig


class TestSuppliers:

    def test_create_supplier(self, purchasing, actor_id):
        info = purchasing.create_creditor(
            "  Kisumu Steel  ", actor_id, email="sales@kisumusteel.example",
        )

        assert info.name == "Kisumu Steel"
        assert info.email == "sales@kisumusteel.example"
        assert info.outstanding_balance == Decimal("0")

    def test_supplier_name_is_required(self, purchasing, actor_id):
        with pytest.raises(ValidationError, match="Supplier name is required"):
            purchasing.create_creditor("   ", actor_id)

    def test_anonymous_vendor_is_created_once(self, purchasing, session, clock, actor_id):
        first = purchasing.get_or_create_anonymous_vendor(actor_id)
        second = purchasing.get_or_create_anonymous_vendor(actor_id)

        assert first.id == second.id
        assert first.name == "Anonymous Vendor"
        names = [c.name for c in CreditorService(session, clock).list_creditors()]
        assert names.count("Anonymous Vendor") == 1

    def test_anonymous_vendor_name_is_configurable(self, session, clock, actor_id):
        service = PurchaseOrderService(
            session, clock=clock, config=PurchasingConfig(anonymous_vendor_name="Walk-in Supplier"),
        )

        assert service.get_or_create_anonymous_vendor(actor_id).name == "Walk-in Supplier"

    def test_orders_can_use_anonymous_vendor(self, purchasing, place_order, actor_id):
        vendor = purchasing.get_or_create_anonymous_vendor(actor_id)

        order = place_order(creditor_id=vendor.id)

        assert order.creditor_id == vendor.id


class TestUpdateNotes:

    def test_only_notes_change(self, place_order, purchasing, orders, actor_id):
        order = place_order(initial="100", notes="deliver to yard B")

        updated = purchasing.update_notes(order.id, "deliver to yard C", actor_id)

        assert updated.notes == "deliver to yard C"
        stored = orders.get_order(order.id)
        assert stored.notes == "deliver to yard C"
        assert stored.paid_amount == order.paid_amount
        assert stored.total_amount == order.total_amount
        assert stored.status == order.status

    def test_notes_can_be_cleared(self, place_order, purchasing, actor_id):
        order = place_order(notes="temporary")

        assert purchasing.update_notes(order.id, None, actor_id).notes is None

    def test_unknown_order(self, purchasing, actor_id):
        with pytest.raises(OrderNotFoundError):
            purchasing.update_notes(uuid4(), "x", actor_id)


class TestOrderSelector:

    def test_filters(self, place_order, other_supplier, orders, clock):
        pending = place_order()
        clock.advance(1)
        partial = place_order(initial="10")
        clock.advance(1)
        elsewhere = place_order(creditor_id=other_supplier.id)

        assert {o.id for o in orders.list_orders(status=OrderStatus.PENDING)} == {pending.id, elsewhere.id}
        assert [o.id for o in orders.list_orders(status=OrderStatus.PARTIAL)] == [partial.id]
        assert [o.id for o in orders.list_orders(creditor_id=other_supplier.id)] == [elsewhere.id]

    def test_search_by_supplier_name_or_number(self, place_order, other_supplier, orders, clock):
        mine = place_order()
        clock.advance(3)
        theirs = place_order(creditor_id=other_supplier.id)

        assert [o.id for o in orders.list_orders(search="timber")] == [theirs.id]
        assert [o.id for o in orders.list_orders(search=mine.order_number)] == [mine.id]

    def test_newest_first(self, place_order, orders, clock):
        older = place_order()
        clock.advance(60)
        newer = place_order()

        assert [o.id for o in orders.list_orders()] == [newer.id, older.id]

    def test_find_by_number_and_remaining(self, place_order, orders):
        order = place_order(initial="250")

        assert orders.find_by_number(order.order_number).id == order.id
        assert orders.find_by_number("PO-000000") is None
        assert orders.remaining_balance(order.id) == Decimal("750")

    def test_get_unknown_order(self, orders):
        with pytest.raises(OrderNotFoundError):
            orders.get_order(uuid4())


class TestStatement:

    def test_running_balance_over_several_orders(self, place_order, purchasing, supplier, ledger, actor_id):
        first = place_order()
        second = place_order(lines=[(1, "2", "50")], initial="40")
        purchasing.record_payment(first.id, Decimal("300"), actor_id)

        statement = ledger.statement(supplier.id)

        assert [line.sequence for line in statement.lines] == [1, 2, 3, 4]
        assert [line.running_balance for line in statement.lines] == [
            Decimal("1000"), Decimal("1100"), Decimal("1060"), Decimal("760"),
        ]
        assert statement.closing_balance == statement.cached_balance
        assert ledger.derived_balance(supplier.id) == Decimal("760")
        assert [line.purchase_order_id for line in ledger.entries_for_order(second.id)] == [
            second.id, second.id,
        ]

    def test_derived_balances_include_idle_suppliers(self, place_order, supplier, other_supplier, ledger):
        place_order()

        balances = ledger.derived_balances()

        assert balances[supplier.id] == Decimal("1000")
        assert balances[other_supplier.id] == Decimal("0")
