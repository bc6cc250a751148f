"""
Tests for PurchaseOrderService.delete_order.

Deletion compensates every store the order touched: received stock is
reversed, the supplier balance drops by what was still owed, and the
order's ledger entries disappear with it.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from payables_kernel.exceptions import InsufficientStockError, OrderNotFoundError
from payables_kernel.services.creditor_service import CreditorService
from payables_kernel.services.inventory_service import InventoryService


def _balance(session, clock, creditor_id) -> Decimal:
    return CreditorService(session, clock).get_by_id(creditor_id).outstanding_balance


class TestDeleteUnreceived:

    def test_delete_reverses_bill_and_payments(self, place_order, purchasing, session, clock, supplier, orders, ledger, actor_id):
        order = place_order(initial="200")
        purchasing.record_payment(order.id, Decimal("300"), actor_id)
        assert _balance(session, clock, supplier.id) == Decimal("500")

        result = purchasing.delete_order(order.id, actor_id)

        assert result.order_id == order.id
        assert result.order_number == order.order_number
        assert result.was_received is False
        assert result.reversed_lines == 0
        assert result.balance_adjustment == Decimal("-500")
        assert result.removed_ledger_entries == 3
        assert result.already_deleted is False

        assert orders.find_order(order.id) is None
        assert ledger.entries_for_order(order.id) == []
        assert ledger.statement(supplier.id).lines == ()
        assert _balance(session, clock, supplier.id) == Decimal("0")

    def test_other_orders_are_untouched(self, place_order, purchasing, session, clock, supplier, ledger, actor_id):
        keep = place_order(lines=[(1, "2", "150")])
        drop = place_order()

        purchasing.delete_order(drop.id, actor_id)

        lines = ledger.statement(supplier.id).lines
        assert [line.purchase_order_id for line in lines] == [keep.id]
        assert _balance(session, clock, supplier.id) == Decimal("300")

    def test_fully_paid_order_leaves_balance_alone(self, place_order, purchasing, session, clock, supplier, actor_id):
        order = place_order(initial="1000")

        result = purchasing.delete_order(order.id, actor_id)

        assert result.balance_adjustment == Decimal("0")
        assert _balance(session, clock, supplier.id) == Decimal("0")


class TestDeleteReceived:

    def test_received_stock_is_reversed(self, place_order, purchasing, variants, inventory, actor_id):
        order = place_order(lines=[(0, "10", "100"), (1, "4", "10")])
        purchasing.receive_order(order.id, actor_id)

        result = purchasing.delete_order(order.id, actor_id)

        assert result.was_received is True
        assert result.reversed_lines == 2
        assert inventory.on_hand(variants[0]) == Decimal("0")
        assert inventory.on_hand(variants[1]) == Decimal("0")
        history = inventory.history(variants[0])
        assert [m.transaction_type for m in history] == ["purchase_recv", "purchase_reversal"]
        reversal = history[-1]
        assert reversal.quantity_change == Decimal("-10")
        assert reversal.previous_quantity == Decimal("10")
        assert reversal.new_quantity == Decimal("0")
        assert reversal.reference_id == order.id

    def test_sold_stock_blocks_delete(self, place_order, purchasing, session, clock, supplier, variants, inventory, orders, actor_id):
        order = place_order()
        purchasing.receive_order(order.id, actor_id)
        InventoryService(session, clock).adjust(variants[0], Decimal("-4"), actor_id, notes="sale")
        session.commit()

        with pytest.raises(InsufficientStockError) as exc_info:
            purchasing.delete_order(order.id, actor_id)

        assert exc_info.value.on_hand == Decimal("6")
        assert exc_info.value.requested == Decimal("10")
        assert orders.find_order(order.id) is not None
        assert inventory.on_hand(variants[0]) == Decimal("6")
        assert _balance(session, clock, supplier.id) == Decimal("1000")

    def test_stock_check_sums_lines_of_same_variant(self, place_order, purchasing, session, clock, variants, inventory, actor_id):
        order = place_order(lines=[(0, "4", "10"), (0, "6", "10")])
        purchasing.receive_order(order.id, actor_id)
        InventoryService(session, clock).adjust(variants[0], Decimal("-1"), actor_id)
        session.commit()

        with pytest.raises(InsufficientStockError):
            purchasing.delete_order(order.id, actor_id)
        assert inventory.on_hand(variants[0]) == Decimal("9")


class TestDeleteEdgeCases:

    def test_repeat_delete_reports_already_deleted(self, place_order, purchasing, actor_id):
        order = place_order()
        purchasing.delete_order(order.id, actor_id)

        again = purchasing.delete_order(order.id, actor_id)

        assert again.already_deleted is True
        assert again.order_id == order.id
        assert again.removed_ledger_entries == 0

    def test_unknown_order(self, purchasing, actor_id):
        with pytest.raises(OrderNotFoundError):
            purchasing.delete_order(uuid4(), actor_id)
