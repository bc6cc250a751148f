"""Tests for PurchaseOrderService.record_payment."""

from decimal import Decimal
from uuid import uuid4

import pytest

from payables_kernel.exceptions import (
    InvalidAmountError,
    OrderNotFoundError,
    OverpaymentError,
    ValidationError,
)
from payables_kernel.services.creditor_service import CreditorService
from payables_modules.purchasing import (
    OrderStatus,
    PaymentMethod,
    PurchaseOrderService,
    PurchasingConfig,
)


class TestRecordPayment:

    def test_partial_then_full_payment(self, place_order, purchasing, orders, actor_id):
        order = place_order()

        first = purchasing.record_payment(order.id, Decimal("400"), actor_id)
        assert first.amount == Decimal("400")
        assert first.purchase_order_id == order.id
        after_first = orders.get_order(order.id)
        assert after_first.paid_amount == Decimal("400")
        assert after_first.status == OrderStatus.PARTIAL

        purchasing.record_payment(order.id, Decimal("600"), actor_id)
        after_second = orders.get_order(order.id)
        assert after_second.paid_amount == Decimal("1000")
        assert after_second.status == OrderStatus.COMPLETED
        assert after_second.remaining_balance == Decimal("0")
        assert len(after_second.payments) == 2

    def test_payment_moves_balance_and_ledger(self, place_order, purchasing, session, clock, supplier, ledger, actor_id):
        order = place_order()
        purchasing.record_payment(order.id, Decimal("250"), actor_id)

        balance = CreditorService(session, clock).get_by_id(supplier.id).outstanding_balance
        assert balance == Decimal("750")

        statement = ledger.statement(supplier.id)
        payment = statement.lines[-1]
        assert payment.transaction_type == "payment"
        assert payment.amount == Decimal("250")
        assert payment.reference_number == f"PAY-{order.order_number}"
        assert payment.notes == f"Payment for PO #{order.order_number}"
        assert statement.closing_balance == statement.cached_balance == Decimal("750")

    def test_payment_details_are_kept(self, place_order, purchasing, clock, actor_id):
        order = place_order()

        payment = purchasing.record_payment(
            order.id,
            Decimal("100"),
            actor_id,
            payment_method="bank_transfer",
            reference_number="FT24001XYZ",
            notes="March instalment",
        )

        assert payment.payment_method == PaymentMethod.BANK_TRANSFER
        assert payment.reference_number == "FT24001XYZ"
        assert payment.notes == "March instalment"
        assert payment.payment_date == clock.now().date()

    def test_payment_within_tolerance_completes_order(self, place_order, purchasing, orders, actor_id):
        order = place_order()

        purchasing.record_payment(order.id, Decimal("1000.01"), actor_id)

        assert orders.get_order(order.id).status == OrderStatus.COMPLETED

    def test_overpayment_is_rejected(self, place_order, purchasing, orders, actor_id):
        order = place_order()
        purchasing.record_payment(order.id, Decimal("900"), actor_id)

        with pytest.raises(OverpaymentError) as exc_info:
            purchasing.record_payment(order.id, Decimal("100.02"), actor_id)

        assert exc_info.value.remaining == Decimal("100")
        assert exc_info.value.order_ref == order.order_number
        assert orders.get_order(order.id).paid_amount == Decimal("900")

    def test_sub_tolerance_payment_on_settled_order(self, place_order, purchasing, orders, actor_id):
        order = place_order(lines=[(0, "1", "0")])

        purchasing.record_payment(order.id, Decimal("0.005"), actor_id)

        after = orders.get_order(order.id)
        assert after.status == OrderStatus.COMPLETED
        assert after.paid_amount == Decimal("0.005")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_amount(self, place_order, purchasing, actor_id, amount):
        order = place_order()

        with pytest.raises(InvalidAmountError, match="Please enter a valid payment amount"):
            purchasing.record_payment(order.id, amount, actor_id)

    @pytest.mark.parametrize("amount", ["a lot", "NaN", "sNaN", Decimal("NaN"), "Infinity", float("inf")])
    def test_non_numeric_amount(self, place_order, purchasing, orders, actor_id, amount):
        order = place_order()

        with pytest.raises(InvalidAmountError):
            purchasing.record_payment(order.id, amount, actor_id)

        assert orders.get_order(order.id).paid_amount == Decimal("0")

    def test_unknown_order(self, purchasing, actor_id):
        with pytest.raises(OrderNotFoundError):
            purchasing.record_payment(uuid4(), Decimal("10"), actor_id)

    def test_unknown_payment_method(self, place_order, purchasing, actor_id):
        order = place_order()

        with pytest.raises(ValidationError) as exc_info:
            purchasing.record_payment(order.id, Decimal("10"), actor_id, payment_method="barter")
        assert exc_info.value.field == "payment_method"

    def test_method_not_allowed_by_config(self, place_order, session, clock, actor_id):
        order = place_order()
        cash_only = PurchaseOrderService(
            session,
            clock=clock,
            config=PurchasingConfig(allowed_payment_methods=(PaymentMethod.CASH,)),
        )

        with pytest.raises(ValidationError, match="not accepted"):
            cash_only.record_payment(
                order.id, Decimal("10"), actor_id, payment_method=PaymentMethod.CHEQUE,
            )

    def test_configured_epsilon(self, place_order, session, clock, actor_id, orders):
        order = place_order()
        lenient = PurchaseOrderService(
            session, clock=clock, config=PurchasingConfig(payment_epsilon=Decimal("1")),
        )

        lenient.record_payment(order.id, Decimal("1000.99"), actor_id)

        assert orders.get_order(order.id).status == OrderStatus.COMPLETED
