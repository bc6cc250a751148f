"""
Kernel Invariants Contract.

These invariants must hold after every successful reconciliation workflow.
This module only declares them.  Enforcement is distributed across the
kernel services (writes) and LedgerAuditService (verification by folding
the append-only logs).
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants across the four stores."""

    PAID_EQUALS_PAYMENTS = "paid_equals_payments"
    """PurchaseOrder.paid_amount equals the sum of its PurchaseOrderPayment
    amounts.  Maintained by PurchaseOrderService.record_payment."""

    STATUS_DERIVED = "status_derived"
    """PurchaseOrder.status is completed iff paid >= total, partial iff
    0 < paid < total, pending otherwise.  Computed only by derive_status."""

    BALANCE_EQUALS_LEDGER = "balance_equals_ledger"
    """Creditor.outstanding_balance equals sum(bills) - sum(payments) over
    that creditor's transactions.  Updated in the same transaction as every
    ledger append or removal."""

    INVENTORY_CHAIN = "inventory_chain"
    """Every InventoryTransaction satisfies new = previous + change, each
    transaction's previous equals its predecessor's new, and the last new
    equals InventoryRecord.quantity."""

    ITEMS_SUM_TO_TOTAL = "items_sum_to_total"
    """Sum of PurchaseOrderItem.subtotal equals PurchaseOrder.total_amount."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """InventoryRecord.quantity is never negative."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)
