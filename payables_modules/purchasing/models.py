"""
Purchasing Domain Models (``payables_modules.purchasing.models``).

Responsibility
--------------
Frozen value objects for purchase orders: the inputs callers hand to
``PurchaseOrderService`` and the snapshots it hands back.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  ORM rows
are converted to these objects by ``orm.py`` before they leave the service.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (never ``float``).
* All dataclasses are ``frozen=True``.
* ``OrderStatus`` values must align with
  ``workflows.PURCHASE_ORDER_WORKFLOW.states``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from payables_kernel.domain.landed_cost import LandedCostAllocation


class OrderStatus(Enum):
    """Payment status of a purchase order.  Derived, never set directly."""
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class PaymentMethod(Enum):
    """How a supplier was paid."""
    CASH = "cash"
    MPESA = "mpesa"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"


@dataclass(frozen=True)
class LineItemInput:
    """One requested line on a new purchase order."""
    variant_id: UUID
    quantity: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class InitialPayment:
    """A payment made at the moment the order is placed."""
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    reference_number: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PurchaseOrderItemInfo:
    id: UUID
    line_number: int
    variant_id: UUID
    quantity: Decimal
    unit_cost: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class PaymentInfo:
    """A recorded supplier payment against one purchase order."""
    id: UUID
    purchase_order_id: UUID
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    reference_number: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PurchaseOrderInfo:
    """Snapshot of a purchase order with its items and payments."""
    id: UUID
    creditor_id: UUID
    order_number: str
    total_amount: Decimal
    paid_amount: Decimal
    status: OrderStatus
    order_date: date
    received_at: datetime | None = None
    freight_cost: Decimal = Decimal("0")
    customs_cost: Decimal = Decimal("0")
    handling_cost: Decimal = Decimal("0")
    expected_date: date | None = None
    notes: str | None = None
    items: tuple[PurchaseOrderItemInfo, ...] = field(default_factory=tuple)
    payments: tuple[PaymentInfo, ...] = field(default_factory=tuple)

    @property
    def remaining_balance(self) -> Decimal:
        return self.total_amount - self.paid_amount

    @property
    def is_received(self) -> bool:
        return self.received_at is not None

    @property
    def variable_cost_total(self) -> Decimal:
        return self.freight_cost + self.customs_cost + self.handling_cost


@dataclass(frozen=True)
class ReceiptResult:
    """Outcome of receiving an order's goods."""
    order_id: UUID
    received_at: datetime
    allocations: tuple[LandedCostAllocation, ...]


@dataclass(frozen=True)
class DeletionResult:
    """
    Outcome of deleting an order.

    ``already_deleted`` is True when the order had been deleted by an earlier
    call; nothing was written this time.
    """
    order_id: UUID
    order_number: str | None = None
    was_received: bool = False
    reversed_lines: int = 0
    balance_adjustment: Decimal = Decimal("0")
    removed_ledger_entries: int = 0
    already_deleted: bool = False
