"""
Purchasing ORM Models (``payables_modules.purchasing.orm``).

Responsibility
--------------
SQLAlchemy persistence for the purchase order aggregate: the order header,
its immutable line items and its append-only payment records.  Maps rows to
the frozen dataclasses in ``models.py``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``payables_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``payables_kernel``.

Invariants enforced
-------------------
* order_number is unique (uq_purchase_orders_order_number).
* paid_amount is a cache of sum(payments.amount); status is derived from
  paid_amount and total_amount by ``workflows.derive_status``.
* Deleting an order cascades to its items and payments.
* version increments on every UPDATE (optimistic lock).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payables_kernel.db.base import TrackedBase


class PurchaseOrderModel(TrackedBase):
    """
    ORM model for purchase order headers.

    Guarantees:
        - total_amount is the sum of item subtotals only; freight, customs
          and handling are stored separately.
        - received_at is NULL until goods are received, then set once.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_purchase_orders_order_number"),
        CheckConstraint(
            "freight_cost >= 0 AND customs_cost >= 0 AND handling_cost >= 0",
            name="ck_purchase_orders_variable_costs_non_negative",
        ),
        Index("idx_purchase_orders_creditor_id", "creditor_id"),
        Index("idx_purchase_orders_status", "status"),
    )

    creditor_id: Mapped[UUID] = mapped_column(ForeignKey("creditors.id"), nullable=False)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    received_at: Mapped[datetime | None] = mapped_column(nullable=True)
    freight_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    customs_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    handling_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    items: Mapped[list["PurchaseOrderItemModel"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItemModel.line_number",
    )
    payments: Mapped[list["PurchaseOrderPaymentModel"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderPaymentModel.created_at",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from payables_modules.purchasing.models import OrderStatus, PurchaseOrderInfo

        return PurchaseOrderInfo(
            id=self.id,
            creditor_id=self.creditor_id,
            order_number=self.order_number,
            total_amount=self.total_amount,
            paid_amount=self.paid_amount,
            status=OrderStatus(self.status),
            order_date=self.order_date,
            received_at=self.received_at,
            freight_cost=self.freight_cost,
            customs_cost=self.customs_cost,
            handling_cost=self.handling_cost,
            expected_date=self.expected_date,
            notes=self.notes,
            items=tuple(item.to_dto() for item in self.items),
            payments=tuple(payment.to_dto() for payment in self.payments),
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.order_number}: {self.status}>"


class PurchaseOrderItemModel(TrackedBase):
    """ORM model for purchase order lines.  Never updated after insert."""

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        UniqueConstraint(
            "purchase_order_id", "line_number",
            name="uq_purchase_order_items_line",
        ),
        CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
        CheckConstraint("unit_cost >= 0", name="ck_purchase_order_items_unit_cost"),
        Index("idx_purchase_order_items_variant_id", "variant_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    variant_id: Mapped[UUID] = mapped_column(ForeignKey("product_variants.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)

    purchase_order: Mapped[PurchaseOrderModel] = relationship(back_populates="items")

    def to_dto(self):
        from payables_modules.purchasing.models import PurchaseOrderItemInfo

        return PurchaseOrderItemInfo(
            id=self.id,
            line_number=self.line_number,
            variant_id=self.variant_id,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            subtotal=self.subtotal,
        )


class PurchaseOrderPaymentModel(TrackedBase):
    """ORM model for supplier payments.  Append-only."""

    __tablename__ = "purchase_order_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_purchase_order_payments_amount_positive"),
        Index("idx_purchase_order_payments_order_id", "purchase_order_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    purchase_order: Mapped[PurchaseOrderModel] = relationship(back_populates="payments")

    def to_dto(self):
        from payables_modules.purchasing.models import PaymentInfo, PaymentMethod

        return PaymentInfo(
            id=self.id,
            purchase_order_id=self.purchase_order_id,
            amount=self.amount,
            payment_date=self.payment_date,
            payment_method=PaymentMethod(self.payment_method),
            reference_number=self.reference_number,
            notes=self.notes,
        )
