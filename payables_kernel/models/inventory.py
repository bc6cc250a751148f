"""
Module: payables_kernel.models.inventory
Responsibility: ORM persistence for per-variant on-hand stock and the
    append-only stock movement log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - InventoryRecord.quantity >= 0 (ck_inventory_quantity_non_negative).
    - Every InventoryTransaction has new_quantity == previous_quantity +
      quantity_change; InventoryService writes the record and the movement
      together under the record's row lock.
    - (variant_id, sequence) is unique, so the chain order is total.

Failure modes:
    - StaleDataError when the record changed under us (version_id_col).
    - IntegrityError on a duplicate variant record or movement sequence.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payables_kernel.db.base import TrackedBase


class InventoryTransactionType(str, Enum):
    """Kinds of stock movement."""

    PURCHASE_RECV = "purchase_recv"
    PURCHASE_REVERSAL = "purchase_reversal"
    ADJUSTMENT = "adjustment"


class InventoryRecord(TrackedBase):
    """Current on-hand quantity of one product variant."""

    __tablename__ = "inventory"

    __table_args__ = (
        UniqueConstraint("variant_id", name="uq_inventory_variant_id"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    variant_id: Mapped[UUID] = mapped_column(ForeignKey("product_variants.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    last_stock_date: Mapped[datetime | None] = mapped_column(nullable=True)
    last_sequence: Mapped[int] = mapped_column(default=0, nullable=False)
    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<InventoryRecord {self.variant_id}: {self.quantity}>"


class InventoryTransaction(TrackedBase):
    """
    One stock movement with before/after snapshots.

    reference_type/reference_id name the document that caused the movement
    (``purchase_order`` and the order id for receipts and reversals).  There
    is no foreign key: the movement outlives a deleted order.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        UniqueConstraint("variant_id", "sequence", name="uq_inventory_transactions_sequence"),
        Index("idx_inventory_transactions_variant_id", "variant_id"),
        Index("idx_inventory_transactions_reference", "reference_type", "reference_id"),
    )

    variant_id: Mapped[UUID] = mapped_column(ForeignKey("product_variants.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    quantity_change: Mapped[Decimal] = mapped_column(nullable=False)
    previous_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    new_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction #{self.sequence} {self.transaction_type} "
            f"{self.previous_quantity}{self.quantity_change:+} -> {self.new_quantity}>"
        )
