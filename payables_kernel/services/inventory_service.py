"""
InventoryService -- stock movements with a before/after audit trail.

Responsibility:
    Changes a variant's on-hand quantity and appends the matching
    InventoryTransaction in one step, so the record and its movement log
    can never disagree.

Architecture position:
    Kernel > Services.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - new_quantity == previous_quantity + quantity_change for every movement,
      and the record's quantity equals the newest movement's new_quantity.
    - On-hand quantity never goes below zero.

Failure modes:
    - InsufficientStockError when a decrement exceeds on-hand stock.  Raised
      before the record or the log is touched.
    - InvalidAmountError on a zero or wrong-signed quantity.
"""

from collections.abc import Mapping
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from payables_kernel.db.types import ZERO
from payables_kernel.exceptions import InsufficientStockError, InvalidAmountError
from payables_kernel.logging_config import get_logger
from payables_kernel.models.inventory import (
    InventoryRecord,
    InventoryTransaction,
    InventoryTransactionType,
)
from payables_kernel.services.base import BaseService

logger = get_logger("services.inventory")

PURCHASE_ORDER_REFERENCE = "purchase_order"


class InventoryService(BaseService[InventoryRecord]):
    """Writes stock movements for receipts, reversals and manual adjustments."""

    def lock_record(
        self,
        variant_id: UUID,
        actor_id: UUID | None,
        create: bool = True,
    ) -> InventoryRecord | None:
        """
        Load the variant's inventory row with SELECT ... FOR UPDATE.

        When the variant has no row yet and ``create`` is True, a row with
        quantity 0 is inserted.
        """
        record = self.session.execute(
            select(InventoryRecord)
            .where(InventoryRecord.variant_id == variant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if record is None and create:
            record = InventoryRecord(
                variant_id=variant_id,
                quantity=ZERO,
                last_sequence=0,
                created_by_id=actor_id,
            )
            self.session.add(record)
            self.session.flush()
            logger.info("inventory_record_created", extra={"variant_id": str(variant_id)})
        return record

    def on_hand(self, variant_id: UUID) -> Decimal:
        quantity = self.session.execute(
            select(InventoryRecord.quantity).where(InventoryRecord.variant_id == variant_id)
        ).scalar_one_or_none()
        return quantity if quantity is not None else ZERO

    def check_available(self, requirements: Mapping[UUID, Decimal]) -> None:
        """
        Verify every variant has at least the required quantity on hand.

        Locks each affected row.  Nothing is written.

        Raises:
            InsufficientStockError: For the first variant that falls short.
        """
        for variant_id in sorted(requirements, key=str):
            requested = requirements[variant_id]
            record = self.lock_record(variant_id, actor_id=None, create=False)
            on_hand = record.quantity if record is not None else ZERO
            if requested > on_hand:
                raise InsufficientStockError(str(variant_id), on_hand, requested)

    def receive(
        self,
        variant_id: UUID,
        quantity: Decimal,
        actor_id: UUID,
        reference_id: UUID | None = None,
        notes: str | None = None,
    ) -> InventoryTransaction:
        """Add received goods to stock (``purchase_recv``)."""
        if quantity <= ZERO:
            raise InvalidAmountError(quantity, f"Received quantity must be positive, got {quantity}")
        return self._move(
            variant_id, quantity, InventoryTransactionType.PURCHASE_RECV,
            actor_id, PURCHASE_ORDER_REFERENCE, reference_id, notes,
        )

    def reverse_receipt(
        self,
        variant_id: UUID,
        quantity: Decimal,
        actor_id: UUID,
        reference_id: UUID | None = None,
        notes: str | None = None,
    ) -> InventoryTransaction:
        """Take previously received goods back out of stock (``purchase_reversal``)."""
        if quantity <= ZERO:
            raise InvalidAmountError(quantity, f"Reversed quantity must be positive, got {quantity}")
        return self._move(
            variant_id, -quantity, InventoryTransactionType.PURCHASE_REVERSAL,
            actor_id, PURCHASE_ORDER_REFERENCE, reference_id, notes,
        )

    def adjust(
        self,
        variant_id: UUID,
        quantity_change: Decimal,
        actor_id: UUID,
        notes: str | None = None,
    ) -> InventoryTransaction:
        """Manual stock correction or sale; signed."""
        if quantity_change == ZERO:
            raise InvalidAmountError(quantity_change, "Adjustment cannot be zero")
        return self._move(
            variant_id, quantity_change, InventoryTransactionType.ADJUSTMENT,
            actor_id, None, None, notes,
        )

    def _move(
        self,
        variant_id: UUID,
        quantity_change: Decimal,
        transaction_type: InventoryTransactionType,
        actor_id: UUID,
        reference_type: str | None,
        reference_id: UUID | None,
        notes: str | None,
    ) -> InventoryTransaction:
        record = self.lock_record(variant_id, actor_id)
        previous = record.quantity
        new = previous + quantity_change
        if new < ZERO:
            raise InsufficientStockError(str(variant_id), previous, -quantity_change)

        now = self.clock.now()
        record.quantity = new
        record.last_stock_date = now
        record.last_sequence += 1
        record.updated_by_id = actor_id

        movement = InventoryTransaction(
            variant_id=variant_id,
            sequence=record.last_sequence,
            transaction_type=transaction_type.value,
            quantity_change=quantity_change,
            previous_quantity=previous,
            new_quantity=new,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_at=now,
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "inventory_moved",
            extra={
                "variant_id": str(variant_id),
                "transaction_type": transaction_type.value,
                "quantity_change": str(quantity_change),
                "previous_quantity": str(previous),
                "new_quantity": str(new),
            },
        )
        return movement
