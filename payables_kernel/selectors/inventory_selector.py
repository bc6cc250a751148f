"""
Module: payables_kernel.selectors.inventory_selector
Responsibility: Read models over stock: on-hand quantity and the movement
    history of a variant.
Architecture position: Kernel > Selectors.  Read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from payables_kernel.db.types import ZERO
from payables_kernel.models.inventory import InventoryRecord, InventoryTransaction
from payables_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StockMovement:
    id: UUID
    variant_id: UUID
    sequence: int
    transaction_type: str
    quantity_change: Decimal
    previous_quantity: Decimal
    new_quantity: Decimal
    reference_type: str | None
    reference_id: UUID | None
    notes: str | None
    created_at: datetime


class InventorySelector(BaseSelector[InventoryTransaction]):

    def on_hand(self, variant_id: UUID) -> Decimal:
        quantity = self.session.execute(
            select(InventoryRecord.quantity).where(InventoryRecord.variant_id == variant_id)
        ).scalar_one_or_none()
        return quantity if quantity is not None else ZERO

    def history(self, variant_id: UUID) -> list[StockMovement]:
        """Every movement of the variant, oldest first."""
        rows = self.session.execute(
            select(InventoryTransaction)
            .where(InventoryTransaction.variant_id == variant_id)
            .order_by(InventoryTransaction.sequence)
        ).scalars()
        return [
            StockMovement(
                id=row.id,
                variant_id=row.variant_id,
                sequence=row.sequence,
                transaction_type=row.transaction_type,
                quantity_change=row.quantity_change,
                previous_quantity=row.previous_quantity,
                new_quantity=row.new_quantity,
                reference_type=row.reference_type,
                reference_id=row.reference_id,
                notes=row.notes,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def movements_for_reference(self, reference_type: str, reference_id: UUID) -> list[StockMovement]:
        rows = self.session.execute(
            select(InventoryTransaction.variant_id)
            .where(
                InventoryTransaction.reference_type == reference_type,
                InventoryTransaction.reference_id == reference_id,
            )
            .distinct()
        ).scalars()
        movements = []
        for variant_id in rows:
            movements.extend(
                m for m in self.history(variant_id)
                if m.reference_type == reference_type and m.reference_id == reference_id
            )
        return movements
