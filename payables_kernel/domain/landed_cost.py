"""
Module: payables_kernel.domain.landed_cost
Responsibility:
    Spread an order's variable costs (freight, customs, handling) across its
    line items pro-rata by subtotal and compute each item's landed unit cost.

Architecture position:
    Kernel > Domain -- pure calculation, zero I/O.

Invariants enforced:
    - Conservation: the allocated amounts sum exactly to the variable cost
      total (when the items subtotal is non-zero).  Allocation runs at
      storage precision and the last line absorbs the rounding residue.
    - Zero variable costs leave every landed unit cost equal to the item's
      unit cost.

Failure modes:
    - ValidationError on quantity <= 0, negative unit cost or negative
      variable cost.

Usage:
    allocations = allocate_landed_costs(
        [LandedCostLine(variant_id=v1, quantity=Decimal("10"), unit_cost=Decimal("100"))],
        VariableCosts(freight=Decimal("50")),
    )
    allocations[0].rounded_unit_cost  # Decimal("105.00")
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from payables_kernel.db.types import ZERO, round_money
from payables_kernel.exceptions import ValidationError
from payables_kernel.logging_config import get_logger

logger = get_logger("domain.landed_cost")

# Matches the scale of Numeric(38, 9) columns.
ALLOCATION_QUANTUM = Decimal("0.000000001")


@dataclass(frozen=True)
class VariableCosts:
    """Order-level costs that are not part of any single line item."""

    freight: Decimal = ZERO
    customs: Decimal = ZERO
    handling: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("freight", "customs", "handling"):
            if getattr(self, name) < ZERO:
                raise ValidationError(
                    f"{name.capitalize()} cost cannot be negative", field=f"{name}_cost"
                )

    @property
    def total(self) -> Decimal:
        return self.freight + self.customs + self.handling


@dataclass(frozen=True)
class LandedCostLine:
    """One received line: a variant, its quantity and its purchase unit cost."""

    variant_id: UUID
    quantity: Decimal
    unit_cost: Decimal

    def __post_init__(self) -> None:
        if self.quantity <= ZERO:
            raise ValidationError(
                f"Quantity must be greater than 0, got {self.quantity}", field="quantity"
            )
        if self.unit_cost < ZERO:
            raise ValidationError(
                f"Unit cost cannot be negative, got {self.unit_cost}", field="unit_cost"
            )

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class LandedCostAllocation:
    """
    Allocation result for a single line.

    ``new_unit_cost`` is unrounded.  ``rounded_unit_cost`` is the value
    written to the variant's cost price.
    """

    variant_id: UUID
    quantity: Decimal
    subtotal: Decimal
    share: Decimal
    allocated_cost: Decimal
    new_unit_cost: Decimal

    @property
    def landed_total(self) -> Decimal:
        return self.subtotal + self.allocated_cost

    @property
    def rounded_unit_cost(self) -> Decimal:
        return round_money(self.new_unit_cost)


def allocate_landed_costs(
    items: Sequence[LandedCostLine],
    variable_costs: VariableCosts,
) -> tuple[LandedCostAllocation, ...]:
    """
    Allocate ``variable_costs`` across ``items`` by subtotal share.

    share = subtotal / items_subtotal (0 when items_subtotal is 0)
    allocated = variable_total * share
    new_unit_cost = (subtotal + allocated) / quantity

    Returns allocations in the same order as ``items``.
    """
    if not items:
        return ()

    items_subtotal = sum((item.subtotal for item in items), ZERO)
    variable_total = variable_costs.total

    allocations: list[LandedCostAllocation] = []
    allocated_so_far = ZERO
    last_index = len(items) - 1

    for index, item in enumerate(items):
        subtotal = item.subtotal
        if items_subtotal == ZERO:
            share = ZERO
            allocated = ZERO
        else:
            share = subtotal / items_subtotal
            if index == last_index:
                allocated = variable_total - allocated_so_far
            else:
                allocated = (variable_total * subtotal / items_subtotal).quantize(
                    ALLOCATION_QUANTUM, rounding=ROUND_HALF_UP
                )
        allocated_so_far += allocated

        allocations.append(
            LandedCostAllocation(
                variant_id=item.variant_id,
                quantity=item.quantity,
                subtotal=subtotal,
                share=share,
                allocated_cost=allocated,
                new_unit_cost=(subtotal + allocated) / item.quantity,
            )
        )

    logger.debug(
        "landed_cost_allocated",
        extra={
            "line_count": len(allocations),
            "items_subtotal": str(items_subtotal),
            "variable_total": str(variable_total),
        },
    )
    return tuple(allocations)
