"""
Landed cost allocation.

Variable costs are spread over line items by subtotal share.  Whatever the
inputs, the allocated amounts must add back up to the variable cost total.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from payables_kernel.domain.landed_cost import (
    LandedCostLine,
    VariableCosts,
    allocate_landed_costs,
)
from payables_kernel.exceptions import ValidationError

quantities = st.decimals(min_value=Decimal("0.001"), max_value=Decimal("10000"), places=3)
unit_costs = st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=2)
charges = st.decimals(min_value=Decimal("0"), max_value=Decimal("50000"), places=2)

lines = st.lists(
    st.builds(lambda q, c: LandedCostLine(uuid4(), q, c), quantities, unit_costs),
    min_size=1,
    max_size=8,
)


def _line(quantity: str, unit_cost: str) -> LandedCostLine:
    return LandedCostLine(uuid4(), Decimal(quantity), Decimal(unit_cost))


class TestAllocation:

    def test_equal_subtotals_share_equally(self):
        result = allocate_landed_costs(
            [_line("10", "100"), _line("5", "200")],
            VariableCosts(freight=Decimal("60"), customs=Decimal("30"), handling=Decimal("10")),
        )

        assert [a.share for a in result] == [Decimal("0.5"), Decimal("0.5")]
        assert [a.allocated_cost for a in result] == [Decimal("50"), Decimal("50")]
        assert [a.new_unit_cost for a in result] == [Decimal("105"), Decimal("210")]
        assert [a.landed_total for a in result] == [Decimal("1050"), Decimal("1050")]

    def test_last_line_absorbs_rounding(self):
        result = allocate_landed_costs(
            [_line("1", "1"), _line("1", "1"), _line("1", "1")],
            VariableCosts(freight=Decimal("1")),
        )

        assert [a.allocated_cost for a in result] == [
            Decimal("0.333333333"), Decimal("0.333333333"), Decimal("0.333333334"),
        ]
        assert [a.rounded_unit_cost for a in result] == [
            Decimal("1.33"), Decimal("1.33"), Decimal("1.33"),
        ]

    def test_no_variable_costs_keeps_unit_cost(self):
        result = allocate_landed_costs([_line("4", "12.50")], VariableCosts())

        assert result[0].allocated_cost == Decimal("0")
        assert result[0].new_unit_cost == Decimal("12.50")

    def test_zero_subtotal_allocates_nothing(self):
        result = allocate_landed_costs(
            [_line("2", "0"), _line("3", "0")], VariableCosts(freight=Decimal("40")),
        )

        assert all(a.share == 0 and a.allocated_cost == 0 for a in result)
        assert all(a.new_unit_cost == 0 for a in result)

    def test_no_items(self):
        assert allocate_landed_costs([], VariableCosts(freight=Decimal("5"))) == ()

    @given(items=lines, freight=charges, customs=charges, handling=charges)
    @settings(max_examples=200)
    def test_allocation_is_conserved(self, items, freight, customs, handling):
        costs = VariableCosts(freight=freight, customs=customs, handling=handling)

        result = allocate_landed_costs(items, costs)

        assert len(result) == len(items)
        if sum(item.subtotal for item in items) > 0:
            assert sum(a.allocated_cost for a in result) == costs.total
        assert all(a.allocated_cost >= 0 for a in result[:-1])

    @given(items=lines)
    @settings(max_examples=100)
    def test_landed_cost_never_below_purchase_cost(self, items):
        result = allocate_landed_costs(items, VariableCosts(freight=Decimal("100")))

        for item, allocation in zip(items, result):
            assert allocation.variant_id == item.variant_id
            assert allocation.new_unit_cost * item.quantity >= item.subtotal - Decimal("0.00000001")


class TestValidation:

    @pytest.mark.parametrize("quantity", ["0", "-1"])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            _line(quantity, "1")
        assert exc_info.value.field == "quantity"

    def test_unit_cost_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            _line("1", "-0.01")

    @pytest.mark.parametrize("name", ["freight", "customs", "handling"])
    def test_variable_costs_cannot_be_negative(self, name):
        with pytest.raises(ValidationError) as exc_info:
            VariableCosts(**{name: Decimal("-1")})
        assert exc_info.value.field == f"{name}_cost"
