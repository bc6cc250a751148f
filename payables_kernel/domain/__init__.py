"""
Pure domain layer: no I/O, no ORM imports.
"""

from payables_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payables_kernel.domain.deadline import Deadline
from payables_kernel.domain.landed_cost import (
    LandedCostAllocation,
    LandedCostLine,
    VariableCosts,
    allocate_landed_costs,
)
from payables_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "Deadline",
    "LandedCostAllocation",
    "LandedCostLine",
    "VariableCosts",
    "allocate_landed_costs",
    "Guard",
    "Transition",
    "Workflow",
]
