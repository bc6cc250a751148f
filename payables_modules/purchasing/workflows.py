"""
Purchasing Workflows (``payables_modules.purchasing.workflows``).

Responsibility
--------------
Declares the purchase order payment-status state machine and the single
function that derives status from amounts.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports canonical
Guard, Transition, Workflow from ``payables_kernel.domain.workflow``.

Invariants enforced
-------------------
* Status is never assigned directly: ``derive_status`` computes it from
  ``paid_amount`` and ``total_amount``.
* Status only moves forward: pending -> partial -> completed.  A payment
  never moves an order back, because paid_amount never decreases.
* Deletion is a removal, not a state; ``received_at`` is orthogonal to
  status.
"""

from decimal import Decimal

from payables_kernel.domain.workflow import Guard, Transition, Workflow
from payables_kernel.exceptions import ValidationError
from payables_kernel.logging_config import get_logger
from payables_modules.purchasing.models import OrderStatus

logger = get_logger("modules.purchasing.workflows")


WITHIN_REMAINING_BALANCE = Guard(
    name="within_remaining_balance",
    description="Payment amount is positive and at most the remaining balance plus epsilon",
)

_PENDING = OrderStatus.PENDING.value
_PARTIAL = OrderStatus.PARTIAL.value
_COMPLETED = OrderStatus.COMPLETED.value

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order payment status",
    initial_state=_PENDING,
    states=(_PENDING, _PARTIAL, _COMPLETED),
    transitions=(
        Transition(_PENDING, _PARTIAL, action="record_payment", guard=WITHIN_REMAINING_BALANCE),
        Transition(_PENDING, _COMPLETED, action="record_payment", guard=WITHIN_REMAINING_BALANCE),
        Transition(_PARTIAL, _PARTIAL, action="record_payment", guard=WITHIN_REMAINING_BALANCE),
        Transition(_PARTIAL, _COMPLETED, action="record_payment", guard=WITHIN_REMAINING_BALANCE),
        # Sub-epsilon payments on a settled order are tolerated.
        Transition(_COMPLETED, _COMPLETED, action="record_payment", guard=WITHIN_REMAINING_BALANCE),
    ),
)

logger.info(
    "purchase_order_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)


def derive_status(paid_amount: Decimal, total_amount: Decimal) -> OrderStatus:
    """
    completed iff paid >= total; partial iff 0 < paid < total; pending otherwise.

    A zero-total order is therefore completed from the start.
    """
    if paid_amount >= total_amount:
        return OrderStatus.COMPLETED
    if paid_amount > 0:
        return OrderStatus.PARTIAL
    return OrderStatus.PENDING


def transition_for_payment(current: OrderStatus, paid_amount: Decimal, total_amount: Decimal) -> OrderStatus:
    """
    Status after a payment, checked against PURCHASE_ORDER_WORKFLOW.

    Raises:
        ValidationError: If the derived move is not a declared transition.
    """
    target = derive_status(paid_amount, total_amount)
    if PURCHASE_ORDER_WORKFLOW.find_transition(current.value, target.value, "record_payment") is None:
        raise ValidationError(
            f"Payment cannot move purchase order from {current.value} to {target.value}",
            field="status",
        )
    return target
