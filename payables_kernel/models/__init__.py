"""SQLAlchemy ORM models for the payables kernel."""

from payables_kernel.models.creditor import (
    Creditor,
    CreditorTransaction,
    CreditorTransactionType,
)
from payables_kernel.models.inventory import (
    InventoryRecord,
    InventoryTransaction,
    InventoryTransactionType,
)
from payables_kernel.models.product import ProductVariant
from payables_kernel.models.workflow_run import WorkflowRun, WorkflowRunStatus

__all__ = [
    "Creditor",
    "CreditorTransaction",
    "CreditorTransactionType",
    "InventoryRecord",
    "InventoryTransaction",
    "InventoryTransactionType",
    "ProductVariant",
    "WorkflowRun",
    "WorkflowRunStatus",
]
