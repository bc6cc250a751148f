"""Kernel services: flush-only writers over the payables stores."""

from payables_kernel.services.base import BaseService
from payables_kernel.services.creditor_service import CreditorInfo, CreditorService
from payables_kernel.services.inventory_service import InventoryService
from payables_kernel.services.product_service import ProductService
from payables_kernel.services.workflow_run_service import WorkflowRunService

__all__ = [
    "BaseService",
    "CreditorInfo",
    "CreditorService",
    "InventoryService",
    "ProductService",
    "WorkflowRunService",
]
