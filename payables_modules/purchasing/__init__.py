"""
Purchasing module: purchase orders, supplier payments, goods receipt with
landed costs, and order deletion with compensation.
"""

from payables_modules.purchasing.config import PurchasingConfig
from payables_modules.purchasing.models import (
    DeletionResult,
    InitialPayment,
    LineItemInput,
    OrderStatus,
    PaymentInfo,
    PaymentMethod,
    PurchaseOrderInfo,
    PurchaseOrderItemInfo,
    ReceiptResult,
)
from payables_modules.purchasing.selectors import PurchaseOrderSelector
from payables_modules.purchasing.service import PurchaseOrderService
from payables_modules.purchasing.workflows import PURCHASE_ORDER_WORKFLOW, derive_status

__all__ = [
    "DeletionResult",
    "InitialPayment",
    "LineItemInput",
    "OrderStatus",
    "PURCHASE_ORDER_WORKFLOW",
    "PaymentInfo",
    "PaymentMethod",
    "PurchaseOrderInfo",
    "PurchaseOrderItemInfo",
    "PurchaseOrderSelector",
    "PurchaseOrderService",
    "PurchasingConfig",
    "ReceiptResult",
    "derive_status",
]
