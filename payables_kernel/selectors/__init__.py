"""Read-only query selectors."""

from payables_kernel.selectors.base import BaseSelector
from payables_kernel.selectors.inventory_selector import InventorySelector, StockMovement
from payables_kernel.selectors.ledger_selector import (
    CreditorStatement,
    LedgerSelector,
    StatementLine,
)

__all__ = [
    "BaseSelector",
    "CreditorStatement",
    "InventorySelector",
    "LedgerSelector",
    "StatementLine",
    "StockMovement",
]
