"""
Payables Kernel

Bookkeeping core for purchase orders and the creditor ledger:
- Atomic, single-transaction workflows across four logical stores
- Cached balances maintained inside the same transaction as the log append
- Per-aggregate serialization via row locks and version counters
- Append-only ledger and inventory audit trails
"""

__version__ = "0.1.0"
