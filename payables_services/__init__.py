"""
payables_services -- cross-store services composed over the kernel and the
purchasing module.

Dependency direction:
    payables_services/ -> payables_modules/, payables_kernel/  (allowed)
    payables_kernel/   -> payables_services/                   (FORBIDDEN)
"""

from payables_services.ledger_audit_service import (
    AuditReport,
    BalanceRepair,
    InvariantViolation,
    LedgerAuditService,
)
from payables_services.purchasing_wiring import build_purchasing_service

__all__ = [
    "AuditReport",
    "BalanceRepair",
    "InvariantViolation",
    "LedgerAuditService",
    "build_purchasing_service",
]
