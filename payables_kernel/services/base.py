"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services inherit
    from BaseService, receiving a SQLAlchemy ``Session`` that they use
    via ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The caller
    (PurchaseOrderService, LedgerAuditService, or a test) owns
    commit/rollback, which is what makes each reconciliation workflow
    atomic across the ledger, inventory and payment stores.

Failure modes:
    - If a subclass calls ``session.commit()``, a later failing step could
      no longer undo the earlier ones.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from payables_kernel.db.base import Base
from payables_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-model queries -- those belong
          in ``payables_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source for recorded timestamps.  Defaults to
                SystemClock.
        """
        self.session = session
        self.clock = clock or SystemClock()
