"""Production wiring for the purchasing module."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.orm import Session

from payables_config import get_active_config
from payables_kernel.domain.clock import Clock, SystemClock
from payables_modules.purchasing.service import PurchaseOrderService


def build_purchasing_service(
    session: Session,
    clock: Clock | None = None,
    config_path: Path | str | None = None,
) -> PurchaseOrderService:
    """Build a PurchaseOrderService from config (single entrypoint for production).

    Args:
        session: SQLAlchemy session; the service owns its transactions.
        clock: Optional clock; default SystemClock.
        config_path: Optional YAML configuration set.  Defaults to
            ``payables_config/sets/default.yaml``.
    """
    return PurchaseOrderService(
        session,
        clock=clock or SystemClock(),
        config=get_active_config(config_path),
    )
