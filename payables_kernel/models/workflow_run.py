"""
Module: payables_kernel.models.workflow_run
Responsibility: Durable outcome log for reconciliation workflows and the
    store behind idempotency keys.

A completed run is written inside the workflow's own transaction, so it
exists iff the workflow's writes committed.  A failed run is written in a
fresh transaction after the rollback.

Invariants enforced:
    - idempotency_key is unique when present (uq_workflow_runs_idempotency_key).
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payables_kernel.db.base import TrackedBase


class WorkflowRunStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowRun(TrackedBase):
    """
    One execution of create / pay / receive / delete.

    aggregate_id is the purchase order; result_id is the primary row the run
    produced (the payment id for ``pay``), used to replay a repeated key.
    """

    __tablename__ = "workflow_runs"

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_workflow_runs_idempotency_key"),
        Index("idx_workflow_runs_aggregate", "workflow", "aggregate_id"),
    )

    workflow: Mapped[str] = mapped_column(String(20), nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    aggregate_id: Mapped[UUID | None] = mapped_column(nullable=True)
    result_id: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    failed_step: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def __repr__(self) -> str:
        return f"<WorkflowRun {self.workflow} {self.status} agg={self.aggregate_id}>"
