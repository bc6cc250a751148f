"""
WorkflowRunService -- durable outcome log and idempotency keys.

record_completed is called inside the workflow's transaction right before
commit, so a completed run exists iff the workflow's writes exist.
record_failed is called by the orchestrator after rollback, in a new
transaction of its own.  Failed runs never keep the idempotency key, so the
caller may retry with the same key.
"""

from uuid import UUID

from sqlalchemy import select

from payables_kernel.logging_config import get_logger
from payables_kernel.models.workflow_run import WorkflowRun, WorkflowRunStatus
from payables_kernel.services.base import BaseService

logger = get_logger("services.workflow_run")


class WorkflowRunService(BaseService[WorkflowRun]):

    def find_by_key(self, idempotency_key: str) -> WorkflowRun | None:
        return self.session.execute(
            select(WorkflowRun).where(WorkflowRun.idempotency_key == idempotency_key)
        ).scalar_one_or_none()

    def find_completed(self, workflow: str, aggregate_id: UUID) -> WorkflowRun | None:
        return self.session.execute(
            select(WorkflowRun)
            .where(
                WorkflowRun.workflow == workflow,
                WorkflowRun.aggregate_id == aggregate_id,
                WorkflowRun.status == WorkflowRunStatus.COMPLETED.value,
            )
            .order_by(WorkflowRun.created_at.desc())
        ).scalars().first()

    def list_for_aggregate(self, aggregate_id: UUID) -> list[WorkflowRun]:
        return list(
            self.session.execute(
                select(WorkflowRun)
                .where(WorkflowRun.aggregate_id == aggregate_id)
                .order_by(WorkflowRun.created_at)
            ).scalars()
        )

    def record_completed(
        self,
        workflow: str,
        actor_id: UUID,
        aggregate_id: UUID | None,
        idempotency_key: str | None = None,
        result_id: UUID | None = None,
    ) -> WorkflowRun:
        run = WorkflowRun(
            workflow=workflow,
            idempotency_key=idempotency_key,
            aggregate_id=aggregate_id,
            result_id=result_id,
            status=WorkflowRunStatus.COMPLETED.value,
            created_at=self.clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(run)
        self.session.flush()
        return run

    def record_failed(
        self,
        workflow: str,
        actor_id: UUID,
        error: BaseException,
        aggregate_id: UUID | None = None,
        failed_step: str | None = None,
    ) -> WorkflowRun:
        run = WorkflowRun(
            workflow=workflow,
            aggregate_id=aggregate_id,
            status=WorkflowRunStatus.FAILED.value,
            failed_step=failed_step,
            error_code=getattr(error, "code", type(error).__name__)[:50],
            error_message=str(error)[:4000],
            created_at=self.clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(run)
        self.session.flush()
        logger.info(
            "workflow_failure_recorded",
            extra={
                "workflow": workflow,
                "failed_step": failed_step,
                "error_code": run.error_code,
            },
        )
        return run
