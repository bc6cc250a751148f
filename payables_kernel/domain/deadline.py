"""
Deadline -- request deadline value object.

A workflow checks its deadline between steps and once more right before
commit.  Because every workflow runs in a single transaction, an expired
deadline aborts with a rollback and nothing has been committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from payables_kernel.domain.clock import Clock
from payables_kernel.exceptions import DeadlineExceededError


@dataclass(frozen=True)
class Deadline:
    """An absolute point in time evaluated against an injected clock."""

    expires_at: datetime
    clock: Clock

    @classmethod
    def after(cls, clock: Clock, seconds: float) -> Deadline:
        """Deadline ``seconds`` from the clock's current time."""
        return cls(expires_at=clock.now() + timedelta(seconds=seconds), clock=clock)

    @property
    def expired(self) -> bool:
        return self.clock.now() >= self.expires_at

    def remaining_seconds(self) -> float:
        return max(0.0, (self.expires_at - self.clock.now()).total_seconds())

    def check(self, workflow: str, step: str) -> None:
        """
        Raise if the deadline has passed.

        Raises:
            DeadlineExceededError: When ``clock.now() >= expires_at``.
        """
        if self.expired:
            raise DeadlineExceededError(workflow, step, self.expires_at)
