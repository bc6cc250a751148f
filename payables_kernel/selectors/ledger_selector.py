"""
Module: payables_kernel.selectors.ledger_selector
Responsibility: Read models over the creditor ledger: a supplier statement
    with running balance, and balances derived by folding the log.
Architecture position: Kernel > Selectors.  Read-only.

Audit relevance:
    derived_balance is the value the cached Creditor.outstanding_balance must
    equal.  LedgerAuditService compares the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from payables_kernel.db.types import ZERO
from payables_kernel.exceptions import CreditorNotFoundError
from payables_kernel.models.creditor import (
    Creditor,
    CreditorTransaction,
    CreditorTransactionType,
)
from payables_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StatementLine:
    """One ledger entry with the balance after it."""

    transaction_id: UUID
    sequence: int
    transaction_type: str
    amount: Decimal
    reference_number: str | None
    purchase_order_id: UUID | None
    notes: str | None
    created_at: datetime
    running_balance: Decimal


@dataclass(frozen=True)
class CreditorStatement:
    creditor_id: UUID
    creditor_name: str
    lines: tuple[StatementLine, ...]
    cached_balance: Decimal

    @property
    def closing_balance(self) -> Decimal:
        return self.lines[-1].running_balance if self.lines else ZERO


def _signed_amount():
    return case(
        (
            CreditorTransaction.transaction_type == CreditorTransactionType.BILL.value,
            CreditorTransaction.amount,
        ),
        else_=-CreditorTransaction.amount,
    )


class LedgerSelector(BaseSelector[CreditorTransaction]):
    """Read access to the creditor ledger."""

    def statement(self, creditor_id: UUID) -> CreditorStatement:
        """
        Chronological ledger entries (by sequence) with a running balance.

        Raises:
            CreditorNotFoundError: If the creditor doesn't exist.
        """
        creditor = self.session.get(Creditor, creditor_id)
        if creditor is None:
            raise CreditorNotFoundError(str(creditor_id))

        rows = self.session.execute(
            select(CreditorTransaction)
            .where(CreditorTransaction.creditor_id == creditor_id)
            .order_by(CreditorTransaction.sequence)
        ).scalars()

        balance = ZERO
        lines = []
        for row in rows:
            balance += row.signed_amount
            lines.append(
                StatementLine(
                    transaction_id=row.id,
                    sequence=row.sequence,
                    transaction_type=row.transaction_type,
                    amount=row.amount,
                    reference_number=row.reference_number,
                    purchase_order_id=row.purchase_order_id,
                    notes=row.notes,
                    created_at=row.created_at,
                    running_balance=balance,
                )
            )
        return CreditorStatement(
            creditor_id=creditor.id,
            creditor_name=creditor.name,
            lines=tuple(lines),
            cached_balance=creditor.outstanding_balance,
        )

    def derived_balance(self, creditor_id: UUID) -> Decimal:
        """sum(bills) - sum(payments) for one creditor."""
        total = self.session.execute(
            select(func.sum(_signed_amount())).where(
                CreditorTransaction.creditor_id == creditor_id
            )
        ).scalar_one_or_none()
        return Decimal(total) if total is not None else ZERO

    def derived_balances(self) -> dict[UUID, Decimal]:
        """Derived balance of every creditor, including those with no entries."""
        balances = {
            creditor_id: ZERO
            for creditor_id in self.session.execute(select(Creditor.id)).scalars()
        }
        rows = self.session.execute(
            select(CreditorTransaction.creditor_id, func.sum(_signed_amount()))
            .group_by(CreditorTransaction.creditor_id)
        )
        for creditor_id, total in rows:
            balances[creditor_id] = Decimal(total) if total is not None else ZERO
        return balances

    def entries_for_order(self, purchase_order_id: UUID) -> list[StatementLine]:
        """Ledger entries linked to one purchase order, without running balance."""
        rows = self.session.execute(
            select(CreditorTransaction)
            .where(CreditorTransaction.purchase_order_id == purchase_order_id)
            .order_by(CreditorTransaction.sequence)
        ).scalars()
        return [
            StatementLine(
                transaction_id=row.id,
                sequence=row.sequence,
                transaction_type=row.transaction_type,
                amount=row.amount,
                reference_number=row.reference_number,
                purchase_order_id=row.purchase_order_id,
                notes=row.notes,
                created_at=row.created_at,
                running_balance=ZERO,
            )
            for row in rows
        ]
