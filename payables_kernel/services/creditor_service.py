"""
Service layer for creditors and the creditor ledger.

Manages supplier records and appends bill and payment entries to the
append-only creditor ledger.  The cached ``outstanding_balance`` is moved by
``adjust_balance`` in the same transaction as the ledger writes; the caller
decides the order of steps.

Public lookups return CreditorInfo DTOs.  The ``lock``/``post_*`` methods
work on ORM rows because they are only called inside a workflow that holds
the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select

from payables_kernel.db.types import ZERO
from payables_kernel.exceptions import (
    CreditorNotFoundError,
    InvalidAmountError,
    ValidationError,
)
from payables_kernel.logging_config import get_logger
from payables_kernel.models.creditor import (
    Creditor,
    CreditorTransaction,
    CreditorTransactionType,
)
from payables_kernel.services.base import BaseService

logger = get_logger("services.creditor")


@dataclass(frozen=True)
class CreditorInfo:
    """Immutable DTO for creditor data."""

    id: UUID
    name: str
    contact_person: str | None
    phone: str | None
    email: str | None
    address: str | None
    outstanding_balance: Decimal


class CreditorService(BaseService[Creditor]):
    """
    Service for suppliers and their ledger.

    Contract:
        Every ledger append allocates the next per-creditor sequence number
        from ``Creditor.last_sequence``, which also bumps the creditor's
        version.  Two workflows racing on the same creditor therefore
        conflict on the creditor row rather than interleaving ledger rows.
    """

    def _to_dto(self, creditor: Creditor) -> CreditorInfo:
        return CreditorInfo(
            id=creditor.id,
            name=creditor.name,
            contact_person=creditor.contact_person,
            phone=creditor.phone,
            email=creditor.email,
            address=creditor.address,
            outstanding_balance=creditor.outstanding_balance,
        )

    def _get_by_id(self, creditor_id: UUID) -> Creditor:
        creditor = self.session.get(Creditor, creditor_id)
        if creditor is None:
            raise CreditorNotFoundError(str(creditor_id))
        return creditor

    def get_by_id(self, creditor_id: UUID) -> CreditorInfo:
        """
        Raises:
            CreditorNotFoundError: If the creditor doesn't exist.
        """
        return self._to_dto(self._get_by_id(creditor_id))

    def exists(self, creditor_id: UUID) -> bool:
        return self.session.get(Creditor, creditor_id) is not None

    def find_by_name(self, name: str) -> CreditorInfo | None:
        stmt = select(Creditor).where(Creditor.name == name).order_by(Creditor.created_at)
        creditor = self.session.execute(stmt).scalars().first()
        return self._to_dto(creditor) if creditor else None

    def list_creditors(self) -> list[CreditorInfo]:
        stmt = select(Creditor).order_by(Creditor.name)
        return [self._to_dto(c) for c in self.session.execute(stmt).scalars()]

    def create_creditor(
        self,
        name: str,
        actor_id: UUID,
        contact_person: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> CreditorInfo:
        """
        Create a supplier with a zero balance.

        Raises:
            ValidationError: If name is blank.
        """
        if not name or not name.strip():
            raise ValidationError("Supplier name is required", field="name")

        creditor = Creditor(
            name=name.strip(),
            contact_person=contact_person,
            phone=phone,
            email=email,
            address=address,
            outstanding_balance=ZERO,
            last_sequence=0,
            created_by_id=actor_id,
        )
        self.session.add(creditor)
        self.session.flush()
        logger.info(
            "creditor_created",
            extra={"creditor_id": str(creditor.id), "creditor_name": creditor.name},
        )
        return self._to_dto(creditor)

    def get_or_create_anonymous_vendor(
        self,
        actor_id: UUID,
        name: str = "Anonymous Vendor",
    ) -> CreditorInfo:
        """Return the walk-in supplier record, creating it on first use."""
        existing = self.find_by_name(name)
        if existing is not None:
            return existing
        logger.info("anonymous_vendor_missing", extra={"creditor_name": name})
        return self.create_creditor(name, actor_id)

    # Ledger writes (called inside a workflow transaction)

    def lock(self, creditor_id: UUID) -> Creditor:
        """
        Load the creditor row with SELECT ... FOR UPDATE.

        Raises:
            CreditorNotFoundError: If the creditor doesn't exist.
        """
        creditor = self.session.execute(
            select(Creditor)
            .where(Creditor.id == creditor_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if creditor is None:
            raise CreditorNotFoundError(str(creditor_id))
        return creditor

    def _append(
        self,
        creditor: Creditor,
        transaction_type: CreditorTransactionType,
        amount: Decimal,
        actor_id: UUID,
        purchase_order_id: UUID | None,
        purchase_order_payment_id: UUID | None,
        reference_number: str | None,
        notes: str | None,
    ) -> CreditorTransaction:
        if amount <= ZERO:
            raise InvalidAmountError(amount, f"Ledger amount must be positive, got {amount}")

        creditor.last_sequence += 1
        entry = CreditorTransaction(
            creditor_id=creditor.id,
            sequence=creditor.last_sequence,
            transaction_type=transaction_type.value,
            amount=amount,
            reference_number=reference_number,
            notes=notes,
            purchase_order_id=purchase_order_id,
            purchase_order_payment_id=purchase_order_payment_id,
            created_at=self.clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(entry)
        self.session.flush()
        logger.debug(
            "creditor_ledger_appended",
            extra={
                "creditor_id": str(creditor.id),
                "sequence": entry.sequence,
                "transaction_type": entry.transaction_type,
                "amount": str(amount),
                "reference_number": reference_number,
            },
        )
        return entry

    def post_bill(
        self,
        creditor: Creditor,
        amount: Decimal,
        actor_id: UUID,
        purchase_order_id: UUID | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> CreditorTransaction:
        """Append a bill.  Does not touch the cached balance."""
        return self._append(
            creditor, CreditorTransactionType.BILL, amount, actor_id,
            purchase_order_id, None, reference_number, notes,
        )

    def post_payment(
        self,
        creditor: Creditor,
        amount: Decimal,
        actor_id: UUID,
        purchase_order_id: UUID | None = None,
        purchase_order_payment_id: UUID | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> CreditorTransaction:
        """Append a payment.  Does not touch the cached balance."""
        return self._append(
            creditor, CreditorTransactionType.PAYMENT, amount, actor_id,
            purchase_order_id, purchase_order_payment_id, reference_number, notes,
        )

    def adjust_balance(self, creditor: Creditor, delta: Decimal, actor_id: UUID) -> Decimal:
        """Move the cached outstanding balance by ``delta``; returns the new balance."""
        previous = creditor.outstanding_balance
        creditor.outstanding_balance = previous + delta
        creditor.updated_by_id = actor_id
        self.session.flush()
        logger.debug(
            "creditor_balance_adjusted",
            extra={
                "creditor_id": str(creditor.id),
                "previous_balance": str(previous),
                "delta": str(delta),
                "new_balance": str(creditor.outstanding_balance),
            },
        )
        return creditor.outstanding_balance

    def remove_order_transactions(self, creditor: Creditor, purchase_order_id: UUID) -> int:
        """Delete every ledger entry linked to the order; returns the count removed."""
        count = self.session.execute(
            select(func.count())
            .select_from(CreditorTransaction)
            .where(CreditorTransaction.purchase_order_id == purchase_order_id)
        ).scalar_one()
        self.session.execute(
            delete(CreditorTransaction)
            .where(CreditorTransaction.purchase_order_id == purchase_order_id)
            .execution_options(synchronize_session="fetch")
        )
        self.session.flush()
        logger.debug(
            "creditor_ledger_entries_removed",
            extra={
                "creditor_id": str(creditor.id),
                "purchase_order_id": str(purchase_order_id),
                "count": count,
            },
        )
        return count
