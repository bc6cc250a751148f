"""
Module: payables_kernel.models.creditor
Responsibility: ORM persistence for suppliers (creditors) and their
    append-only ledger of bills and payments.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - outstanding_balance == sum(bill amounts) - sum(payment amounts) over the
      creditor's transactions.  The cached value is written by
      CreditorService.adjust_balance in the same transaction as every ledger change;
      LedgerAuditService recomputes it from the log.
    - CreditorTransaction.amount > 0 (ck_creditor_transactions_amount_positive).
    - (creditor_id, sequence) is unique, so ledger order is total per creditor.

Failure modes:
    - StaleDataError on flush when the creditor row was changed by another
      transaction since it was loaded (version_id_col).
    - IntegrityError on a duplicate ledger sequence.

Audit relevance:
    The ledger is the source of truth for what the business owes each
    supplier.  Every row names its purchase order (and payment, if any)
    through explicit foreign keys.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payables_kernel.db.base import TrackedBase


class CreditorTransactionType(str, Enum):
    """Ledger entry kinds.  A bill increases the balance, a payment reduces it."""

    BILL = "bill"
    PAYMENT = "payment"


class Creditor(TrackedBase):
    """
    A supplier the business buys from on credit.

    Contract:
        outstanding_balance is a cache over the creditor's ledger and is only
        written through CreditorService.adjust_balance.

    Guarantees:
        - version increments on every UPDATE (optimistic lock).
        - last_sequence is the sequence number of the newest ledger row ever
          allocated for this creditor.
    """

    __tablename__ = "creditors"

    __table_args__ = (Index("idx_creditors_name", "name"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    outstanding_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    last_sequence: Mapped[int] = mapped_column(default=0, nullable=False)
    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    transactions: Mapped[list["CreditorTransaction"]] = relationship(
        back_populates="creditor",
        order_by="CreditorTransaction.sequence",
    )

    def __repr__(self) -> str:
        return f"<Creditor {self.name}: {self.outstanding_balance}>"


class CreditorTransaction(TrackedBase):
    """
    One append-only ledger entry for a creditor.

    Guarantees:
        - transaction_type is a CreditorTransactionType value.
        - purchase_order_id links every entry written by a purchase order
          workflow; purchase_order_payment_id links payment entries to the
          payment record that produced them.
    """

    __tablename__ = "creditor_transactions"

    __table_args__ = (
        UniqueConstraint("creditor_id", "sequence", name="uq_creditor_transactions_sequence"),
        CheckConstraint("amount > 0", name="ck_creditor_transactions_amount_positive"),
        Index("idx_creditor_transactions_creditor_id", "creditor_id"),
        Index("idx_creditor_transactions_purchase_order_id", "purchase_order_id"),
    )

    creditor_id: Mapped[UUID] = mapped_column(ForeignKey("creditors.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )
    purchase_order_payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_order_payments.id"), nullable=True
    )

    creditor: Mapped[Creditor] = relationship(back_populates="transactions")

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the creditor's balance."""
        if self.transaction_type == CreditorTransactionType.BILL.value:
            return self.amount
        return -self.amount

    def __repr__(self) -> str:
        return (
            f"<CreditorTransaction #{self.sequence} {self.transaction_type} "
            f"{self.amount} ref={self.reference_number}>"
        )
