"""
Purchasing Selectors (``payables_modules.purchasing.selectors``).

Read-only queries over purchase orders, returning ``PurchaseOrderInfo``
snapshots.  Follows the kernel selector contract: no add/flush/commit.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from payables_kernel.exceptions import OrderNotFoundError
from payables_kernel.models.creditor import Creditor
from payables_kernel.selectors.base import BaseSelector
from payables_modules.purchasing.models import OrderStatus, PurchaseOrderInfo
from payables_modules.purchasing.orm import PurchaseOrderModel


class PurchaseOrderSelector(BaseSelector[PurchaseOrderModel]):
    """Read access to purchase orders with their items and payments."""

    def _base_query(self):
        return select(PurchaseOrderModel).options(
            selectinload(PurchaseOrderModel.items),
            selectinload(PurchaseOrderModel.payments),
        )

    def find_order(self, order_id: UUID) -> PurchaseOrderInfo | None:
        order = self.session.execute(
            self._base_query().where(PurchaseOrderModel.id == order_id)
        ).scalar_one_or_none()
        return order.to_dto() if order is not None else None

    def get_order(self, order_id: UUID) -> PurchaseOrderInfo:
        """
        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        info = self.find_order(order_id)
        if info is None:
            raise OrderNotFoundError(str(order_id))
        return info

    def find_by_number(self, order_number: str) -> PurchaseOrderInfo | None:
        order = self.session.execute(
            self._base_query().where(PurchaseOrderModel.order_number == order_number)
        ).scalar_one_or_none()
        return order.to_dto() if order is not None else None

    def list_orders(
        self,
        status: OrderStatus | None = None,
        creditor_id: UUID | None = None,
        search: str | None = None,
    ) -> list[PurchaseOrderInfo]:
        """
        Orders newest first.

        ``search`` matches the order number or the supplier name,
        case-insensitively.
        """
        stmt = self._base_query()
        if status is not None:
            stmt = stmt.where(PurchaseOrderModel.status == status.value)
        if creditor_id is not None:
            stmt = stmt.where(PurchaseOrderModel.creditor_id == creditor_id)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.join(Creditor, Creditor.id == PurchaseOrderModel.creditor_id).where(
                or_(
                    PurchaseOrderModel.order_number.ilike(pattern),
                    Creditor.name.ilike(pattern),
                )
            )
        stmt = stmt.order_by(
            PurchaseOrderModel.created_at.desc(),
            PurchaseOrderModel.order_number.desc(),
        )
        return [order.to_dto() for order in self.session.execute(stmt).scalars()]

    def remaining_balance(self, order_id: UUID) -> Decimal:
        return self.get_order(order_id).remaining_balance
