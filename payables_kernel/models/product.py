"""
Module: payables_kernel.models.product
Responsibility: ORM persistence for sellable product variants.

cost_price follows a last-landed-cost policy: every goods receipt overwrites
it with the landed unit cost of the most recent purchase.
"""

from decimal import Decimal

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payables_kernel.db.base import TrackedBase


class ProductVariant(TrackedBase):
    """A stock-keeping unit."""

    __tablename__ = "product_variants"

    __table_args__ = (UniqueConstraint("sku", name="uq_product_variants_sku"),)

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    variant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost_price: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    price: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<ProductVariant {self.sku}: cost={self.cost_price}>"
