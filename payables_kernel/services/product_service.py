"""
Service layer for product variants.

Only the pieces purchasing needs: registering a variant, checking that
variants exist, and overwriting cost_price with a landed unit cost.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from payables_kernel.exceptions import ValidationError, VariantNotFoundError
from payables_kernel.logging_config import get_logger
from payables_kernel.models.product import ProductVariant
from payables_kernel.services.base import BaseService

logger = get_logger("services.product")


class ProductService(BaseService[ProductVariant]):

    def create_variant(
        self,
        sku: str,
        variant_name: str,
        actor_id: UUID,
        cost_price: Decimal = Decimal("0"),
        price: Decimal = Decimal("0"),
    ) -> ProductVariant:
        if not sku or not sku.strip():
            raise ValidationError("SKU is required", field="sku")
        variant = ProductVariant(
            sku=sku.strip(),
            variant_name=variant_name,
            cost_price=cost_price,
            price=price,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(variant)
        self.session.flush()
        return variant

    def get_variant(self, variant_id: UUID) -> ProductVariant:
        """
        Raises:
            VariantNotFoundError: If the variant doesn't exist.
        """
        variant = self.session.get(ProductVariant, variant_id)
        if variant is None:
            raise VariantNotFoundError(str(variant_id))
        return variant

    def require_variants(self, variant_ids: Iterable[UUID]) -> None:
        """
        Raises:
            VariantNotFoundError: For the first id with no variant row.
        """
        wanted = list(dict.fromkeys(variant_ids))
        if not wanted:
            return
        found = set(
            self.session.execute(
                select(ProductVariant.id).where(ProductVariant.id.in_(wanted))
            ).scalars()
        )
        for variant_id in wanted:
            if variant_id not in found:
                raise VariantNotFoundError(str(variant_id))

    def set_cost_price(self, variant_id: UUID, cost_price: Decimal, actor_id: UUID) -> ProductVariant:
        """Overwrite cost_price (last-landed-cost policy)."""
        variant = self.get_variant(variant_id)
        previous = variant.cost_price
        variant.cost_price = cost_price
        variant.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "variant_cost_price_updated",
            extra={
                "variant_id": str(variant_id),
                "previous_cost_price": str(previous),
                "cost_price": str(cost_price),
            },
        )
        return variant
