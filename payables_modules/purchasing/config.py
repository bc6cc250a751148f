"""
Purchasing Configuration Schema (``payables_modules.purchasing.config``).

Responsibility
--------------
Defines the configuration schema for the purchasing module: overpayment
tolerance, document numbering, the walk-in supplier name, accepted payment
methods and the default workflow deadline.

Architecture position
---------------------
**Modules layer** -- configuration schema only.  Loaded at runtime via
``payables_config.get_active_config()``; no component reads config files or
environment variables directly.

Invariants enforced
-------------------
* Monetary tolerances use ``Decimal`` (never ``float``).
* ``__post_init__`` validates every field.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated.
"""

from dataclasses import dataclass
from decimal import Decimal

from payables_kernel.logging_config import get_logger
from payables_modules.purchasing.models import PaymentMethod

logger = get_logger("modules.purchasing.config")


@dataclass(frozen=True)
class PurchasingConfig:
    """
    Configuration schema for the purchasing module.

    Defaults reproduce the behaviour of the point-of-sale back office:

        config = PurchasingConfig(payment_epsilon=Decimal("0.05"))
    """

    # Tolerance when comparing a payment to the remaining balance
    payment_epsilon: Decimal = Decimal("0.01")

    # Order numbers: prefix + last N digits of epoch milliseconds
    order_number_prefix: str = "PO-"
    order_number_digits: int = 6

    # Ledger reference for payments: prefix + order number
    payment_reference_prefix: str = "PAY-"

    # Walk-in supplier record used when no supplier is named
    anonymous_vendor_name: str = "Anonymous Vendor"

    default_payment_method: PaymentMethod = PaymentMethod.CASH
    allowed_payment_methods: tuple[PaymentMethod, ...] = tuple(PaymentMethod)

    # Per-workflow deadline applied when the caller passes none; None disables
    default_deadline_seconds: float | None = None

    def __post_init__(self):
        if self.payment_epsilon < 0:
            raise ValueError("payment_epsilon cannot be negative")
        if not self.order_number_prefix:
            raise ValueError("order_number_prefix cannot be empty")
        if not 1 <= self.order_number_digits <= 13:
            raise ValueError(
                f"order_number_digits must be between 1 and 13, got {self.order_number_digits}"
            )
        if not self.payment_reference_prefix:
            raise ValueError("payment_reference_prefix cannot be empty")
        if not self.anonymous_vendor_name or not self.anonymous_vendor_name.strip():
            raise ValueError("anonymous_vendor_name cannot be empty")
        if not self.allowed_payment_methods:
            raise ValueError("allowed_payment_methods cannot be empty")
        if self.default_payment_method not in self.allowed_payment_methods:
            raise ValueError(
                f"default_payment_method '{self.default_payment_method.value}' "
                "is not an allowed payment method"
            )
        if self.default_deadline_seconds is not None and self.default_deadline_seconds <= 0:
            raise ValueError("default_deadline_seconds must be positive")

        logger.debug(
            "purchasing_config_initialized",
            extra={
                "payment_epsilon": str(self.payment_epsilon),
                "order_number_prefix": self.order_number_prefix,
                "allowed_payment_methods": [m.value for m in self.allowed_payment_methods],
                "default_deadline_seconds": self.default_deadline_seconds,
            },
        )
