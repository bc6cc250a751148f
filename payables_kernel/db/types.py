"""
Module: payables_kernel.db.types
Responsibility: Annotated type aliases and rounding utilities for financial-grade
    column types.  Centralizes precision and tolerance so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for money.
    - No floats anywhere in the kernel.  All amounts and quantities are Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Stock quantity (fractional units allowed, e.g. kg)
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for notes
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """
    Coerce a user-supplied amount to Decimal.

    Floats are converted through ``str`` so that 0.1 stays 0.1.

    Raises:
        ValueError: If value is not numeric, or is NaN or infinite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a numeric amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given decimal places.

    This is the ONLY sanctioned rounding function for money in the kernel.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
