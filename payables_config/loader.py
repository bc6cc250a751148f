"""
Configuration Loader (``payables_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses its ``purchasing`` section into a
``PurchasingConfig``.  The single public entry point for runtime config is
``payables_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected rather than ignored.
* Money values are parsed to ``Decimal`` through ``str`` (never float).
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``purchasing`` section, unknown keys or invalid values
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payables_modules.purchasing.config import PurchasingConfig
from payables_modules.purchasing.models import PaymentMethod

_PURCHASING_KEYS = frozenset({
    "payment_epsilon",
    "order_number_prefix",
    "order_number_digits",
    "payment_reference_prefix",
    "anonymous_vendor_name",
    "default_payment_method",
    "allowed_payment_methods",
    "default_deadline_seconds",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, key: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{key} must be a number, got {value!r}") from exc


def parse_payment_method(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError as exc:
        raise ValueError(f"Unknown payment method {value!r}") from exc


def parse_purchasing_config(data: dict[str, Any]) -> PurchasingConfig:
    """
    Build a ``PurchasingConfig`` from the ``purchasing`` mapping.

    Keys that are absent keep the schema defaults.

    Raises:
        ValueError: on unknown keys or values the schema rejects.
    """
    if not isinstance(data, dict):
        raise ValueError("purchasing section must be a mapping")
    unknown = set(data) - _PURCHASING_KEYS
    if unknown:
        raise ValueError(f"Unknown purchasing config keys: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    if "payment_epsilon" in data:
        kwargs["payment_epsilon"] = parse_decimal(data["payment_epsilon"], "payment_epsilon")
    for key in ("order_number_prefix", "payment_reference_prefix", "anonymous_vendor_name"):
        if key in data:
            kwargs[key] = str(data[key])
    if "order_number_digits" in data:
        kwargs["order_number_digits"] = int(data["order_number_digits"])
    if "default_payment_method" in data:
        kwargs["default_payment_method"] = parse_payment_method(data["default_payment_method"])
    if "allowed_payment_methods" in data:
        kwargs["allowed_payment_methods"] = tuple(
            parse_payment_method(m) for m in data["allowed_payment_methods"] or ()
        )
    if data.get("default_deadline_seconds") is not None:
        kwargs["default_deadline_seconds"] = float(data["default_deadline_seconds"])

    return PurchasingConfig(**kwargs)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
