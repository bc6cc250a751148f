"""
payables_config -- single public entrypoint for purchasing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration.  Sits above ``payables_kernel``; the kernel MUST NEVER
    import from ``payables_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- missing ``purchasing`` section or invalid values.

Audit relevance:
    Every successful call emits a ``PAYABLES_CONFIG_TRACE`` log entry with
    the config id, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from payables_config.loader import compute_checksum, load_yaml_file, parse_purchasing_config
from payables_modules.purchasing.config import PurchasingConfig

_logger = logging.getLogger("payables_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> PurchasingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML configuration set.  Defaults to
            ``payables_config/sets/default.yaml``.

    Returns:
        A validated, frozen ``PurchasingConfig``.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(config_path)
    if "purchasing" not in data:
        raise ValueError(f"{config_path} has no 'purchasing' section")

    config = parse_purchasing_config(data["purchasing"])

    _logger.info(
        "PAYABLES_CONFIG_TRACE",
        extra={
            "trace_type": "PAYABLES_CONFIG_TRACE",
            "config_id": data.get("config_id", config_path.stem),
            "config_version": data.get("version"),
            "checksum": compute_checksum(data),
            "config_path": str(config_path),
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "PurchasingConfig", "get_active_config"]
