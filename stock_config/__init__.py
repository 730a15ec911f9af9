"""
stock_config -- single public entrypoint for inventory configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``InventorySettings``.

Architecture position:
    Configuration.  This package sits beside ``stock_kernel``: kernel
    services receive plain values, and only the application context
    (``stock_kernel.application``) translates settings into them.

Failure modes:
    - ``FileNotFoundError`` -- override path does not exist.
    - ``ValueError`` / ``KeyError`` -- invalid or incomplete settings.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STOCK_CONFIG_TRACE`` log entry containing the config_id, version and
    checksum, tying stored data back to the settings that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import load_yaml_file, parse_settings
from stock_config.schema import (
    CategoryDefaults,
    ExportSettings,
    InventorySettings,
    ProductDefaults,
    SeedCategory,
    StorageSettings,
    UserAccount,
)

_logger = logging.getLogger("stock_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> InventorySettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override YAML file.  Defaults to the packaged
            ``defaults.yaml``.

    Returns:
        Frozen ``InventorySettings``.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If a setting is invalid.
        KeyError: If a user or seed category entry is incomplete.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "source": str(path),
            "user_count": len(settings.users),
            "role_count": len(settings.roles),
        },
    )
    return settings


__all__ = [
    "CategoryDefaults",
    "DEFAULT_CONFIG_PATH",
    "ExportSettings",
    "InventorySettings",
    "ProductDefaults",
    "SeedCategory",
    "StorageSettings",
    "UserAccount",
    "get_active_config",
]
