"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``stock_config.schema`` dataclasses.  The single public entry point for
runtime config is ``stock_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields of list entries.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  settings for identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys (seed category name, user fields)  -> ``KeyError``.
* Invalid values  -> ``ValueError`` from the schema's ``__post_init__``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    CategoryDefaults,
    ExportSettings,
    InventorySettings,
    ProductDefaults,
    SeedCategory,
    StorageSettings,
    UserAccount,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top-level value is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' must be a mapping")
    return value


def parse_product_defaults(data: dict[str, Any]) -> ProductDefaults:
    defaults = ProductDefaults()
    return ProductDefaults(
        min_quantity=int(data.get("min_quantity", defaults.min_quantity)),
        max_quantity=int(data.get("max_quantity", defaults.max_quantity)),
        location=str(data.get("location", defaults.location)),
        currency=str(data.get("currency", defaults.currency)),
    )


def parse_storage(data: dict[str, Any]) -> StorageSettings:
    defaults = StorageSettings()
    return StorageSettings(
        key_prefix=str(data.get("key_prefix", defaults.key_prefix)),
        document_key=str(data.get("document_key", defaults.document_key)),
        session_key=str(data.get("session_key", defaults.session_key)),
        session_hours=int(data.get("session_hours", defaults.session_hours)),
    )


def parse_user(data: dict[str, Any]) -> UserAccount:
    """
    Parse a ``UserAccount`` from a dict.

    Raises:
        KeyError: if ``id``, ``username``, ``password`` or ``role`` is missing.
    """
    return UserAccount(
        id=str(data["id"]),
        username=str(data["username"]),
        password=str(data["password"]),
        name=str(data.get("name", data["username"])),
        role=str(data["role"]),
        email=str(data.get("email", "")),
    )


def parse_roles(data: dict[str, Any]) -> dict[str, frozenset[str]]:
    roles: dict[str, frozenset[str]] = {}
    for role, permissions in data.items():
        if not isinstance(permissions, list):
            raise ValueError(f"permissions of role {role!r} must be a list")
        roles[str(role)] = frozenset(str(p) for p in permissions)
    return roles


def parse_settings(data: dict[str, Any]) -> InventorySettings:
    """
    Parse a complete ``InventorySettings`` from a raw settings dict.

    Sections that are absent fall back to the schema defaults.

    Raises:
        KeyError: if a seed category or user entry lacks required keys.
        ValueError: if a value violates a schema invariant.
    """
    category = _section(data, "category")
    export = _section(data, "export")
    category_defaults = CategoryDefaults()
    export_defaults = ExportSettings()

    return InventorySettings(
        config_id=str(data.get("config_id", "inventory-default")),
        version=int(data.get("version", 1)),
        product=parse_product_defaults(_section(data, "product")),
        category=CategoryDefaults(
            icon=str(category.get("icon", category_defaults.icon)),
            color=str(category.get("color", category_defaults.color)),
        ),
        storage=parse_storage(_section(data, "storage")),
        export=ExportSettings(
            format_version=str(export.get("format_version", export_defaults.format_version)),
            indent=int(export.get("indent", export_defaults.indent)),
        ),
        seed_categories=tuple(
            SeedCategory(
                name=str(c["name"]),
                description=str(c.get("description", "")),
                icon=c.get("icon"),
                color=c.get("color"),
            )
            for c in data.get("seed_categories") or []
        ),
        users=tuple(parse_user(u) for u in data.get("users") or []),
        roles=parse_roles(_section(data, "roles")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
