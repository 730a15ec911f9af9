"""
Inventory settings schema.

Frozen dataclasses the loader parses ``defaults.yaml`` (or an override
file) into.  ``InventorySettings`` is the runtime artifact handed to
``InventoryApplication``; nothing else in the system reads YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProductDefaults:
    """Values applied to new products when the caller omits them."""

    min_quantity: int = 5
    max_quantity: int = 100
    location: str = "General Warehouse"
    currency: str = "USD"

    def __post_init__(self):
        if self.min_quantity < 0:
            raise ValueError("product.min_quantity cannot be negative")
        if self.max_quantity < self.min_quantity:
            raise ValueError("product.max_quantity must be >= product.min_quantity")


@dataclass(frozen=True)
class CategoryDefaults:
    icon: str = "📂"
    color: str = "#4ECDC4"


@dataclass(frozen=True)
class StorageSettings:
    """Key layout inside the key-value backend."""

    key_prefix: str = "inventory_"
    document_key: str = "data"
    session_key: str = "session"
    session_hours: int = 24

    def __post_init__(self):
        if not self.document_key:
            raise ValueError("storage.document_key cannot be empty")
        if self.document_key == self.session_key:
            raise ValueError("storage.document_key and storage.session_key must differ")
        if self.session_hours <= 0:
            raise ValueError("storage.session_hours must be positive")


@dataclass(frozen=True)
class ExportSettings:
    format_version: str = "1.0"
    indent: int = 2

    def __post_init__(self):
        if self.indent < 0:
            raise ValueError("export.indent cannot be negative")


@dataclass(frozen=True)
class SeedCategory:
    """A category created when an empty document is initialized."""

    name: str
    description: str = ""
    icon: str | None = None
    color: str | None = None


@dataclass(frozen=True)
class UserAccount:
    """A demo account of the simulated auth gate."""

    id: str
    username: str
    password: str
    name: str
    role: str
    email: str = ""


@dataclass(frozen=True)
class InventorySettings:
    """
    Complete runtime configuration.

    Guarantees:
        - Every user's role has an entry in ``roles``.
        - Usernames are unique.
    """

    config_id: str = "inventory-default"
    version: int = 1
    product: ProductDefaults = field(default_factory=ProductDefaults)
    category: CategoryDefaults = field(default_factory=CategoryDefaults)
    storage: StorageSettings = field(default_factory=StorageSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    seed_categories: tuple[SeedCategory, ...] = ()
    users: tuple[UserAccount, ...] = ()
    roles: dict[str, frozenset[str]] = field(default_factory=dict)
    checksum: str = ""

    def __post_init__(self):
        usernames = [u.username for u in self.users]
        if len(usernames) != len(set(usernames)):
            raise ValueError("usernames must be unique")
        for user in self.users:
            if user.role not in self.roles:
                raise ValueError(
                    f"user {user.username!r} has role {user.role!r} with no permission entry"
                )

    def permissions_for(self, role: str | None) -> frozenset[str]:
        if role is None:
            return frozenset()
        return self.roles.get(role, frozenset())

    def find_user(self, username: str) -> UserAccount | None:
        for user in self.users:
            if user.username == username:
                return user
        return None
