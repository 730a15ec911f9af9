"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (UI handlers, import scripts, tests) must react to each failure
precisely without parsing message strings. Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        ledger.register_exit(product_id="PROD-001", quantity=12,
                             reason_code="CUSTOMER_SALE", user="admin")
    except InsufficientStockError as e:
        show_error(f"Only {e.available} units of {e.product_id} left")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryError:

    InventoryError (base)
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- MissingProductError
    |   +-- MissingUserError
    |   +-- InvalidQuantityError
    |   +-- InvalidPriceError
    |   +-- InvalidReasonCodeError
    |
    +-- NotFoundError
    +-- DuplicateSkuError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |   +-- InconsistentStockError
    |
    +-- ReferentialError
    |   +-- CategoryInUseError
    |   +-- ProductReferencedError
    |
    +-- ImportExportError
    |   +-- InvalidImportFormatError
    |
    +-- ConcurrencyError
    |   +-- StaleDocumentError
    |
    +-- AuthError
        +-- InvalidCredentialsError
        +-- NotAuthenticatedError
        +-- PermissionDeniedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                    | When Raised
-------------|-------------------------|---------------------------------------
Validation   | MISSING_FIELD           | Required input field absent
             | MISSING_PRODUCT         | Movement without an existing product
             | MISSING_USER            | Movement without a user
             | INVALID_QUANTITY        | Quantity absent, zero or negative
             | INVALID_PRICE           | Price is not a decimal number
             | INVALID_REASON_CODE     | Reason code not allowed for type
-------------|-------------------------|---------------------------------------
Catalog      | NOT_FOUND               | Referenced entity absent
             | DUPLICATE_SKU           | SKU already used by another product
-------------|-------------------------|---------------------------------------
Stock        | INSUFFICIENT_STOCK      | Quantity would go negative
             | INCONSISTENT_STOCK      | Stored quantity != movement replay
-------------|-------------------------|---------------------------------------
Referential  | CATEGORY_IN_USE         | Category still referenced by products
             | PRODUCT_REFERENCED      | Permanent delete of referenced product
-------------|-------------------------|---------------------------------------
Import       | INVALID_IMPORT_FORMAT   | Import payload cannot be parsed
-------------|-------------------------|---------------------------------------
Concurrency  | STALE_DOCUMENT          | Write targets an outdated version
-------------|-------------------------|---------------------------------------
Auth         | INVALID_CREDENTIALS     | Unknown user or wrong password
             | NOT_AUTHENTICATED       | Action requires a signed-in user
             | PERMISSION_DENIED       | Role lacks the permission

===============================================================================
PROPAGATION
===============================================================================

Every failure is raised synchronously at the first failing check. Nothing
is retried. The document store rolls back its in-memory state before the
exception reaches the caller, so a rejected operation never leaves a
partial mutation behind.
"""


class InventoryError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_ERROR"


# Validation exceptions


class ValidationError(InventoryError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """One or more required fields are absent."""

    code: str = "MISSING_FIELD"

    def __init__(self, entity_type: str, fields: list[str]):
        self.entity_type = entity_type
        self.fields = list(fields)
        super().__init__(
            f"Missing required fields for {entity_type}: {', '.join(self.fields)}"
        )


class MissingProductError(ValidationError):
    """Movement references no product, or a product that does not exist."""

    code: str = "MISSING_PRODUCT"

    def __init__(self, product_id: str | None):
        self.product_id = product_id
        if product_id:
            message = f"Product does not exist: {product_id}"
        else:
            message = "Product id is required"
        super().__init__(message)


class MissingUserError(ValidationError):
    """Movement was submitted without a user."""

    code: str = "MISSING_USER"

    def __init__(self):
        super().__init__("User is required to register a movement")


class InvalidQuantityError(ValidationError):
    """
    Quantity is absent, not a whole number, or below ``minimum``.

    Movements need at least 1; stock levels on a product accept 0.
    """

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, minimum: int = 1):
        self.quantity = quantity
        self.minimum = minimum
        if minimum == 1:
            message = f"Quantity must be greater than 0 (got {quantity!r})"
        else:
            message = f"Quantity must be a whole number of at least {minimum} (got {quantity!r})"
        super().__init__(message)


class InvalidPriceError(ValidationError):
    """A price field is not a decimal number."""

    code: str = "INVALID_PRICE"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a decimal number (got {value!r})")


class InvalidReasonCodeError(ValidationError):
    """Reason code is not in the allowed set for the movement type."""

    code: str = "INVALID_REASON_CODE"

    def __init__(self, reason_code: object, movement_type: str, allowed: list[str]):
        self.reason_code = reason_code
        self.movement_type = movement_type
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid reason code {reason_code!r} for {movement_type}. "
            f"Valid: {', '.join(self.allowed)}"
        )


# Catalog exceptions


class NotFoundError(InventoryError):
    """Entity with given ID was not found."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class DuplicateSkuError(InventoryError):
    """SKU is already used by another product (active or not)."""

    code: str = "DUPLICATE_SKU"

    def __init__(self, sku: str, existing_product_id: str):
        self.sku = sku
        self.existing_product_id = existing_product_id
        super().__init__(
            f"SKU {sku!r} is already in use by product {existing_product_id}"
        )


# Stock exceptions


class StockError(InventoryError):
    """Base exception for on-hand quantity errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Applying the change would drive quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product_id}. "
            f"Available: {available}, requested: {requested}"
        )


class InconsistentStockError(StockError):
    """
    Stored quantity does not match the replay of the product's movements.

    Detection only: the kernel never reconciles automatically.
    """

    code: str = "INCONSISTENT_STOCK"

    def __init__(self, product_id: str, stored_quantity: int, computed_quantity: int):
        self.product_id = product_id
        self.stored_quantity = stored_quantity
        self.computed_quantity = computed_quantity
        self.difference = stored_quantity - computed_quantity
        super().__init__(
            f"Inconsistent stock for {product_id}: stored={stored_quantity}, "
            f"replayed={computed_quantity}"
        )


# Referential exceptions


class ReferentialError(InventoryError):
    """Base exception for deletes blocked by references."""

    code: str = "REFERENTIAL_ERROR"


class CategoryInUseError(ReferentialError):
    """Category cannot be deleted while products reference it."""

    code: str = "CATEGORY_IN_USE"

    def __init__(self, category_id: str, product_count: int):
        self.category_id = category_id
        self.product_count = product_count
        super().__init__(
            f"Cannot delete category {category_id}: "
            f"{product_count} product(s) reference it"
        )


class ProductReferencedError(ReferentialError):
    """Product cannot be removed permanently while movements reference it."""

    code: str = "PRODUCT_REFERENCED"

    def __init__(self, product_id: str, movement_count: int):
        self.product_id = product_id
        self.movement_count = movement_count
        super().__init__(
            f"Cannot remove product {product_id}: "
            f"{movement_count} movement(s) reference it"
        )


# Import / export exceptions


class ImportExportError(InventoryError):
    """Base exception for document import and export."""

    code: str = "IMPORT_EXPORT_ERROR"


class InvalidImportFormatError(ImportExportError):
    """Import payload is not a valid inventory document."""

    code: str = "INVALID_IMPORT_FORMAT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid import format: {reason}")


# Concurrency exceptions


class ConcurrencyError(InventoryError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleDocumentError(ConcurrencyError):
    """
    Write targeted a document version that is no longer current.

    Another writer (another tab or process sharing the backend) committed
    first. Reload and retry the operation.
    """

    code: str = "STALE_DOCUMENT"

    def __init__(self, key: str, expected_version: int, actual_version: int):
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stale write on {key}: expected version {expected_version}, "
            f"store is at version {actual_version}"
        )


# Auth exceptions


class AuthError(InventoryError):
    """Base exception for authentication and permission errors."""

    code: str = "AUTH_ERROR"


class InvalidCredentialsError(AuthError):
    """Unknown username or wrong password."""

    code: str = "INVALID_CREDENTIALS"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Invalid credentials for user {username!r}")


class NotAuthenticatedError(AuthError):
    """Action requires a signed-in user."""

    code: str = "NOT_AUTHENTICATED"

    def __init__(self, permission: str | None = None):
        self.permission = permission
        super().__init__("No user is signed in")


class PermissionDeniedError(AuthError):
    """Signed-in user's role does not grant the permission."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, username: str, role: str, permission: str):
        self.username = username
        self.role = role
        self.permission = permission
        super().__init__(
            f"User {username!r} ({role}) lacks permission {permission!r}"
        )
