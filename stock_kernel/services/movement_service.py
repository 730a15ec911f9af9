"""
MovementLedger -- validated, append-only record of stock movements.

Responsibility:
    Validates proposed ENTRY/EXIT movements, applies the quantity change
    through a ``StockAdjuster``, appends the movement and its audit entry,
    and replays movements to check stored quantities.

Architecture position:
    Kernel > Services.  Depends on the narrow ``StockAdjuster`` protocol
    rather than on ProductStore itself.

Invariants enforced:
    - REASON_DIRECTION: the reason code belongs to the set allowed for the
      movement type.
    - NON_NEGATIVE_STOCK: an EXIT larger than the quantity on hand is
      rejected before anything is written.
    - MOVEMENT_IMMUTABILITY: the ledger exposes no update or delete.
    - Validation order is fixed and the first failure wins:
      product, quantity, stock (EXIT only), reason code, user.

Failure modes:
    - MissingProductError, InvalidQuantityError, InsufficientStockError,
      InvalidReasonCodeError, MissingUserError from ``register``.
    - NotFoundError, InconsistentStockError from ``verify_consistency``.

Audit relevance:
    Each committed movement appends an ``AuditEntry`` holding a snapshot
    of the movement, in the same transaction as the quantity change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.values import (
    AuditAction,
    MovementStatus,
    MovementType,
    ReasonCode,
    allowed_reason_codes,
)
from stock_kernel.exceptions import (
    InconsistentStockError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidReasonCodeError,
    MissingProductError,
    MissingUserError,
    NotFoundError,
)
from stock_kernel.invariants import LedgerInvariant
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.movement import AuditEntry, Movement
from stock_kernel.models.product import Product
from stock_kernel.services.document_store import DocumentStore
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.movement")

MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
DEFAULT_ADJUSTMENT_REASON = "Unspecified manual adjustment"


class StockAdjuster(Protocol):
    """The slice of the product catalog the ledger is allowed to touch."""

    def find(self, product_id: str) -> Product | None: ...

    def adjust_quantity(self, product_id: str, delta: int) -> Product: ...


@dataclass(frozen=True)
class ConsistencyReport:
    """Result of replaying a product's movements against its stored quantity."""

    product_id: str
    stored_quantity: int
    computed_quantity: int
    movement_count: int
    last_movement: Movement | None = None

    @property
    def difference(self) -> int:
        return self.stored_quantity - self.computed_quantity

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


def _coerce_quantity(quantity: Any) -> int:
    """Whole, strictly positive quantity, or InvalidQuantityError."""
    if quantity is None or isinstance(quantity, bool):
        raise InvalidQuantityError(quantity)
    try:
        if isinstance(quantity, float) and not quantity.is_integer():
            raise InvalidQuantityError(quantity)
        value = int(quantity)
    except (TypeError, ValueError) as exc:
        raise InvalidQuantityError(quantity) from exc
    if value <= 0:
        raise InvalidQuantityError(quantity)
    return value


class MovementLedger:
    """
    Register and inspect stock movements.

    Contract:
        ``register`` either commits the quantity change, the movement and
        its audit entry together, or raises and changes nothing.
    """

    def __init__(
        self,
        documents: DocumentStore,
        stock: StockAdjuster,
        clock: Clock | None = None,
        sequences: SequenceService | None = None,
    ):
        self._documents = documents
        self._stock = stock
        self._clock = clock or SystemClock()
        self._sequences = sequences or SequenceService()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        movement_type: MovementType | str,
        product_id: str | None,
        quantity: Any,
        reason_code: ReasonCode | str | None,
        user: str | None,
        notes: str = "",
        reference: dict[str, Any] | None = None,
    ) -> Movement:
        """
        Validate and commit one movement.

        Args:
            movement_type: ENTRY or EXIT.
            product_id: Product the stock change applies to.
            quantity: Strictly positive whole number of units.
            reason_code: Must be allowed for ``movement_type``.
            user: Who performed the movement.
            notes: Free text.
            reference: External reference (invoice, adjustment reason...).

        Returns:
            The committed Movement.

        Raises:
            ValueError: If ``movement_type`` is not ENTRY or EXIT.
            MissingProductError: No product id, or unknown product.
            InvalidQuantityError: Quantity absent or not > 0.
            InsufficientStockError: EXIT larger than the quantity on hand.
            InvalidReasonCodeError: Reason not allowed for the type.
            MissingUserError: No user.
        """
        movement_type = MovementType(movement_type)
        with LogContext.bind(actor_id=user or None, product_id=product_id or None):
            try:
                product, units, reason = self._validate(
                    movement_type, product_id, quantity, reason_code, user,
                )
            except Exception as exc:
                logger.warning(
                    "movement_rejected",
                    extra={
                        "movement_type": movement_type.value,
                        "reason_code": str(getattr(reason_code, "value", reason_code)),
                        "error_code": getattr(exc, "code", type(exc).__name__),
                    },
                )
                raise

            with self._documents.transaction() as document:
                self._stock.adjust_quantity(product.id, movement_type.sign * units)
                now = self._clock.now()
                movement = Movement(
                    id=self._sequences.next_id(document, SequenceService.MOVEMENT),
                    type=movement_type,
                    product_id=product.id,
                    quantity=units,
                    reason_code=reason,
                    timestamp=now,
                    user=str(user),
                    notes=notes or "",
                    reference=dict(reference or {}),
                    status=MovementStatus.COMPLETED,
                )
                document.movements.append(movement)
                document.audit_log.append(
                    AuditEntry(
                        timestamp=now,
                        action=AuditAction.for_movement(movement_type),
                        user=str(user),
                        movement=movement,
                    )
                )

            logger.info(
                "movement_committed",
                extra={
                    "movement_id": movement.id,
                    "movement_type": movement_type.value,
                    "quantity": units,
                    "reason_code": reason.value,
                    "quantity_after": product.quantity + movement.signed_quantity,
                },
            )
        return movement

    def register_entry(
        self,
        product_id: str | None,
        quantity: Any,
        reason_code: ReasonCode | str | None,
        user: str | None,
        notes: str = "",
        reference: dict[str, Any] | None = None,
    ) -> Movement:
        """Register an ENTRY (purchase, return, transfer in...)."""
        return self.register(
            MovementType.ENTRY, product_id, quantity, reason_code, user, notes, reference,
        )

    def register_exit(
        self,
        product_id: str | None,
        quantity: Any,
        reason_code: ReasonCode | str | None,
        user: str | None,
        notes: str = "",
        reference: dict[str, Any] | None = None,
    ) -> Movement:
        """Register an EXIT (sale, loss, transfer out...)."""
        return self.register(
            MovementType.EXIT, product_id, quantity, reason_code, user, notes, reference,
        )

    def register_adjustment(
        self,
        product_id: str | None,
        signed_quantity: Any,
        user: str | None,
        reason: str | None = None,
    ) -> Movement:
        """
        Register a manual correction of the quantity on hand.

        A non-negative ``signed_quantity`` becomes an ENTRY, a negative one
        an EXIT, both with reason code INVENTORY_ADJUSTMENT.  A zero
        adjustment is rejected as an ENTRY of quantity 0, and so is a
        fractional one such as ``2.5``.
        """
        if isinstance(signed_quantity, bool) or (
            isinstance(signed_quantity, float) and not signed_quantity.is_integer()
        ):
            raise InvalidQuantityError(signed_quantity)
        try:
            signed = int(signed_quantity)
        except (TypeError, ValueError) as exc:
            raise InvalidQuantityError(signed_quantity) from exc
        movement_type = MovementType.ENTRY if signed >= 0 else MovementType.EXIT
        return self.register(
            movement_type,
            product_id,
            abs(signed),
            ReasonCode.INVENTORY_ADJUSTMENT,
            user,
            reference={
                "type": MANUAL_ADJUSTMENT,
                "reason": reason or DEFAULT_ADJUSTMENT_REASON,
            },
        )

    def _validate(
        self,
        movement_type: MovementType,
        product_id: str | None,
        quantity: Any,
        reason_code: ReasonCode | str | None,
        user: str | None,
    ) -> tuple[Product, int, ReasonCode]:
        if not product_id:
            raise MissingProductError(None)
        product = self._stock.find(product_id)
        if product is None:
            raise MissingProductError(product_id)

        units = _coerce_quantity(quantity)

        if movement_type is MovementType.EXIT and units > product.quantity:
            logger.warning(
                "insufficient_stock",
                extra={
                    "available": product.quantity,
                    "requested": units,
                    "invariant": LedgerInvariant.NON_NEGATIVE_STOCK.value,
                },
            )
            raise InsufficientStockError(product.id, product.quantity, units)

        allowed = allowed_reason_codes(movement_type)
        reason = self._parse_reason(reason_code)
        if reason is None or reason not in allowed:
            logger.warning(
                "reason_code_not_allowed",
                extra={"invariant": LedgerInvariant.REASON_DIRECTION.value},
            )
            raise InvalidReasonCodeError(
                reason_code, movement_type.value, [r.value for r in allowed],
            )

        if not user or not str(user).strip():
            raise MissingUserError()

        return product, units, reason

    @staticmethod
    def _parse_reason(reason_code: ReasonCode | str | None) -> ReasonCode | None:
        if reason_code is None:
            return None
        try:
            return ReasonCode(reason_code)
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, movement_id: str) -> Movement | None:
        for movement in self._documents.document.movements:
            if movement.id == movement_id:
                return movement
        return None

    def movements_for(self, product_id: str) -> list[Movement]:
        """Movements of one product, in the order they were committed."""
        return [m for m in self._documents.document.movements if m.product_id == product_id]

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def inspect_consistency(self, product_id: str) -> ConsistencyReport:
        """
        Replay a product's movements from zero and compare with the stored
        quantity.  Never raises on a mismatch.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = self._stock.find(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        movements = self.movements_for(product_id)
        computed = 0
        for movement in movements:
            computed += movement.signed_quantity

        return ConsistencyReport(
            product_id=product_id,
            stored_quantity=product.quantity,
            computed_quantity=computed,
            movement_count=len(movements),
            last_movement=movements[-1] if movements else None,
        )

    def verify_consistency(self, product_id: str) -> ConsistencyReport:
        """
        Like ``inspect_consistency`` but a mismatch is an error.

        Detection only: nothing is reconciled.

        Raises:
            NotFoundError: If the product does not exist.
            InconsistentStockError: If stored and replayed quantities differ.
        """
        report = self.inspect_consistency(product_id)
        if not report.is_consistent:
            logger.error(
                "stock_inconsistency_detected",
                extra={
                    "product_id": product_id,
                    "stored_quantity": report.stored_quantity,
                    "computed_quantity": report.computed_quantity,
                    "difference": report.difference,
                },
            )
            raise InconsistentStockError(
                product_id, report.stored_quantity, report.computed_quantity,
            )
        return report
