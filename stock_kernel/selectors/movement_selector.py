"""
Module: stock_kernel.selectors.movement_selector
Responsibility: Read-only movement queries: filtered listings, running stock
    history, movement statistics, period reports, most-moved products and
    the audit log.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Listings are newest first; ``stock_history`` is oldest first because
      it accumulates a running balance.
    - Balances are derived from movements at query time; nothing here
      reads or writes stored quantities.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from stock_kernel.domain.values import AuditAction, MovementType, ReasonCode
from stock_kernel.models.movement import AuditEntry, Movement
from stock_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StockHistoryRow:
    """One movement with the balance it produced."""

    movement_id: str
    timestamp: datetime
    type: MovementType
    quantity: int
    change: int
    reason_code: ReasonCode
    user: str
    resulting_stock: int


@dataclass(frozen=True)
class MovementStatistics:
    total_movements: int
    entry_count: int
    exit_count: int
    units_in: int
    units_out: int
    entry_reasons: dict[str, int] = field(default_factory=dict)
    exit_reasons: dict[str, int] = field(default_factory=dict)
    active_users: tuple[str, ...] = ()
    last_movement: Movement | None = None
    earliest: datetime | None = None

    @property
    def net_balance(self) -> int:
        return self.units_in - self.units_out


@dataclass(frozen=True)
class ProductMovementSummary:
    product_id: str
    units_in: int = 0
    units_out: int = 0
    movement_count: int = 0


@dataclass(frozen=True)
class ReasonSummary:
    reason_code: ReasonCode
    type: MovementType
    units: int
    movement_count: int


@dataclass(frozen=True)
class PeriodReport:
    start: datetime
    end: datetime
    total_movements: int
    units_in: int
    units_out: int
    by_product: dict[str, ProductMovementSummary]
    by_reason: dict[str, ReasonSummary]


def _summarize(movements: list[Movement]) -> dict[str, ProductMovementSummary]:
    totals: dict[str, list[int]] = {}
    for m in movements:
        row = totals.setdefault(m.product_id, [0, 0, 0])
        if m.type is MovementType.ENTRY:
            row[0] += m.quantity
        else:
            row[1] += m.quantity
        row[2] += 1
    return {
        pid: ProductMovementSummary(pid, units_in=r[0], units_out=r[1], movement_count=r[2])
        for pid, r in totals.items()
    }


class MovementSelector(BaseSelector):
    """Movement and audit-log queries over the shared document."""

    def movements(
        self,
        type: MovementType | str | None = None,
        product_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Movement]:
        """Filtered movements, newest first.  Bounds are inclusive."""
        wanted = MovementType(type) if type is not None else None
        result = [
            m
            for m in self.document.movements
            if (wanted is None or m.type is wanted)
            and (product_id is None or m.product_id == product_id)
            and (since is None or m.timestamp >= since)
            and (until is None or m.timestamp <= until)
        ]
        # stable sort keeps commit order among equal timestamps, then reverse
        result.sort(key=lambda m: m.timestamp)
        result.reverse()
        return result

    def get(self, movement_id: str) -> Movement | None:
        for movement in self.document.movements:
            if movement.id == movement_id:
                return movement
        return None

    def for_product(self, product_id: str) -> list[Movement]:
        return self.movements(product_id=product_id)

    def recent(self, days: int = 7) -> list[Movement]:
        return self.movements(since=self.clock.now() - timedelta(days=days))

    def stock_history(self, product_id: str) -> list[StockHistoryRow]:
        """Movements of a product oldest first, with the running balance from 0."""
        balance = 0
        rows: list[StockHistoryRow] = []
        for m in reversed(self.movements(product_id=product_id)):
            balance += m.signed_quantity
            rows.append(
                StockHistoryRow(
                    movement_id=m.id,
                    timestamp=m.timestamp,
                    type=m.type,
                    quantity=m.quantity,
                    change=m.signed_quantity,
                    reason_code=m.reason_code,
                    user=m.user,
                    resulting_stock=balance,
                )
            )
        return rows

    def statistics(self) -> MovementStatistics:
        movements = self.document.movements
        entries = [m for m in movements if m.type is MovementType.ENTRY]
        exits = [m for m in movements if m.type is MovementType.EXIT]

        entry_reasons: Counter[str] = Counter()
        for m in entries:
            entry_reasons[m.reason_code.value] += m.quantity
        exit_reasons: Counter[str] = Counter()
        for m in exits:
            exit_reasons[m.reason_code.value] += m.quantity

        return MovementStatistics(
            total_movements=len(movements),
            entry_count=len(entries),
            exit_count=len(exits),
            units_in=sum(m.quantity for m in entries),
            units_out=sum(m.quantity for m in exits),
            entry_reasons=dict(entry_reasons),
            exit_reasons=dict(exit_reasons),
            active_users=tuple(sorted({m.user for m in movements})),
            last_movement=movements[-1] if movements else None,
            earliest=min((m.timestamp for m in movements), default=None),
        )

    def period_report(self, start: datetime, end: datetime) -> PeriodReport:
        """Totals of the movements between ``start`` and ``end`` inclusive."""
        movements = self.movements(since=start, until=end)
        by_reason: dict[str, list] = {}
        for m in movements:
            entry = by_reason.setdefault(m.reason_code.value, [m.reason_code, m.type, 0, 0])
            entry[2] += m.quantity
            entry[3] += 1

        return PeriodReport(
            start=start,
            end=end,
            total_movements=len(movements),
            units_in=sum(m.quantity for m in movements if m.type is MovementType.ENTRY),
            units_out=sum(m.quantity for m in movements if m.type is MovementType.EXIT),
            by_product=_summarize(movements),
            by_reason={
                code: ReasonSummary(reason_code=r[0], type=r[1], units=r[2], movement_count=r[3])
                for code, r in by_reason.items()
            },
        )

    def most_moved(self, limit: int = 10) -> list[ProductMovementSummary]:
        """Products ranked by number of movements (ties keep first-seen order)."""
        summaries = list(_summarize(self.document.movements).values())
        summaries.sort(key=lambda s: s.movement_count, reverse=True)
        return summaries[:limit]

    def audit_log(
        self,
        user: str | None = None,
        action: AuditAction | str | None = None,
        since: datetime | None = None,
    ) -> list[AuditEntry]:
        """Audit entries, newest first."""
        wanted = AuditAction(action) if action is not None else None
        result = [
            a
            for a in self.document.audit_log
            if (user is None or a.user == user)
            and (wanted is None or a.action is wanted)
            and (since is None or a.timestamp >= since)
        ]
        result.sort(key=lambda a: a.timestamp)
        result.reverse()
        return result
