"""Tests for MovementSelector listings, history and reports."""

from datetime import timedelta

import pytest

from stock_kernel.domain.values import AuditAction, MovementType, ReasonCode


@pytest.fixture
def history(app, create_product, ledger, clock):
    """Movements spread over three days for two products."""
    laptop = create_product(name="Laptop")
    mouse = create_product(name="Mouse")
    ledger.register_entry(laptop.id, 10, "INITIAL_RECEIPT", "admin")  # day 0
    clock.advance(24 * 3600)
    ledger.register_exit(laptop.id, 3, "CUSTOMER_SALE", "employee")  # day 1
    ledger.register_entry(mouse.id, 5, "PURCHASE", "admin")  # day 1
    clock.advance(24 * 3600)
    ledger.register_exit(laptop.id, 1, "DAMAGE_LOSS", "employee")  # day 2
    return {"laptop": laptop, "mouse": mouse}


@pytest.fixture
def movements(app):
    return app.movements


class TestListings:
    def test_newest_first(self, movements, history):
        ids = [m.id for m in movements.movements()]
        assert ids == ["MOV-00004", "MOV-00003", "MOV-00002", "MOV-00001"]

    def test_filters(self, movements, history, clock):
        assert [m.id for m in movements.movements(type="ENTRY")] == ["MOV-00003", "MOV-00001"]
        assert len(movements.movements(product_id=history["mouse"].id)) == 1

        day_one = clock.now() - timedelta(days=1)
        assert [m.id for m in movements.movements(since=day_one)] == [
            "MOV-00004",
            "MOV-00003",
            "MOV-00002",
        ]
        assert [m.id for m in movements.movements(until=day_one)] == [
            "MOV-00003",
            "MOV-00002",
            "MOV-00001",
        ]

    def test_recent(self, movements, history, clock):
        clock.advance(6 * 24 * 3600)
        assert [m.id for m in movements.recent(days=7)] == ["MOV-00004", "MOV-00003", "MOV-00002"]

    def test_get(self, movements, history):
        assert movements.get("MOV-00002").reason_code is ReasonCode.CUSTOMER_SALE
        assert movements.get("MOV-99999") is None


class TestStockHistory:
    def test_running_balance_oldest_first(self, movements, history):
        rows = movements.stock_history(history["laptop"].id)

        assert [r.change for r in rows] == [10, -3, -1]
        assert [r.resulting_stock for r in rows] == [10, 7, 6]
        assert rows[1].type is MovementType.EXIT
        assert rows[1].user == "employee"

    def test_empty_history(self, movements, history, create_product):
        assert movements.stock_history(create_product().id) == []


class TestStatistics:
    def test_statistics(self, movements, history):
        stats = movements.statistics()

        assert stats.total_movements == 4
        assert (stats.entry_count, stats.exit_count) == (2, 2)
        assert (stats.units_in, stats.units_out) == (15, 4)
        assert stats.net_balance == 11
        assert stats.exit_reasons == {"CUSTOMER_SALE": 3, "DAMAGE_LOSS": 1}
        assert stats.active_users == ("admin", "employee")
        assert stats.last_movement.id == "MOV-00004"

    def test_empty(self, movements):
        stats = movements.statistics()
        assert stats.total_movements == 0
        assert stats.last_movement is None
        assert stats.earliest is None

    def test_period_report(self, movements, history, clock):
        end = clock.now() - timedelta(days=1)
        report = movements.period_report(end - timedelta(hours=1), end)

        assert report.total_movements == 2
        assert (report.units_in, report.units_out) == (5, 3)
        assert report.by_product[history["laptop"].id].units_out == 3
        assert report.by_reason["PURCHASE"].units == 5
        assert report.by_reason["PURCHASE"].type is MovementType.ENTRY

    def test_most_moved(self, movements, history):
        ranking = movements.most_moved(limit=1)
        assert [s.product_id for s in ranking] == [history["laptop"].id]
        assert ranking[0].movement_count == 3
        assert ranking[0].units_in == 10


class TestAuditLog:
    def test_filters(self, movements, history):
        assert len(movements.audit_log()) == 4
        assert [a.movement.id for a in movements.audit_log(user="employee")] == [
            "MOV-00004",
            "MOV-00002",
        ]
        entries = movements.audit_log(action=AuditAction.ENTRY_RECORDED)
        assert {a.movement.id for a in entries} == {"MOV-00001", "MOV-00003"}
