from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from models.stock_ledger import StockTransaction, StockInSource, StockOutReason, TransactionType
from services.ledger_sync import (
    OPENING_SNAPSHOT_DATE,
    backfill_order_deductions,
    initialize_opening_balances,
    plan_order_backfill,
)
from services.stock import post_movement
from tests.factories import add_material, add_order


def ledger(db_session):
    return (
        db_session.query(StockTransaction)
        .order_by(StockTransaction.transaction_date.asc(), StockTransaction.id.asc())
        .all()
    )


# Opening balances

def test_initializer_snapshots_positive_stock(db_session):
    cotton = add_material(db_session, "Cotton Yarn", 100)
    lace = add_material(db_session, "Lace", 12.5)
    db_session.commit()

    result = initialize_opening_balances(db_session)

    assert result == {"inserted": 2}
    rows = ledger(db_session)
    assert {row.material_id for row in rows} == {cotton.id, lace.id}
    for row in rows:
        assert row.transaction_type == TransactionType.ADD.value
        assert row.source_type == StockInSource.OPENING_STOCK.value
        assert row.transaction_date == OPENING_SNAPSHOT_DATE
        assert row.quantity == row.balance_after
    assert {row.quantity for row in rows} == {Decimal("100"), Decimal("12.5")}


def test_initializer_skips_zero_stock_material(db_session):
    add_material(db_session, "Silk", 0)
    db_session.commit()

    result = initialize_opening_balances(db_session)

    assert result == {"inserted": 0}
    assert ledger(db_session) == []


def test_initializer_only_emits_rows_for_materials_with_stock(db_session):
    add_material(db_session, "Silk", 0)
    cotton = add_material(db_session, "Cotton Yarn", 40)
    db_session.commit()

    assert initialize_opening_balances(db_session) == {"inserted": 1}
    assert [row.material_id for row in ledger(db_session)] == [cotton.id]


def test_initializer_does_nothing_once_ledger_has_rows(db_session):
    cotton = add_material(db_session, "Cotton Yarn", 100)
    add_material(db_session, "Thread", 30)
    post_movement(
        db_session, cotton,
        transaction_type=TransactionType.IN.value,
        quantity=5,
        source_type=StockInSource.MARKET_PURCHASE.value,
    )
    db_session.commit()

    result = initialize_opening_balances(db_session)

    assert result == {"inserted": 0, "alreadyInitialized": True}
    assert len(ledger(db_session)) == 1


def test_initializer_second_run_reports_already_initialized(db_session):
    add_material(db_session, "Cotton Yarn", 100)
    db_session.commit()

    assert initialize_opening_balances(db_session) == {"inserted": 1}
    assert initialize_opening_balances(db_session) == {"inserted": 0, "alreadyInitialized": True}
    assert len(ledger(db_session)) == 1


# Order deduction backfill

def test_backfill_mirrors_order_deduction(db_session):
    cotton = add_material(db_session, "Cotton Yarn", 100)
    order = add_order(db_session, "CY/001", [("cotton yarn", 20, 5)], order_date=date(2024, 1, 10))
    db_session.commit()

    result = backfill_order_deductions(db_session)

    assert result["synced"] == 1
    assert result["message"] == "Successfully synced 1 order deductions to stock ledger"
    assert result["unmatched"] == 0
    [row] = ledger(db_session)
    assert row.transaction_type == TransactionType.OUT.value
    assert row.reason_type == StockOutReason.USED_IN_ORDER.value
    assert row.material_id == cotton.id
    assert row.quantity == Decimal("20")
    assert row.balance_after == Decimal("80")
    assert row.order_id == order.id
    assert row.order_number == "CY/001"
    assert row.transaction_date == date(2024, 1, 10)
    assert row.rate == Decimal("5")


def test_backfill_walks_orders_in_date_order(db_session):
    add_material(db_session, "Cotton Yarn", 100)
    add_order(db_session, "CY/002", [("Cotton Yarn", 30, 5)], order_date=date(2024, 2, 1))
    add_order(db_session, "CY/001", [("Cotton Yarn", 20, 5)], order_date=date(2024, 1, 10))
    db_session.commit()

    backfill_order_deductions(db_session)

    rows = ledger(db_session)
    assert [row.order_number for row in rows] == ["CY/001", "CY/002"]
    assert [row.balance_after for row in rows] == [Decimal("80"), Decimal("50")]


def test_backfill_skips_orders_already_linked(db_session):
    cotton = add_material(db_session, "Cotton Yarn", 100)
    linked = add_order(db_session, "CY/001", [("Cotton Yarn", 20, 5), ("Cotton Yarn", 10, 5)])
    post_movement(
        db_session, cotton,
        transaction_type=TransactionType.OUT.value,
        quantity=20,
        reason_type=StockOutReason.USED_IN_ORDER.value,
        order_id=linked.id,
        order_number=linked.order_number,
    )
    db_session.commit()

    result = backfill_order_deductions(db_session)

    assert result["synced"] == 0
    assert result["message"] == "No new transactions to sync"
    rows = db_session.query(StockTransaction).filter(StockTransaction.order_id == linked.id).all()
    assert len(rows) == 1


def test_backfill_skips_unmatched_material_without_touching_others(db_session):
    add_material(db_session, "Cotton Yarn", 100)
    add_order(db_session, "CY/001", [
        ("Unknown Fabric", 7, 1),
        ("  COTTON yarn ", 20, 5),
    ])
    db_session.commit()

    result = backfill_order_deductions(db_session)

    assert result["synced"] == 1
    assert result["unmatched"] == 1
    assert result["unmatchedMaterials"] == ["Unknown Fabric"]
    [row] = ledger(db_session)
    assert row.balance_after == Decimal("80")


def test_backfill_second_run_is_noop(db_session):
    add_material(db_session, "Cotton Yarn", 100)
    add_order(db_session, "CY/001", [("Cotton Yarn", 20, 5)])
    add_order(db_session, "CY/002", [("Cotton Yarn", 10, 5)], order_date=date(2026, 1, 11))
    db_session.commit()

    first = backfill_order_deductions(db_session)
    second = backfill_order_deductions(db_session)

    assert first["synced"] == 2
    assert second == {"synced": 0, "message": "No new transactions to sync", "unmatched": 0, "unmatchedMaterials": []}
    assert len(ledger(db_session)) == 2


def test_backfill_leaves_current_stock_alone(db_session):
    cotton = add_material(db_session, "Cotton Yarn", 100)
    add_order(db_session, "CY/001", [("Cotton Yarn", 20, 5)])
    db_session.commit()

    backfill_order_deductions(db_session)
    db_session.refresh(cotton)

    assert cotton.current_stock == Decimal("100")


def test_plan_order_backfill_without_orders(db_session):
    cotton = add_material(db_session, "Cotton Yarn", 100)

    rows, unmatched = plan_order_backfill([], set(), [cotton])

    assert rows == []
    assert unmatched == []


# Failed batches

def failing_commit(self):
    self.flush()
    raise OperationalError("INSERT INTO stock_transactions", {}, Exception("disk I/O error"))


def test_initializer_writes_nothing_when_commit_fails(db_session, monkeypatch):
    add_material(db_session, "Cotton Yarn", 100)
    add_material(db_session, "Lace", 5)
    db_session.commit()
    monkeypatch.setattr(Session, "commit", failing_commit)

    with pytest.raises(OperationalError):
        initialize_opening_balances(db_session)

    monkeypatch.undo()
    assert ledger(db_session) == []


def test_backfill_writes_nothing_when_commit_fails(db_session, monkeypatch):
    cotton = add_material(db_session, "Cotton Yarn", 100)
    add_order(db_session, "CY/001", [("Cotton Yarn", 20, 5)])
    add_order(db_session, "CY/002", [("Cotton Yarn", 10, 5)], order_date=date(2026, 1, 11))
    db_session.commit()
    monkeypatch.setattr(Session, "commit", failing_commit)

    with pytest.raises(OperationalError):
        backfill_order_deductions(db_session)

    monkeypatch.undo()
    assert ledger(db_session) == []
    db_session.refresh(cotton)
    assert cotton.current_stock == Decimal("100")


def snapshot_row(material_id, quantity):
    return StockTransaction(
        material_id=material_id,
        transaction_type=TransactionType.ADD.value,
        quantity=Decimal(str(quantity)),
        transaction_date=OPENING_SNAPSHOT_DATE,
        source_type=StockInSource.OPENING_STOCK.value,
        balance_after=Decimal(str(quantity)),
    )


def test_initializer_losing_a_race_reports_already_initialized(db_session, session_factory, monkeypatch):
    material_id = add_material(db_session, "Cotton Yarn", 100).id
    db_session.commit()
    real_commit = Session.commit

    def racing_commit(self):
        # Another initializer commits its snapshot first
        other = session_factory()
        try:
            other.add(snapshot_row(material_id, 100))
            real_commit(other)
        finally:
            other.close()
        raise IntegrityError("INSERT INTO stock_transactions", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(Session, "commit", racing_commit)
    result = initialize_opening_balances(db_session)
    monkeypatch.undo()

    assert result == {"inserted": 0, "alreadyInitialized": True}
    assert len(ledger(db_session)) == 1


def test_initializer_integrity_error_on_empty_ledger_is_raised(db_session, monkeypatch):
    add_material(db_session, "Cotton Yarn", 100)
    db_session.commit()

    def rejected_commit(self):
        raise IntegrityError("INSERT INTO stock_transactions", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(Session, "commit", rejected_commit)
    with pytest.raises(IntegrityError):
        initialize_opening_balances(db_session)
    monkeypatch.undo()

    assert ledger(db_session) == []
