"""
Stock ledger reconciliation.

Two batch procedures derive missing ledger rows from upstream facts:

- ``initialize_opening_balances`` writes one opening snapshot row per
  material that currently holds stock. It only ever runs against an empty
  ledger.
- ``backfill_order_deductions`` mirrors historical order deductions into the
  ledger as ``out`` rows, skipping every order that already has a linked row.

Both build all candidate rows first and insert them in a single commit, so a
failure leaves the ledger untouched. Neither updates nor deletes existing
rows.

Backfilled balances are seeded from each material's *current* stock and
walked forward through the orders in date order. The result is only a true
history when current stock already reflects those deductions and no other
ledger activity exists for the material; this is not verified here.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Set, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from models.material import Material
from models.order import Order
from models.stock_ledger import StockTransaction, TransactionType, StockInSource, StockOutReason
from services.stock import normalize_material_name

logger = logging.getLogger(__name__)

# Earlier than any real business date so snapshots sort first
OPENING_SNAPSHOT_DATE = date(2000, 1, 1)
OPENING_SNAPSHOT_REMARKS = "Opening balance snapshot (initialized from current stock)"


def ledger_row_count(db: Session) -> int:
    return db.query(func.count(StockTransaction.id)).scalar() or 0


def build_opening_rows(materials: Iterable[Material]) -> List[StockTransaction]:
    """One ``add`` row per material with positive stock; the rest are skipped."""
    rows = []
    for material in materials:
        stock = material.current_stock or Decimal("0.00")
        if stock <= 0:
            continue
        rows.append(
            StockTransaction(
                material_id=material.id,
                transaction_type=TransactionType.ADD.value,
                quantity=stock,
                transaction_date=OPENING_SNAPSHOT_DATE,
                source_type=StockInSource.OPENING_STOCK.value,
                balance_after=stock,
                remarks=OPENING_SNAPSHOT_REMARKS,
            )
        )
    return rows


def initialize_opening_balances(db: Session) -> dict:
    """Snapshot current stock into the ledger if, and only if, the ledger is empty."""
    if ledger_row_count(db) > 0:
        logger.info("Stock ledger already initialized, nothing inserted")
        return {"inserted": 0, "alreadyInitialized": True}

    materials = db.query(Material).order_by(Material.created_at.asc(), Material.id.asc()).all()
    rows = build_opening_rows(materials)

    if not rows:
        logger.info("No material with positive stock, nothing inserted")
        return {"inserted": 0}

    try:
        db.add_all(rows)
        db.commit()
    except IntegrityError:
        db.rollback()
        # Another initializer committed its snapshot first
        if ledger_row_count(db) > 0:
            logger.warning("Opening snapshot raced with a concurrent initializer, nothing inserted")
            return {"inserted": 0, "alreadyInitialized": True}
        raise
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Initialized stock ledger with {len(rows)} opening balance rows")
    return {"inserted": len(rows)}


def build_material_lookup(materials: Iterable[Material]) -> Dict[str, Material]:
    return {normalize_material_name(material.name): material for material in materials}


def plan_order_backfill(
    orders: Iterable[Order],
    linked_order_ids: Set[str],
    materials: Iterable[Material],
) -> Tuple[List[StockTransaction], List[str]]:
    """Compute the ledger rows missing for ``orders``.

    Orders must be supplied in chronological order. Returns the rows to
    insert and the material names that matched no material.
    """
    materials = list(materials)
    lookup = build_material_lookup(materials)
    running_balances = {
        material.id: material.current_stock or Decimal("0.00") for material in materials
    }

    rows: List[StockTransaction] = []
    unmatched: List[str] = []

    for order in orders:
        if order.id in linked_order_ids:
            continue

        for deduction in order.deductions:
            material = lookup.get(normalize_material_name(deduction.material_name))
            if material is None:
                logger.warning(
                    f"Order {order.order_number}: no material named '{deduction.material_name}', line skipped"
                )
                unmatched.append(deduction.material_name)
                continue

            quantity = deduction.quantity or Decimal("0.00")
            new_balance = running_balances.get(material.id, Decimal("0.00")) - quantity
            running_balances[material.id] = new_balance

            rows.append(
                StockTransaction(
                    material_id=material.id,
                    transaction_type=TransactionType.OUT.value,
                    quantity=quantity,
                    transaction_date=order.order_date,
                    reason_type=StockOutReason.USED_IN_ORDER.value,
                    order_id=order.id,
                    order_number=order.order_number,
                    party_id=order.party_id,
                    rate=deduction.rate,
                    balance_after=new_balance,
                    remarks=f"Order deduction backfill - {order.order_number}",
                )
            )

    return rows, unmatched


def backfill_order_deductions(db: Session) -> dict:
    """Mirror deductions of orders with no ledger rows into the ledger."""
    orders = (
        db.query(Order)
        .options(selectinload(Order.deductions))
        .order_by(Order.order_date.asc(), Order.created_at.asc(), Order.id.asc())
        .all()
    )

    linked_order_ids = {
        order_id
        for (order_id,) in db.query(StockTransaction.order_id)
        .filter(StockTransaction.order_id.isnot(None))
        .distinct()
    }

    materials = db.query(Material).all()

    rows, unmatched = plan_order_backfill(orders, linked_order_ids, materials)
    report = {
        "unmatched": len(unmatched),
        "unmatchedMaterials": sorted(set(unmatched)),
    }

    if not rows:
        return {"synced": 0, "message": "No new transactions to sync", **report}

    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Backfilled {len(rows)} order deductions into the stock ledger")
    return {
        "synced": len(rows),
        "message": f"Successfully synced {len(rows)} order deductions to stock ledger",
        **report,
    }
