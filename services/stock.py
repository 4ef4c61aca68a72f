"""
Stock posting.

Every change to ``Material.current_stock`` goes through ``post_movement`` so
that the material's stock and the ledger's ``balance_after`` never drift
apart. Callers own the transaction: nothing here commits.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.material import Material
from models.stock_ledger import StockTransaction, TransactionType, StockInSource, INWARD_TYPES, OUTWARD_TYPES

logger = logging.getLogger(__name__)


class StockError(ValueError):
    pass


class MaterialNotFoundError(StockError):
    pass


class InsufficientStockError(StockError):
    def __init__(self, material: Material, requested: Decimal):
        self.available = material.current_stock or Decimal("0.00")
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {material.name}. Available: {self.available} {material.unit}"
        )


def normalize_material_name(name: Optional[str]) -> str:
    """Key used to match free-text material names against Material.name."""
    return (name or "").strip().lower()


def find_material_by_name(db: Session, name: Optional[str], *, for_update: bool = False) -> Optional[Material]:
    key = normalize_material_name(name)
    if not key:
        return None

    query = db.query(Material).filter(func.lower(func.trim(Material.name)) == key)
    if for_update:
        query = query.with_for_update()
    return query.order_by(Material.id.asc()).first()


def lock_material(db: Session, material_id: str) -> Material:
    material = (
        db.query(Material)
        .filter(Material.id == material_id)
        .with_for_update()
        .one_or_none()
    )
    if material is None:
        raise MaterialNotFoundError(f"Material {material_id} not found")
    return material


def post_movement(
    db: Session,
    material: Material,
    *,
    transaction_type: str,
    quantity,
    transaction_date: Optional[date] = None,
    source_type: Optional[str] = None,
    reason_type: Optional[str] = None,
    party_id: Optional[str] = None,
    order_id: Optional[str] = None,
    order_number: Optional[str] = None,
    rate=None,
    remarks: Optional[str] = None,
    created_by: Optional[str] = None,
) -> StockTransaction:
    """Apply a movement to the material's stock and append the matching ledger row."""
    qty = Decimal(str(quantity))
    if qty <= 0:
        raise StockError("Quantity must be greater than zero")

    current = material.current_stock or Decimal("0.00")
    if transaction_type in INWARD_TYPES:
        new_balance = current + qty
    elif transaction_type in OUTWARD_TYPES:
        if qty > current:
            raise InsufficientStockError(material, qty)
        new_balance = current - qty
    else:
        raise StockError(f"Unknown transaction type: {transaction_type}")

    material.current_stock = new_balance

    entry = StockTransaction(
        material_id=material.id,
        transaction_type=transaction_type,
        quantity=qty,
        transaction_date=transaction_date or date.today(),
        balance_after=new_balance,
        source_type=source_type,
        reason_type=reason_type,
        party_id=party_id,
        order_id=order_id,
        order_number=order_number,
        rate=Decimal(str(rate)) if rate is not None else Decimal("0.00"),
        remarks=remarks,
        created_by=created_by,
    )
    db.add(entry)

    logger.debug(
        f"Posted {transaction_type} {qty} for material {material.id}, balance {current} -> {new_balance}"
    )
    return entry


def ledger_rows(db: Session, material_id: str):
    """The material's ledger entries in ledger order."""
    return (
        db.query(StockTransaction)
        .filter(StockTransaction.material_id == material_id)
        .order_by(StockTransaction.transaction_date.asc(), StockTransaction.id.asc())
        .all()
    )


def set_opening_stock(db: Session, material: Material, new_opening, created_by: Optional[str] = None) -> Material:
    """Change a material's opening stock.

    Current stock moves by the same difference. The material's opening row is
    rewritten (or created) and the balances of every later row are shifted so
    the ledger stays consistent. An opening row left with nothing in it is
    deleted.
    """
    new_opening = Decimal(str(new_opening))
    if new_opening < 0:
        raise StockError("Opening stock cannot be negative")

    old_opening = material.opening_stock or Decimal("0.00")
    delta = new_opening - old_opening
    new_current = (material.current_stock or Decimal("0.00")) + delta
    if new_current < 0:
        raise StockError(
            f"Opening stock change would make stock of {material.name} negative"
        )

    material.opening_stock = new_opening
    material.current_stock = new_current

    rows = ledger_rows(db, material.id)
    opening_index = next(
        (i for i, row in enumerate(rows) if row.source_type == StockInSource.OPENING_STOCK.value), None
    )

    if opening_index is None:
        if new_opening > 0:
            db.add(StockTransaction(
                material_id=material.id,
                transaction_type=TransactionType.IN.value,
                quantity=new_opening,
                transaction_date=date.today(),
                source_type=StockInSource.OPENING_STOCK.value,
                balance_after=new_current,
                remarks="Opening stock entry",
                created_by=created_by,
            ))
        return material

    opening_row = rows[opening_index]
    for row in rows[opening_index + 1:]:
        row.balance_after = (row.balance_after or Decimal("0.00")) + delta

    # A snapshot row from the initializer holds the whole stock at that time,
    # not just the opening stock, so quantity and balance move by the same delta
    opening_quantity = (opening_row.quantity or Decimal("0.00")) + delta
    if opening_quantity > 0:
        opening_row.quantity = opening_quantity
        opening_row.balance_after = (opening_row.balance_after or Decimal("0.00")) + delta
        opening_row.remarks = f"Opening stock updated from {old_opening} to {new_opening}"
    else:
        db.delete(opening_row)

    logger.info(f"Opening stock of {material.id} changed from {old_opening} to {new_opening}")
    return material
