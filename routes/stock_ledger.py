from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, case, desc
from typing import List, Optional
from datetime import date
from decimal import Decimal

from database import get_db
from dependencies import require_admin
from models.material import Material
from models.party import Party
from models.order import Order, RawMaterialDeduction
from models.stock_ledger import (
    StockTransaction,
    TransactionType,
    StockInSource,
    INWARD_TYPES,
    OUTWARD_TYPES,
)
from models.user import User
from schemas.stock_ledger import (
    StockInCreate,
    StockOutCreate,
    StockTransactionResponse,
    MaterialLedgerResponse,
    StockSummary,
    PartyMaterialSummary,
)
from services.stock import (
    StockError,
    MaterialNotFoundError,
    lock_material,
    post_movement,
    normalize_material_name,
)

router = APIRouter(prefix="/stock", tags=["Stock Ledger"])


def post_or_400(db: Session, material_id: str, **movement) -> StockTransaction:
    """Lock the material, post the movement and commit, mapping stock errors to HTTP errors."""
    try:
        material = lock_material(db, material_id)
        entry = post_movement(db, material, **movement)
    except MaterialNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StockError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    db.commit()
    db.refresh(entry)
    return entry


@router.post("/in", response_model=StockTransactionResponse, status_code=status.HTTP_201_CREATED)
def stock_in(
    entry: StockInCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Record stock received"""
    if entry.source_type == StockInSource.PARTY_SUPPLY and not entry.party_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Party is required for party supply"
        )
    if entry.party_id and not db.query(Party.id).filter(Party.id == entry.party_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid party ID")

    return post_or_400(
        db,
        entry.material_id,
        transaction_type=TransactionType.ADD.value,
        quantity=entry.quantity,
        transaction_date=entry.transaction_date,
        source_type=entry.source_type.value,
        party_id=entry.party_id,
        rate=entry.rate,
        remarks=entry.remarks,
        created_by=current_user.email,
    )


@router.post("/out", response_model=StockTransactionResponse, status_code=status.HTTP_201_CREATED)
def stock_out(
    entry: StockOutCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Record stock issued; rejected when more than the current stock is requested"""
    order_id = None
    party_id = None
    if entry.order_number:
        order = db.query(Order).filter(Order.order_number == entry.order_number.strip().upper()).first()
        if order:
            order_id, party_id = order.id, order.party_id

    return post_or_400(
        db,
        entry.material_id,
        transaction_type=TransactionType.REDUCE.value,
        quantity=entry.quantity,
        transaction_date=entry.transaction_date,
        reason_type=entry.reason_type.value,
        order_id=order_id,
        party_id=party_id,
        order_number=entry.order_number,
        rate=entry.rate,
        remarks=entry.remarks,
        created_by=current_user.email,
    )


@router.get("/transactions", response_model=List[StockTransactionResponse])
def get_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    material_id: Optional[str] = Query(None),
    party_id: Optional[str] = Query(None),
    transaction_type: Optional[str] = Query(None),
    direction: Optional[str] = Query(None, pattern="^(in|out)$"),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Ledger entries, newest first"""
    query = db.query(StockTransaction).options(
        joinedload(StockTransaction.material),
        joinedload(StockTransaction.party),
    )

    if material_id:
        query = query.filter(StockTransaction.material_id == material_id)
    if party_id:
        query = query.filter(StockTransaction.party_id == party_id)
    if transaction_type:
        query = query.filter(StockTransaction.transaction_type == transaction_type)
    if direction:
        types = INWARD_TYPES if direction == "in" else OUTWARD_TYPES
        query = query.filter(StockTransaction.transaction_type.in_(types))
    if from_date:
        query = query.filter(StockTransaction.transaction_date >= from_date)
    if to_date:
        query = query.filter(StockTransaction.transaction_date <= to_date)

    return (
        query.order_by(desc(StockTransaction.transaction_date), desc(StockTransaction.id))
        .offset(skip)
        .limit(limit)
        .all()
    )


@router.get("/ledger/{material_id}", response_model=MaterialLedgerResponse)
def get_material_ledger(
    material_id: str,
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """A material's ledger with a running balance.

    The balance is walked over the whole ledger in date order, so entries
    outside the requested dates still count towards it. When the ledger has
    no opening stock row the walk starts from the material's opening stock.
    """
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")

    rows = (
        db.query(StockTransaction)
        .options(joinedload(StockTransaction.party))
        .filter(StockTransaction.material_id == material_id)
        .order_by(StockTransaction.transaction_date.asc(), StockTransaction.id.asc())
        .all()
    )

    has_opening_row = any(row.source_type == StockInSource.OPENING_STOCK.value for row in rows)
    balance = Decimal("0.00") if has_opening_row else (material.opening_stock or Decimal("0.00"))
    entries = []
    for row in rows:
        balance = balance + row.signed_quantity
        if from_date and row.transaction_date < from_date:
            continue
        if to_date and row.transaction_date > to_date:
            continue
        entry = StockTransactionResponse.model_validate(row).model_dump()
        entries.append({**entry, "balance": balance})

    return {
        "material_id": material.id,
        "material_name": material.name,
        "unit": material.unit,
        "opening_stock": material.opening_stock or Decimal("0.00"),
        "current_stock": material.current_stock or Decimal("0.00"),
        "entries": entries,
    }


@router.get("/summary", response_model=List[StockSummary])
def get_stock_summary(
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    material_id: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Per material opening stock, total in, total out and closing stock"""
    in_qty = case((StockTransaction.transaction_type.in_(INWARD_TYPES), StockTransaction.quantity), else_=0)
    out_qty = case((StockTransaction.transaction_type.in_(OUTWARD_TYPES), StockTransaction.quantity), else_=0)

    totals = db.query(
        StockTransaction.material_id,
        func.sum(in_qty).label("total_in"),
        func.sum(out_qty).label("total_out"),
    ).filter(
        # The opening row is reported as opening stock, not as a movement
        func.coalesce(StockTransaction.source_type, "") != StockInSource.OPENING_STOCK.value
    )
    if from_date:
        totals = totals.filter(StockTransaction.transaction_date >= from_date)
    if to_date:
        totals = totals.filter(StockTransaction.transaction_date <= to_date)
    if material_id:
        totals = totals.filter(StockTransaction.material_id == material_id)

    totals_by_material = {
        row.material_id: row for row in totals.group_by(StockTransaction.material_id).all()
    }

    materials_query = db.query(Material).options(joinedload(Material.category))
    if material_id:
        materials_query = materials_query.filter(Material.id == material_id)

    summaries = []
    for material in materials_query.order_by(Material.name.asc()).all():
        row = totals_by_material.get(material.id)
        summaries.append(StockSummary(
            material_id=material.id,
            material_name=material.name,
            category_name=material.category_name,
            unit=material.unit,
            opening_stock=material.opening_stock or Decimal("0.00"),
            total_in=Decimal(str(row.total_in or 0)) if row else Decimal("0.00"),
            total_out=Decimal(str(row.total_out or 0)) if row else Decimal("0.00"),
            closing_stock=material.current_stock or Decimal("0.00"),
        ))

    return summaries


@router.get("/party-summary", response_model=List[PartyMaterialSummary])
def get_party_summary(
    party_id: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Material each party supplied against what the party's orders used"""
    received_query = db.query(
        StockTransaction.party_id,
        StockTransaction.material_id,
        func.sum(StockTransaction.quantity).label("received"),
    ).filter(
        StockTransaction.source_type == StockInSource.PARTY_SUPPLY.value,
        StockTransaction.transaction_type.in_(INWARD_TYPES),
        StockTransaction.party_id.isnot(None),
    )
    if party_id:
        received_query = received_query.filter(StockTransaction.party_id == party_id)
    received_rows = received_query.group_by(StockTransaction.party_id, StockTransaction.material_id).all()

    if not received_rows:
        return []

    parties = {p.id: p for p in db.query(Party).filter(Party.id.in_(list({r.party_id for r in received_rows})))}
    materials = {m.id: m for m in db.query(Material).filter(Material.id.in_(list({r.material_id for r in received_rows})))}

    # Deductions are recorded by material name
    used = {}
    deduction_rows = (
        db.query(Order.party_id, RawMaterialDeduction.material_name, RawMaterialDeduction.quantity)
        .join(Order, RawMaterialDeduction.order_id == Order.id)
        .filter(Order.party_id.in_(list(parties)))
        .all()
    )
    for order_party_id, material_name, quantity in deduction_rows:
        key = (order_party_id, normalize_material_name(material_name))
        used[key] = used.get(key, Decimal("0.00")) + (quantity or Decimal("0.00"))

    summaries = []
    for row in received_rows:
        party = parties.get(row.party_id)
        material = materials.get(row.material_id)
        if party is None or material is None:
            continue
        received = Decimal(str(row.received or 0))
        used_qty = used.get((party.id, normalize_material_name(material.name)), Decimal("0.00"))
        summaries.append(PartyMaterialSummary(
            party_id=party.id,
            party_name=party.name,
            material_id=material.id,
            material_name=material.name,
            unit=material.unit,
            received=received,
            used=used_qty,
            balance=received - used_qty,
        ))

    summaries.sort(key=lambda s: (s.party_name, s.material_name))
    return summaries
