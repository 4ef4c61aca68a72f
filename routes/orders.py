from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload, joinedload
from sqlalchemy import func, or_, desc
from typing import Optional
from datetime import date
import logging

from database import get_db
from dependencies import require_admin
from models.order import Order, OrderItem, RawMaterialDeduction
from models.party import Party
from models.stock_ledger import StockTransaction
from models.user import User
from schemas.order import (
    OrderCreate,
    OrderUpdate,
    DeductionCreate,
    OrderListResponse,
    OrderSingleResponse,
)
from services.orders import (
    generate_party_prefix,
    next_party_order_number,
    line_amount,
    post_order_deduction,
    restore_order_deduction,
)
from services.stock import StockError
from utils.ids import generate_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def load_order(db: Session, order_id: str) -> Order:
    order = (
        db.query(Order)
        .options(
            joinedload(Order.party),
            selectinload(Order.items),
            selectinload(Order.deductions),
        )
        .filter(Order.id == order_id)
        .first()
    )
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def resolve_party(db: Session, party_id: Optional[str], party_name: Optional[str]) -> Party:
    """Existing party by id, or by name; an unknown name creates the party"""
    if party_id:
        party = db.query(Party).filter(Party.id == party_id).first()
        if not party:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid party ID")
        return party

    name = (party_name or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Party is required")

    party = db.query(Party).filter(func.lower(Party.name) == name.lower()).first()
    if party:
        return party

    party = Party(id=generate_code(db, Party, "PTY"), name=name, prefix=generate_party_prefix(name))
    db.add(party)
    db.flush()
    logger.info(f"Created party {party.id} ({party.name}) while booking an order")
    return party


def post_deductions(db: Session, order: Order, deductions, created_by: str) -> list:
    """Post each deduction; returns the material names that matched no material"""
    unposted = []
    for deduction in deductions:
        try:
            entry = post_order_deduction(db, order, deduction, created_by=created_by)
        except StockError as e:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        if entry is None:
            unposted.append(deduction.material_name)
    return unposted


@router.get("/", response_model=OrderListResponse)
def get_orders(
    skip: int = 0,
    limit: int = 100,
    party_id: Optional[str] = None,
    order_status: Optional[str] = None,
    search: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get orders, newest first"""
    query = db.query(Order).options(
        joinedload(Order.party),
        selectinload(Order.items),
        selectinload(Order.deductions),
    )

    if party_id:
        query = query.filter(Order.party_id == party_id)
    if order_status:
        query = query.filter(Order.status == order_status)
    if search:
        query = query.outerjoin(Party, Order.party_id == Party.id).filter(
            or_(
                Order.order_number.ilike(f"%{search}%"),
                Party.name.ilike(f"%{search}%"),
            )
        )
    if from_date:
        query = query.filter(Order.order_date >= from_date)
    if to_date:
        query = query.filter(Order.order_date <= to_date)

    orders = (
        query.order_by(desc(Order.order_date), desc(Order.created_at), desc(Order.id))
        .offset(skip)
        .limit(limit)
        .all()
    )
    return {"message": "Orders retrieved successfully", "data": orders}


@router.post("/", response_model=OrderSingleResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: OrderCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Book an order and take its raw material deductions out of stock.

    Nothing is written when any deduction exceeds the material's stock.
    """
    party = resolve_party(db, order_data.party_id, order_data.party_name)

    if order_data.order_number and order_data.order_number.strip():
        order_number = order_data.order_number.strip().upper()
        if db.query(Order.id).filter(Order.order_number == order_number).first():
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Order number {order_number} already exists"
            )
    else:
        order_number = next_party_order_number(db, party)

    order = Order(
        id=generate_code(db, Order, "ORD", width=5),
        order_number=order_number,
        party_id=party.id,
        order_date=order_data.order_date or date.today(),
        status=order_data.status.value,
        notes=order_data.notes,
    )
    for serial_no, item in enumerate(order_data.items, start=1):
        order.items.append(OrderItem(
            serial_no=serial_no,
            particular=item.particular,
            quantity=item.quantity,
            quantity_unit=item.quantity_unit,
            rate_per_dzn=item.rate_per_dzn,
            total=line_amount(item.quantity, item.rate_per_dzn),
        ))
    for line in order_data.deductions:
        order.deductions.append(RawMaterialDeduction(
            material_name=line.material_name.strip(),
            quantity=line.quantity,
            rate=line.rate,
            amount=line_amount(line.quantity, line.rate),
        ))
    order.recalculate_totals()

    db.add(order)
    db.flush()

    unposted = post_deductions(db, order, order.deductions, current_user.email)

    db.commit()
    logger.info(f"Order {order.order_number} created by {current_user.email}")
    return {
        "message": "Order created successfully",
        "data": load_order(db, order.id),
        "unposted_materials": unposted,
    }


@router.get("/{order_id}", response_model=OrderSingleResponse)
def get_order(
    order_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    order = load_order(db, order_id)
    return {"message": "Order retrieved successfully", "data": order}


@router.put("/{order_id}", response_model=OrderSingleResponse)
def update_order(
    order_id: str,
    order_update: OrderUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update order date, party, status or notes"""
    order = load_order(db, order_id)
    update_data = order_update.model_dump(exclude_unset=True)

    if update_data.get("party_id") and update_data["party_id"] != order.party_id:
        if not db.query(Party.id).filter(Party.id == update_data["party_id"]).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid party ID")
        # Ledger rows of the order follow it to the new party
        db.query(StockTransaction).filter(StockTransaction.order_id == order.id).update(
            {StockTransaction.party_id: update_data["party_id"]}, synchronize_session=False
        )

    if update_data.get("status") is not None:
        update_data["status"] = update_data["status"].value

    for field, value in update_data.items():
        if value is not None:
            setattr(order, field, value)

    db.commit()
    return {"message": "Order updated successfully", "data": load_order(db, order_id)}


@router.delete("/{order_id}")
def delete_order(
    order_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete an order. Its ledger rows stay, unlinked from the order."""
    order = load_order(db, order_id)

    db.query(StockTransaction).filter(StockTransaction.order_id == order.id).update(
        {StockTransaction.order_id: None}, synchronize_session=False
    )
    db.delete(order)
    db.commit()

    logger.info(f"Order {order.order_number} deleted by {current_user.email}")
    return {"message": "Order deleted successfully"}


@router.post("/{order_id}/deductions", response_model=OrderSingleResponse, status_code=status.HTTP_201_CREATED)
def add_deduction(
    order_id: str,
    line: DeductionCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Add a raw material deduction to an order and take it out of stock"""
    order = load_order(db, order_id)

    deduction = RawMaterialDeduction(
        material_name=line.material_name.strip(),
        quantity=line.quantity,
        rate=line.rate,
        amount=line_amount(line.quantity, line.rate),
    )
    order.deductions.append(deduction)
    db.flush()

    unposted = post_deductions(db, order, [deduction], current_user.email)
    order.recalculate_totals()

    db.commit()
    return {
        "message": "Deduction added successfully",
        "data": load_order(db, order_id),
        "unposted_materials": unposted,
    }


@router.delete("/{order_id}/deductions/{deduction_id}", response_model=OrderSingleResponse)
def remove_deduction(
    order_id: str,
    deduction_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Remove a deduction from an order and put its quantity back into stock"""
    order = load_order(db, order_id)

    deduction = next((d for d in order.deductions if d.id == deduction_id), None)
    if deduction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deduction not found")

    try:
        restore_order_deduction(db, order, deduction, created_by=current_user.email)
    except StockError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    order.deductions.remove(deduction)
    order.recalculate_totals()

    db.commit()
    return {"message": "Deduction removed successfully", "data": load_order(db, order_id)}
