from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import or_

from database import get_db
from dependencies import require_admin
from models.party import Party
from models.order import Order
from models.user import User
from schemas.party import PartyCreate, PartyUpdate, PartyListResponse, PartySingleResponse
from services.orders import generate_party_prefix, preview_party_order_number
from utils.ids import generate_code

router = APIRouter(prefix="/parties", tags=["Parties"])


def get_party_or_404(db: Session, party_id: str) -> Party:
    party = db.query(Party).filter(Party.id == party_id).first()
    if not party:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Party not found")
    return party


@router.get("/", response_model=PartyListResponse)
def get_parties(
    search: str = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get all parties ordered by name"""
    query = db.query(Party)
    if search:
        query = query.filter(
            or_(
                Party.name.ilike(f"%{search}%"),
                Party.phone.ilike(f"%{search}%"),
            )
        )

    parties = query.order_by(Party.name.asc()).all()
    return {"message": "Parties retrieved successfully", "data": parties}


@router.post("/", response_model=PartySingleResponse, status_code=status.HTTP_201_CREATED)
def create_party(
    party: PartyCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a party; the order number prefix is derived from the name when not given"""
    data = party.model_dump()
    data["prefix"] = (data.get("prefix") or generate_party_prefix(party.name)).upper()

    db_party = Party(id=generate_code(db, Party, "PTY"), **data)
    db.add(db_party)
    db.commit()
    db.refresh(db_party)

    return {"message": "Party created successfully", "data": db_party}


@router.get("/{party_id}", response_model=PartySingleResponse)
def get_party(
    party_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    party = get_party_or_404(db, party_id)
    return {"message": "Party retrieved successfully", "data": party}


@router.get("/{party_id}/next-order-number")
def get_next_order_number(
    party_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Preview the order number the party's next order will receive"""
    party = get_party_or_404(db, party_id)
    return {"party_id": party.id, "order_number": preview_party_order_number(party)}


@router.put("/{party_id}", response_model=PartySingleResponse)
def update_party(
    party_id: str,
    party_update: PartyUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    db_party = get_party_or_404(db, party_id)

    update_data = party_update.model_dump(exclude_unset=True)
    if update_data.get("prefix"):
        update_data["prefix"] = update_data["prefix"].upper()

    for field, value in update_data.items():
        setattr(db_party, field, value)

    db.commit()
    db.refresh(db_party)
    return {"message": "Party updated successfully", "data": db_party}


@router.delete("/{party_id}")
def delete_party(
    party_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a party that has no orders"""
    db_party = get_party_or_404(db, party_id)

    if db.query(Order.id).filter(Order.party_id == party_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete party. It has orders."
        )

    db.delete(db_party)
    db.commit()
    return {"message": "Party deleted successfully"}
