from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, or_
from typing import List, Optional
from datetime import date

from database import get_db
from dependencies import require_admin
from models.material import Material, MaterialCategory, Unit
from models.stock_ledger import StockTransaction, TransactionType, StockInSource
from models.user import User
from schemas.material import (
    MaterialCreate,
    MaterialUpdate,
    OpeningStockUpdate,
    MaterialListResponse,
    MaterialSingleResponse,
    MaterialCategoryCreate,
    MaterialCategoryResponse,
    UnitCreate,
    UnitResponse,
)
from services.stock import StockError, lock_material, set_opening_stock
from utils.ids import generate_code

router = APIRouter(tags=["Materials"])


def name_taken(db: Session, name: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(Material.id).filter(func.lower(func.trim(Material.name)) == name.strip().lower())
    if exclude_id:
        query = query.filter(Material.id != exclude_id)
    return query.first() is not None


def get_material_or_404(db: Session, material_id: str) -> Material:
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")
    return material


def check_category(db: Session, category_id: Optional[str]):
    if category_id and not db.query(MaterialCategory).filter(MaterialCategory.id == category_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category ID")


# Materials
@router.get("/materials", response_model=MaterialListResponse)
def get_materials(
    search: Optional[str] = None,
    category_id: Optional[str] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get all materials with optional filtering"""
    query = db.query(Material).options(joinedload(Material.category))

    if category_id:
        query = query.filter(Material.category_id == category_id)

    if search:
        query = query.filter(
            or_(
                Material.name.ilike(f"%{search}%"),
                Material.notes.ilike(f"%{search}%"),
            )
        )

    materials = query.order_by(Material.name.asc()).all()
    return {"message": "Materials retrieved successfully", "data": materials}


@router.get("/materials/low-stock", response_model=MaterialListResponse)
def get_low_stock_materials(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Materials whose current stock is below their minimum stock"""
    materials = (
        db.query(Material)
        .options(joinedload(Material.category))
        .filter(Material.current_stock < Material.min_stock)
        .order_by(Material.name.asc())
        .all()
    )
    return {"message": "Low stock materials retrieved successfully", "data": materials}


@router.post("/materials", response_model=MaterialSingleResponse, status_code=status.HTTP_201_CREATED)
def create_material(
    material: MaterialCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a material. A positive opening stock is recorded in the ledger."""
    if name_taken(db, material.name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Material '{material.name}' already exists"
        )
    check_category(db, material.category_id)

    data = material.model_dump()
    data["name"] = data["name"].strip()
    db_material = Material(
        id=generate_code(db, Material, "MAT"),
        current_stock=material.opening_stock,
        **data
    )
    db.add(db_material)
    db.flush()

    if material.opening_stock > 0:
        db.add(StockTransaction(
            material_id=db_material.id,
            transaction_type=TransactionType.IN.value,
            quantity=material.opening_stock,
            transaction_date=date.today(),
            source_type=StockInSource.OPENING_STOCK.value,
            balance_after=material.opening_stock,
            rate=material.rate,
            remarks="Opening stock entry",
            created_by=current_user.email,
        ))

    db.commit()
    db.refresh(db_material)
    return {"message": "Material created successfully", "data": db_material}


@router.get("/materials/{material_id}", response_model=MaterialSingleResponse)
def get_material(
    material_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    material = get_material_or_404(db, material_id)
    return {"message": "Material retrieved successfully", "data": material}


@router.put("/materials/{material_id}", response_model=MaterialSingleResponse)
def update_material(
    material_id: str,
    material_update: MaterialUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update material details. Stock figures change only through stock entries."""
    db_material = get_material_or_404(db, material_id)

    update_data = material_update.model_dump(exclude_unset=True)
    if update_data.get("name"):
        if name_taken(db, update_data["name"], exclude_id=material_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Material '{update_data['name']}' already exists"
            )
        update_data["name"] = update_data["name"].strip()
    if "category_id" in update_data:
        check_category(db, update_data["category_id"])

    for field, value in update_data.items():
        setattr(db_material, field, value)

    db.commit()
    db.refresh(db_material)
    return {"message": "Material updated successfully", "data": db_material}


@router.put("/materials/{material_id}/opening-stock", response_model=MaterialSingleResponse)
def update_opening_stock(
    material_id: str,
    opening: OpeningStockUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Change the opening stock; current stock moves by the same difference"""
    try:
        material = lock_material(db, material_id)
    except StockError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    try:
        set_opening_stock(db, material, opening.opening_stock, created_by=current_user.email)
    except StockError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    db.commit()
    db.refresh(material)
    return {"message": "Opening stock updated successfully", "data": material}


@router.delete("/materials/{material_id}")
def delete_material(
    material_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a material that has no ledger history"""
    db_material = get_material_or_404(db, material_id)

    if db.query(StockTransaction.id).filter(StockTransaction.material_id == material_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete material. It has stock transactions."
        )

    db.delete(db_material)
    db.commit()
    return {"message": "Material deleted successfully"}


# Categories
@router.get("/categories", response_model=List[MaterialCategoryResponse])
def get_categories(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return db.query(MaterialCategory).order_by(MaterialCategory.name.asc()).all()


@router.post("/categories", response_model=MaterialCategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category: MaterialCategoryCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    name = category.name.strip()
    if db.query(MaterialCategory).filter(func.lower(MaterialCategory.name) == name.lower()).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category already exists")

    db_category = MaterialCategory(id=generate_code(db, MaterialCategory, "CAT"), name=name)
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a category; its materials become uncategorized"""
    db_category = db.query(MaterialCategory).filter(MaterialCategory.id == category_id).first()
    if not db_category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    db.query(Material).filter(Material.category_id == category_id).update(
        {Material.category_id: None}, synchronize_session=False
    )
    db.delete(db_category)
    db.commit()
    return {"message": "Category deleted successfully"}


# Units
@router.get("/units", response_model=List[UnitResponse])
def get_units(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return db.query(Unit).order_by(Unit.name.asc()).all()


@router.post("/units", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit(
    unit: UnitCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    name = unit.name.strip()
    if db.query(Unit).filter(func.lower(Unit.name) == name.lower()).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unit already exists")

    db_unit = Unit(id=generate_code(db, Unit, "UNT"), name=name)
    db.add(db_unit)
    db.commit()
    db.refresh(db_unit)
    return db_unit


@router.delete("/units/{unit_id}")
def delete_unit(
    unit_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    db_unit = db.query(Unit).filter(Unit.id == unit_id).first()
    if not db_unit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unit not found")

    db.delete(db_unit)
    db.commit()
    return {"message": "Unit deleted successfully"}
