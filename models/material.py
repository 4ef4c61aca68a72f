from sqlalchemy import Column, String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database import Base
from decimal import Decimal


class MaterialCategory(Base):
    __tablename__ = "material_categories"

    id = Column(String(50), primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    materials = relationship("Material", back_populates="category")


class Unit(Base):
    __tablename__ = "units"

    id = Column(String(50), primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Material(Base):
    __tablename__ = "materials"

    id = Column(String(50), primary_key=True, index=True)
    name = Column(String(150), nullable=False, index=True)
    category_id = Column(String(50), ForeignKey("material_categories.id", ondelete="SET NULL"), nullable=True)
    unit = Column(String(50), nullable=False, default="Pcs")
    rate = Column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    opening_stock = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    current_stock = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    min_stock = Column(Numeric(12, 2), default=Decimal("0.00"))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship("MaterialCategory", back_populates="materials")
    transactions = relationship("StockTransaction", back_populates="material")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or Decimal("0")) < (self.min_stock or Decimal("0"))

    def __repr__(self):
        return f"<Material(id='{self.id}', name='{self.name}', current_stock={self.current_stock})>"
