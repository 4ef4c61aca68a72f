from sqlalchemy import Column, Integer, String, DateTime, Date, Numeric, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
from decimal import Decimal
import enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(50), primary_key=True, index=True)
    order_number = Column(String(50), nullable=False, unique=True, index=True)
    party_id = Column(String(50), ForeignKey("parties.id", ondelete="SET NULL"), nullable=True, index=True)
    order_date = Column(Date, nullable=False, server_default=func.current_date(), index=True)

    # Financial totals
    subtotal = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    deduction_total = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    net_total = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    party = relationship("Party", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.serial_no"
    )
    deductions = relationship(
        "RawMaterialDeduction", back_populates="order", cascade="all, delete-orphan",
        order_by="RawMaterialDeduction.id"
    )

    @property
    def party_name(self):
        return self.party.name if self.party else None

    def recalculate_totals(self):
        """Recompute subtotal, deduction total and net total from the child rows."""
        self.subtotal = sum((item.total or Decimal("0.00") for item in self.items), Decimal("0.00"))
        self.deduction_total = sum(
            (deduction.amount or Decimal("0.00") for deduction in self.deductions), Decimal("0.00")
        )
        self.net_total = self.subtotal - self.deduction_total

    def __repr__(self):
        return f"<Order(id='{self.id}', order_number='{self.order_number}')>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(String(50), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    serial_no = Column(Integer, nullable=False)
    particular = Column(String(255), nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False)
    quantity_unit = Column(String(20), default="Dzn", nullable=False)
    rate_per_dzn = Column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    total = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="items")


class RawMaterialDeduction(Base):
    __tablename__ = "raw_material_deductions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(String(50), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Referenced by name, resolved against Material.name when stock is posted
    material_name = Column(String(150), nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False)
    rate = Column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="deductions")
