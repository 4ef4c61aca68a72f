from sqlalchemy import Column, Integer, String, DateTime, Numeric, Date, ForeignKey, Text, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
from decimal import Decimal
import enum


class TransactionType(str, enum.Enum):
    ADD = "add"
    IN = "in"
    OUT = "out"
    REDUCE = "reduce"


class StockInSource(str, enum.Enum):
    MARKET_PURCHASE = "market_purchase"
    PARTY_SUPPLY = "party_supply"
    OTHER_SUPPLIER = "other_supplier"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    OPENING_STOCK = "opening_stock"


class StockOutReason(str, enum.Enum):
    USED_IN_ORDER = "used_in_order"
    WASTAGE = "wastage"
    SAMPLE = "sample"
    DAMAGE = "damage"
    RETURNED = "returned"
    ADJUSTMENT = "adjustment"


INWARD_TYPES = (TransactionType.ADD.value, TransactionType.IN.value)
OUTWARD_TYPES = (TransactionType.OUT.value, TransactionType.REDUCE.value)


class StockTransaction(Base):
    """Ledger entry. Rows are ordered by transaction_date, then id (insertion order)."""
    __tablename__ = "stock_transactions"
    __table_args__ = (
        Index("idx_stock_transactions_material_date", "material_id", "transaction_date"),
        # One opening snapshot per material
        Index(
            "uq_stock_transactions_opening_stock",
            "material_id",
            unique=True,
            postgresql_where=text("source_type = 'opening_stock'"),
            sqlite_where=text("source_type = 'opening_stock'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    material_id = Column(String(50), ForeignKey("materials.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_type = Column(String(20), nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    balance_after = Column(Numeric(12, 2), default=Decimal("0.00"))

    source_type = Column(String(50), nullable=True)
    reason_type = Column(String(50), nullable=True)

    # Traceability
    party_id = Column(String(50), ForeignKey("parties.id", ondelete="SET NULL"), nullable=True, index=True)
    order_id = Column(String(50), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    order_number = Column(String(50), nullable=True)

    rate = Column(Numeric(10, 2), default=Decimal("0.00"))
    remarks = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    material = relationship("Material", back_populates="transactions")
    party = relationship("Party")

    @property
    def is_inward(self) -> bool:
        return self.transaction_type in INWARD_TYPES

    @property
    def signed_quantity(self):
        """Quantity with the sign implied by the transaction type."""
        qty = self.quantity or Decimal("0.00")
        return qty if self.is_inward else -qty

    @property
    def material_name(self):
        return self.material.name if self.material else None

    @property
    def party_name(self):
        return self.party.name if self.party else None

    def __repr__(self):
        return (
            f"<StockTransaction(id={self.id}, material_id='{self.material_id}', "
            f"type='{self.transaction_type}', quantity={self.quantity}, balance_after={self.balance_after})>"
        )
