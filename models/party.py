from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


class Party(Base):
    __tablename__ = "parties"

    id = Column(String(50), primary_key=True, index=True)
    name = Column(String(150), nullable=False, index=True)

    # Order numbering, e.g. "ST/004"
    prefix = Column(String(10), nullable=True)
    last_order_number = Column(Integer, default=0, nullable=False)

    # Contact Details
    address = Column(Text, nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(150), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    orders = relationship("Order", back_populates="party")

    def __repr__(self):
        return f"<Party(id='{self.id}', name='{self.name}', prefix='{self.prefix}')>"
