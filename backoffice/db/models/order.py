import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid, func
from sqlalchemy.orm import relationship

from backoffice.db.base import Base

CANCELLED_STATUS = "Cancelled"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    total = Column(Numeric(12, 2), nullable=False)
    status = Column(String(50), nullable=False, default="pending", index=True)
    payment_method = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
