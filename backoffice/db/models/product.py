import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import relationship

from backoffice.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order_items = relationship("OrderItem", back_populates="product")

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),)
