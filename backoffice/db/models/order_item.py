import uuid
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, Uuid
from sqlalchemy.orm import relationship

from backoffice.db.base import Base


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # Nullable: the product may have been deleted after the sale
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")

    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),)
