"""
Order models for database operations
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from pharmacy_app.database import Base

class Order(Base):
    """Order entity model"""
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
    )

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(100), index=True, nullable=False)
    order_date = Column(DateTime(timezone=True), nullable=False, index=True)
    kind = Column(String(20), default="standard", nullable=False)
    status = Column(String(30), default="Pending", nullable=False)
    progress = Column(Integer, nullable=True)
    total_amount = Column(Float, nullable=False)
    delivery_fee = Column(Float, default=0.0, nullable=False)
    pharmacy_id = Column(String(50), nullable=True)
    prescription_image = Column(Text, nullable=True)  # Data URI or URL
    prescription_description = Column(Text, nullable=True)
    idempotency_key = Column(String(100), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order(id='{self.id}', user_id='{self.user_id}', status='{self.status}')>"


class OrderItem(Base):
    """Line entry of an order; price is a snapshot taken at order time"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(String(50), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem(order_id='{self.order_id}', product_id='{self.product_id}', quantity={self.quantity})>"
