from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum

from checkout.data.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"  # tylko stare rekordy
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)

    status = Column(String, nullable=False, default=OrderStatus.CREATED.value)
    payment_method = Column(String, nullable=False)

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    idempotency_token = Column(String(128), nullable=True)

    contact_name = Column(String(100), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    contact_email = Column(String(254), nullable=True)
    delivery_method = Column(String(20), nullable=False, default="pickup")
    delivery_address = Column(JSON, nullable=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )

    # jeden token na usera; zamyka wyscig dwoch rownoleglych requestow
    __table_args__ = (UniqueConstraint("user_id", "idempotency_token", name="u_order_user_token"),)


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
