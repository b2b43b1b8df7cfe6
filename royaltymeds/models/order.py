import enum
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Text, Boolean, Integer, Numeric, Enum, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from royaltymeds.core.db import Base

class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    payment_pending = "payment_pending"
    payment_verified = "payment_verified"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"

class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"

class PaymentMethod(str, enum.Enum):
    bank_transfer = "bank_transfer"
    card = "card"

class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True)
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.payment_pending, index=True)

    subtotal_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    shipping_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    # shipping is shown but left out of total_amount when collected at the door
    shipping_collect_on_delivery: Mapped[bool] = mapped_column(Boolean, default=False)
    shipping_custom_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    shipping_paid_online: Mapped[bool] = mapped_column(Boolean, default=False)

    payment_status: Mapped[PaymentStatus] = mapped_column(Enum(PaymentStatus), default=PaymentStatus.pending)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(Enum(PaymentMethod), nullable=True)
    receipt_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # raised by the pharmacy from a priced prescription rather than from a cart
    is_prescription_order: Mapped[bool] = mapped_column(Boolean, default=False)
    prescription_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("prescriptions.id", ondelete="SET NULL"), index=True, nullable=True
    )

    shipping_street_line_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shipping_street_line_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shipping_city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    shipping_state: Mapped[str | None] = mapped_column(String(120), nullable=True)  # parish
    shipping_postal_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    shipping_country: Mapped[str | None] = mapped_column(String(120), nullable=True)

    billing_street_line_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_street_line_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    billing_state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    billing_postal_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    billing_country: Mapped[str | None] = mapped_column(String(120), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", passive_deletes=True, order_by="OrderItem.id"
    )

class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    # null for prescription lines, which are not catalog stock
    drug_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("otc_drugs.id"), index=True, nullable=True)
    drug_name: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    pharm_confirm: Mapped[bool] = mapped_column(Boolean, default=False)

    order: Mapped["Order"] = relationship(back_populates="items")

class CartItem(Base):
    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    drug_id: Mapped[str] = mapped_column(String(36), ForeignKey("otc_drugs.id", ondelete="CASCADE"))
    quantity: Mapped[int] = mapped_column(Integer)
    added_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    drug = relationship("Drug")

    __table_args__ = (
        UniqueConstraint("user_id", "drug_id", name="uq_cart_user_drug"),
    )
