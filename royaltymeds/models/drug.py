import enum
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Text, Boolean, Integer, Numeric, Enum, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from royaltymeds.core.db import Base

class DrugStatus(str, enum.Enum):
    active = "active"
    discontinued = "discontinued"
    out_of_stock = "out_of_stock"

class Drug(Base):
    """Over-the-counter catalog item sold in the storefront."""
    __tablename__ = "otc_drugs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), index=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True)
    category: Mapped[str] = mapped_column(String(100), index=True)
    sub_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    is_on_sale: Mapped[bool] = mapped_column(Boolean, default=False)
    sale_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    sale_discount_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    # items flagged here need a pharmacist phone/email confirmation before processing
    pharm_confirm: Mapped[bool] = mapped_column(Boolean, default=False)

    quantity_on_hand: Mapped[int] = mapped_column(Integer, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, default=10)
    low_stock_alert: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[DrugStatus] = mapped_column(Enum(DrugStatus), default=DrugStatus.active, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class InventoryTransactionType(str, enum.Enum):
    adjustment = "adjustment"
    purchase = "purchase"
    sale = "sale"
    expiration = "expiration"
    damage = "damage"

class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    drug_id: Mapped[str] = mapped_column(String(36), ForeignKey("otc_drugs.id", ondelete="CASCADE"), index=True)
    transaction_type: Mapped[InventoryTransactionType] = mapped_column(Enum(InventoryTransactionType))
    quantity_change: Mapped[int] = mapped_column(Integer)
    quantity_before: Mapped[int] = mapped_column(Integer)
    quantity_after: Mapped[int] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
