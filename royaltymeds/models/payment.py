import enum
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Text, Boolean, Numeric, Enum, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from royaltymeds.core.db import Base

class TaxType(str, enum.Enum):
    none = "none"
    inclusive = "inclusive"

class PaymentConfig(Base):
    """Single row: bank transfer details, tax mode and the fallback delivery cost."""
    __tablename__ = "payment_config"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    bank_account_holder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    routing_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    iban: Mapped[str | None] = mapped_column(String(64), nullable=True)
    swift_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    additional_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    tax_type: Mapped[TaxType] = mapped_column(Enum(TaxType), default=TaxType.none)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    default_shipping_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class ShippingRate(Base):
    __tablename__ = "shipping_rates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    parish: Mapped[str] = mapped_column(String(120), index=True)
    city_town: Mapped[str | None] = mapped_column(String(120), nullable=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    # flagged by admins per location; does not affect lookup precedence
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
