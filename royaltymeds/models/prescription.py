from __future__ import annotations
import enum
import uuid
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, DateTime, Boolean, Integer, Numeric, ForeignKey, Enum, JSON, CheckConstraint
from royaltymeds.core.db import Base

class PrescriptionStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    processing = "processing"
    partially_filled = "partially_filled"
    filled = "filled"

class PrescriptionSource(str, enum.Enum):
    patient = "patient"
    doctor = "doctor"

class Prescription(Base):
    __tablename__ = "prescriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    prescription_number: Mapped[str] = mapped_column(String(32), index=True)
    patient_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    doctor_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), index=True, nullable=True)
    source: Mapped[PrescriptionSource] = mapped_column(Enum(PrescriptionSource), default=PrescriptionSource.patient)

    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(PrescriptionStatus), default=PrescriptionStatus.pending, index=True
    )

    file_url: Mapped[Optional[str]] = mapped_column(String(1024), default=None)
    file_public_id: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    notes: Mapped[Optional[str]] = mapped_column(Text, default=None)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, default=None)

    pharmacist_name: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    filled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)

    refill_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # None means unlimited refills
    refill_limit: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    is_refillable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_refilled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)

    # optimistic lock; every fill writes this row, whichever items it touches
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    items: Mapped[List["PrescriptionItem"]] = relationship(
        back_populates="prescription",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PrescriptionItem.position",
    )
    fills: Mapped[List["PrescriptionFill"]] = relationship(
        back_populates="prescription",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PrescriptionFill.filled_at",
    )

    __mapper_args__ = {"version_id_col": version}

class PrescriptionItem(Base):
    __tablename__ = "prescription_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prescription_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        index=True,
        nullable=False
    )

    position:        Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    medication_name: Mapped[str] = mapped_column(String(255))
    dosage:          Mapped[str] = mapped_column(String(255))
    # ordered amount; `quantity` is what is still left to dispense
    total_amount:    Mapped[int] = mapped_column(Integer, nullable=False)
    quantity:        Mapped[int] = mapped_column(Integer, nullable=False)
    # price charged for the whole prescribed amount; required before an order can be raised
    price:           Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), default=None)
    notes:           Mapped[Optional[str]] = mapped_column(Text, default=None)
    version:         Mapped[int] = mapped_column(Integer, nullable=False)

    prescription: Mapped["Prescription"] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 0 AND quantity <= total_amount", name="ck_rx_item_quantity"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def filled(self) -> int:
        return self.total_amount - self.quantity

class PrescriptionFill(Base):
    """One dispensing event: who filled what, with the uploaded proof."""
    __tablename__ = "prescription_fills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prescription_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        index=True,
        nullable=False
    )
    pharmacist_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    pharmacist_name: Mapped[str] = mapped_column(String(255))
    proof_file_url: Mapped[str] = mapped_column(String(1024))
    # [{"item_id": 1, "quantity_filled": 10, "remaining": 20}, ...]
    lines: Mapped[list] = mapped_column(JSON, default=list)
    resulting_status: Mapped[PrescriptionStatus] = mapped_column(Enum(PrescriptionStatus))
    filled_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    prescription: Mapped["Prescription"] = relationship(back_populates="fills")
