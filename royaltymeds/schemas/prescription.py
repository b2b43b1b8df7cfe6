from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal

from royaltymeds.models.prescription import PrescriptionSource, PrescriptionStatus
from royaltymeds.models.refill import RefillStatus

class RxItemIn(BaseModel):
    medication_name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = None

class AdminRxItemIn(RxItemIn):
    # line price for the whole prescribed amount
    price: Optional[Decimal] = Field(None, ge=0)

class RxItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    position: int
    medication_name: str
    dosage: str
    total_amount: int
    quantity: int
    filled: int
    price: Optional[Decimal] = None
    notes: Optional[str] = None

class RxItemPatch(BaseModel):
    medication_name: Optional[str] = Field(None, min_length=1)
    dosage: Optional[str] = Field(None, min_length=1)
    # new ordered total, not the remaining amount
    quantity: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

class PrescriptionFillOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    pharmacist_name: str
    proof_file_url: str
    lines: list = Field(default_factory=list)
    resulting_status: PrescriptionStatus
    filled_at: datetime

class PrescriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    prescription_number: str
    patient_id: str
    doctor_id: Optional[str] = None
    source: PrescriptionSource
    status: PrescriptionStatus
    file_url: Optional[str] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    pharmacist_name: Optional[str] = None
    filled_at: Optional[datetime] = None
    refill_count: int
    refill_limit: Optional[int] = None
    is_refillable: bool
    last_refilled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[RxItemOut] = Field(default_factory=list)

class PrescriptionDetailOut(PrescriptionOut):
    fills: List[PrescriptionFillOut] = Field(default_factory=list)

class DoctorPrescriptionCreate(BaseModel):
    patient_id: str
    notes: Optional[str] = None
    refill_limit: Optional[int] = Field(None, ge=0)
    items: List[RxItemIn] = Field(..., min_length=1)

class PrescriptionAdminUpdate(BaseModel):
    status: Optional[PrescriptionStatus] = None
    admin_notes: Optional[str] = None
    refill_limit: Optional[int] = Field(None, ge=0)
    is_refillable: Optional[bool] = None

class FillLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    item_id: int = Field(..., alias="itemId")
    quantity_filled: int = Field(..., alias="quantityFilled")

class FillIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    items: List[FillLineIn]
    proof_file_url: Optional[str] = Field(None, alias="proofFileUrl")

class UploadOut(BaseModel):
    url: str
    public_id: str

# --- refills ---
class RefillRequestIn(BaseModel):
    reason: Optional[str] = None
    notes: Optional[str] = None

class RefillReviewIn(BaseModel):
    status: RefillStatus
    rejection_reason: Optional[str] = None

class ProcessRefillIn(BaseModel):
    reset_quantities: bool = False

class RefillRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    prescription_id: str
    patient_id: str
    status: RefillStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    refill_number: Optional[int] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
