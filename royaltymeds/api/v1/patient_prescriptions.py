import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.cdn import upload_document
from royaltymeds.core.config import settings
from royaltymeds.core.db import get_db
from royaltymeds.api.deps import patient_only
from royaltymeds.models.prescription import Prescription, PrescriptionSource, PrescriptionStatus
from royaltymeds.models.refill import RefillRequest
from royaltymeds.models.user import User
from royaltymeds.schemas.prescription import (
    PrescriptionDetailOut, PrescriptionOut, RefillRequestIn, RefillRequestOut,
)
from royaltymeds.services.fulfillment import get_prescription_or_404
from royaltymeds.services.refills import request_refill
from ._helpers import generate_prescription_number, read_and_validate_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patient", tags=["patient - prescriptions"])


async def _own_prescription_or_404(db: AsyncSession, rx_id: str, user: User) -> Prescription:
    rx = await get_prescription_or_404(db, rx_id)
    if rx.patient_id != user.id:
        # same answer as a missing id so other patients' ids are not revealed
        raise HTTPException(status_code=404, detail="Prescription not found")
    return rx

@router.get("/prescriptions", response_model=List[PrescriptionOut])
async def list_my_prescriptions(
    status: Optional[PrescriptionStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    q = (
        select(Prescription)
        .options(selectinload(Prescription.items))
        .where(Prescription.patient_id == user.id)
        .order_by(Prescription.created_at.desc())
    )
    if status:
        q = q.where(Prescription.status == status)
    return list((await db.execute(q.offset(offset).limit(limit))).scalars().unique())

@router.post("/prescriptions", response_model=PrescriptionOut, status_code=201)
async def upload_prescription(
    file: UploadFile = File(...),
    notes: Optional[str] = Form(None),
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    bits = await read_and_validate_document(file)
    url, public_id = upload_document(bits, settings.MEDIA_FOLDER_PRESCRIPTIONS, filename=file.filename)

    rx = Prescription(
        prescription_number=generate_prescription_number(),
        patient_id=user.id,
        source=PrescriptionSource.patient,
        status=PrescriptionStatus.pending,
        file_url=url,
        file_public_id=public_id,
        notes=notes,
    )
    db.add(rx)
    await db.commit()
    logger.info("Prescription %s uploaded by %s", rx.prescription_number, user.email)
    return await get_prescription_or_404(db, rx.id)

@router.get("/prescriptions/partially-filled", response_model=List[PrescriptionOut])
async def list_partially_filled(
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    """Refill candidates: prescriptions with medication still left to dispense."""
    q = (
        select(Prescription)
        .options(selectinload(Prescription.items))
        .where(
            Prescription.patient_id == user.id,
            Prescription.status == PrescriptionStatus.partially_filled,
        )
        .order_by(Prescription.filled_at.desc())
    )
    return list((await db.execute(q)).scalars().unique())

@router.get("/prescriptions/{rx_id}", response_model=PrescriptionDetailOut)
async def get_my_prescription(
    rx_id: str,
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    return await _own_prescription_or_404(db, rx_id, user)

@router.post("/prescriptions/{rx_id}/request-refill", response_model=RefillRequestOut, status_code=201)
async def request_prescription_refill(
    rx_id: str,
    payload: RefillRequestIn | None = None,
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await get_prescription_or_404(db, rx_id)
    payload = payload or RefillRequestIn()
    return await request_refill(db, rx, user, reason=payload.reason, notes=payload.notes)

@router.get("/refill-requests", response_model=List[RefillRequestOut])
async def list_my_refill_requests(
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    q = (
        select(RefillRequest)
        .where(RefillRequest.patient_id == user.id)
        .order_by(RefillRequest.created_at.desc())
    )
    return list((await db.execute(q)).scalars().all())
