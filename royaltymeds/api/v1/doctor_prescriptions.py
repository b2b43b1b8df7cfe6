import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.cdn import destroy, upload_document
from royaltymeds.core.config import settings
from royaltymeds.core.db import get_db
from royaltymeds.api.deps import doctor_only
from royaltymeds.models.prescription import (
    Prescription, PrescriptionItem, PrescriptionSource, PrescriptionStatus,
)
from royaltymeds.models.user import RoleEnum, User
from royaltymeds.schemas.prescription import DoctorPrescriptionCreate, PrescriptionDetailOut, PrescriptionOut
from royaltymeds.services.fulfillment import get_prescription_or_404
from ._helpers import generate_prescription_number, read_and_validate_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctor", tags=["doctor - prescriptions"])


# once the pharmacy starts processing, the prescription is no longer the doctor's to withdraw
DELETABLE = {PrescriptionStatus.pending, PrescriptionStatus.approved, PrescriptionStatus.rejected}

async def _own_prescription_or_404(db: AsyncSession, rx_id: str, user: User) -> Prescription:
    rx = await get_prescription_or_404(db, rx_id)
    if rx.doctor_id != user.id:
        raise HTTPException(status_code=404, detail="Prescription not found")
    return rx

@router.post("/prescriptions", response_model=PrescriptionOut, status_code=201)
async def submit_prescription(
    payload: DoctorPrescriptionCreate,
    user: User = Depends(doctor_only),
    db: AsyncSession = Depends(get_db),
):
    patient = (await db.execute(
        select(User).where(User.id == payload.patient_id, User.role == RoleEnum.patient)
    )).scalar_one_or_none()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    rx = Prescription(
        prescription_number=generate_prescription_number(),
        patient_id=patient.id,
        doctor_id=user.id,
        source=PrescriptionSource.doctor,
        status=PrescriptionStatus.pending,
        notes=payload.notes,
        refill_limit=payload.refill_limit,
    )
    for idx, it in enumerate(payload.items):
        rx.items.append(PrescriptionItem(
            position=idx,
            medication_name=it.medication_name,
            dosage=it.dosage,
            total_amount=it.quantity,
            quantity=it.quantity,
            notes=it.notes,
        ))

    db.add(rx)
    await db.commit()
    logger.info("Prescription %s submitted by Dr. %s for %s", rx.prescription_number, user.email, patient.email)
    return await get_prescription_or_404(db, rx.id)

@router.post("/prescriptions/{rx_id}/file", response_model=PrescriptionOut)
async def attach_prescription_file(
    rx_id: str,
    file: UploadFile = File(...),
    user: User = Depends(doctor_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await _own_prescription_or_404(db, rx_id, user)
    if rx.status != PrescriptionStatus.pending:
        raise HTTPException(status_code=400, detail="Files can only be attached while the prescription is pending")

    bits = await read_and_validate_document(file)
    url, public_id = upload_document(bits, settings.MEDIA_FOLDER_PRESCRIPTIONS, filename=file.filename)
    old_public_id = rx.file_public_id
    rx.file_url = url
    rx.file_public_id = public_id
    await db.commit()
    if old_public_id:
        destroy(old_public_id)
    return await get_prescription_or_404(db, rx.id)

@router.get("/prescriptions", response_model=List[PrescriptionOut])
async def list_my_submissions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(doctor_only),
    db: AsyncSession = Depends(get_db),
):
    q = (
        select(Prescription)
        .options(selectinload(Prescription.items))
        .where(Prescription.doctor_id == user.id)
        .order_by(Prescription.created_at.desc())
    )
    return list((await db.execute(q.offset(offset).limit(limit))).scalars().unique())

@router.get("/prescriptions/{rx_id}", response_model=PrescriptionDetailOut)
async def get_my_submission(
    rx_id: str,
    user: User = Depends(doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await _own_prescription_or_404(db, rx_id, user)

@router.delete("/prescriptions/{rx_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    rx_id: str,
    user: User = Depends(doctor_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await _own_prescription_or_404(db, rx_id, user)
    if rx.status not in DELETABLE:
        raise HTTPException(status_code=400, detail="Prescription is already being fulfilled and cannot be deleted")
    public_id = rx.file_public_id
    await db.delete(rx)
    await db.commit()
    if public_id:
        destroy(public_id)
    logger.info("Prescription %s withdrawn by Dr. %s", rx.prescription_number, user.email)
