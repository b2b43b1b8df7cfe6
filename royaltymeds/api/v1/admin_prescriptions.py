import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.cdn import upload_document
from royaltymeds.core.config import settings
from royaltymeds.core.db import get_db
from royaltymeds.api.deps import admin_only, client_ip
from royaltymeds.models.audit import AuditAction
from royaltymeds.models.prescription import (
    Prescription, PrescriptionItem, PrescriptionSource, PrescriptionStatus,
)
from royaltymeds.models.refill import RefillRequest, RefillStatus
from royaltymeds.models.user import User
from royaltymeds.schemas.prescription import (
    FillIn, PrescriptionAdminUpdate, PrescriptionDetailOut, PrescriptionOut, ProcessRefillIn,
    AdminRxItemIn, RefillRequestOut, RefillReviewIn, RxItemPatch, UploadOut,
)
from royaltymeds.schemas.order import OrderOut, PrescriptionOrderIn
from royaltymeds.services import audit, fulfillment, orders, refills
from ._helpers import generate_order_number, read_and_validate_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/prescriptions", tags=["admin - prescriptions"])


_STATUS_ACTION = {
    PrescriptionStatus.approved: AuditAction.APPROVE,
    PrescriptionStatus.rejected: AuditAction.REJECT,
}

def _item_or_404(rx: Prescription, item_id: int) -> PrescriptionItem:
    for it in rx.items:
        if it.id == item_id:
            return it
    raise HTTPException(status_code=404, detail="Prescription item not found")

async def _refill_request_or_404(db: AsyncSession, req_id: str) -> RefillRequest:
    req = (await db.execute(select(RefillRequest).where(RefillRequest.id == req_id))).scalar_one_or_none()
    if not req:
        raise HTTPException(status_code=404, detail="Refill request not found")
    return req

@router.get("", response_model=List[PrescriptionOut])
async def list_prescriptions(
    status: Optional[PrescriptionStatus] = None,
    source: Optional[PrescriptionSource] = None,
    patient_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    q = (
        select(Prescription)
        .options(selectinload(Prescription.items))
        .order_by(Prescription.created_at.desc())
    )
    if status:
        q = q.where(Prescription.status == status)
    if source:
        q = q.where(Prescription.source == source)
    if patient_id:
        q = q.where(Prescription.patient_id == patient_id)
    return list((await db.execute(q.offset(offset).limit(limit))).scalars().unique())

# ---------- refill requests ----------
@router.get("/refill-requests", response_model=List[RefillRequestOut])
async def list_refill_requests(
    status: Optional[RefillStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    q = select(RefillRequest).order_by(RefillRequest.created_at.desc())
    if status:
        q = q.where(RefillRequest.status == status)
    return list((await db.execute(q.offset(offset).limit(limit))).scalars().all())

@router.patch("/refill-requests/{req_id}", response_model=RefillRequestOut)
async def review_refill_request(
    req_id: str,
    body: RefillReviewIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    req = await _refill_request_or_404(db, req_id)
    before = audit.snapshot(req)
    refills.review_refill(req, user, body.status, body.rejection_reason)
    await db.commit()

    await audit.record(
        user,
        AuditAction.APPROVE if req.status == RefillStatus.approved else AuditAction.REJECT,
        "refill_request",
        req.id,
        before=before,
        after=audit.snapshot(req),
        description=f"Refill request for prescription {req.prescription_id} {req.status.value}",
        ip_address=client_ip(request),
    )
    return req

# ---------- prescriptions ----------
@router.get("/{rx_id}", response_model=PrescriptionDetailOut)
async def get_prescription(
    rx_id: str,
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await fulfillment.get_prescription_or_404(db, rx_id)

@router.patch("/{rx_id}", response_model=PrescriptionDetailOut)
async def update_prescription(
    rx_id: str,
    patch: PrescriptionAdminUpdate,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    before = audit.snapshot(rx)

    changes = patch.model_dump(exclude_unset=True)
    target = changes.pop("status", None)
    if target is not None:
        fulfillment.change_status(rx, target)
    for k, v in changes.items():
        if v is None and k == "is_refillable":
            continue
        setattr(rx, k, v)
    await fulfillment.commit_prescription(db, rx)

    action = _STATUS_ACTION.get(target, AuditAction.UPDATE) if target else AuditAction.UPDATE
    await audit.record(
        user, action, "prescription", rx.id,
        before=before, after=audit.snapshot(rx),
        description=f"Prescription {rx.prescription_number} updated" + (f" to {target.value}" if target else ""),
        ip_address=client_ip(request),
    )
    return await fulfillment.get_prescription_or_404(db, rx.id)

@router.post("/{rx_id}/proof", response_model=UploadOut, status_code=201)
async def upload_fill_proof(
    rx_id: str,
    file: UploadFile = File(...),
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    """Stores the re-uploaded prescription; the returned url is what `fill` expects as proofFileUrl."""
    await fulfillment.get_prescription_or_404(db, rx_id)
    bits = await read_and_validate_document(file)
    url, public_id = upload_document(bits, settings.MEDIA_FOLDER_FILL_PROOFS, filename=file.filename)
    return UploadOut(url=url, public_id=public_id)

@router.patch("/{rx_id}/fill", response_model=PrescriptionDetailOut)
async def fill_prescription(
    rx_id: str,
    body: FillIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    before = audit.snapshot(rx)
    lines = [fulfillment.FillLine(item_id=l.item_id, quantity_filled=l.quantity_filled) for l in body.items]
    fill = await fulfillment.fill_prescription(db, rx, lines, body.proof_file_url, user)

    await audit.record(
        user, AuditAction.UPDATE, "prescription", rx.id,
        before=before,
        after={**audit.snapshot(rx), "fill": fill.lines},
        description=f"Prescription {rx.prescription_number} filled ({rx.status.value})",
        ip_address=client_ip(request),
    )
    return await fulfillment.get_prescription_or_404(db, rx.id)

@router.post("/{rx_id}/create-order", response_model=OrderOut, status_code=201)
async def create_order(
    rx_id: str,
    request: Request,
    body: PrescriptionOrderIn | None = None,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    order = await orders.create_order_from_prescription(
        db, rx, body or PrescriptionOrderIn(), order_number=generate_order_number(prefix="RX"),
    )

    await audit.record(
        user, AuditAction.CREATE, "order", order.id,
        after=audit.snapshot(order),
        description=f"Order {order.order_number} created from prescription {rx.prescription_number}",
        ip_address=client_ip(request),
    )
    return OrderOut.model_validate(order)

# ---------- medication items ----------
@router.post("/{rx_id}/items", response_model=PrescriptionDetailOut, status_code=201)
async def add_medication(
    rx_id: str,
    body: AdminRxItemIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    item = fulfillment.add_item(rx, body.medication_name, body.dosage, body.quantity, body.notes, price=body.price)
    await fulfillment.commit_prescription(db, rx)

    await audit.record(
        user, AuditAction.CREATE, "prescription_item", item.id,
        after=audit.snapshot(item),
        description=f"Added {item.medication_name} to prescription {rx.prescription_number}",
        ip_address=client_ip(request),
    )
    return await fulfillment.get_prescription_or_404(db, rx.id)

@router.patch("/{rx_id}/items/{item_id}", response_model=PrescriptionDetailOut)
async def update_medication(
    rx_id: str,
    item_id: int,
    patch: RxItemPatch,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    item = _item_or_404(rx, item_id)
    before = audit.snapshot(item)
    fulfillment.update_item(rx, item, patch.model_dump(exclude_unset=True))
    await fulfillment.commit_prescription(db, rx)

    await audit.record(
        user, AuditAction.UPDATE, "prescription_item", item.id,
        before=before, after=audit.snapshot(item),
        description=f"Updated {item.medication_name} on prescription {rx.prescription_number}",
        ip_address=client_ip(request),
    )
    return await fulfillment.get_prescription_or_404(db, rx.id)

@router.delete("/{rx_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    rx_id: str,
    item_id: int,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    item = _item_or_404(rx, item_id)
    before = audit.snapshot(item)
    fulfillment.remove_item(rx, item)
    await fulfillment.commit_prescription(db, rx)

    await audit.record(
        user, AuditAction.DELETE, "prescription_item", item_id,
        before=before,
        description=f"Removed {before['medication_name']} from prescription {rx.prescription_number}",
        ip_address=client_ip(request),
    )

# ---------- refills ----------
@router.post("/{rx_id}/process-refill", response_model=PrescriptionDetailOut)
async def process_refill(
    rx_id: str,
    request: Request,
    body: ProcessRefillIn | None = None,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rx = await fulfillment.get_prescription_or_404(db, rx_id)
    before = audit.snapshot(rx)
    body = body or ProcessRefillIn()
    req = await refills.process_refill(db, rx, user, reset_quantities=body.reset_quantities)
    await fulfillment.commit_prescription(db, rx)

    await audit.record(
        user, AuditAction.UPDATE, "prescription", rx.id,
        before=before, after=audit.snapshot(rx),
        description=f"Refill #{req.refill_number} started for prescription {rx.prescription_number}",
        ip_address=client_ip(request),
    )
    return await fulfillment.get_prescription_or_404(db, rx.id)
