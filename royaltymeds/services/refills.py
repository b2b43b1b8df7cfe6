# royaltymeds/services/refills.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.core.errors import Forbidden, ValidationFailed
from royaltymeds.models.prescription import Prescription, PrescriptionStatus
from royaltymeds.models.refill import RefillRequest, RefillStatus
from royaltymeds.models.user import User

logger = logging.getLogger(__name__)


def is_refillable(rx: Prescription) -> bool:
    return rx.status == PrescriptionStatus.partially_filled


def limit_reached(rx: Prescription) -> bool:
    return rx.refill_limit is not None and rx.refill_count >= rx.refill_limit


async def _pending_request(db: AsyncSession, rx_id: str) -> RefillRequest | None:
    q = select(RefillRequest).where(
        RefillRequest.prescription_id == rx_id,
        RefillRequest.status == RefillStatus.pending,
    )
    return (await db.execute(q)).scalars().first()


async def request_refill(
    db: AsyncSession,
    rx: Prescription,
    actor: User,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> RefillRequest:
    if rx.patient_id != actor.id:
        raise Forbidden("Unauthorized")
    if not is_refillable(rx):
        raise ValidationFailed("Only partially filled prescriptions can be refilled")
    if not rx.is_refillable:
        raise ValidationFailed("This prescription is not refillable")
    if limit_reached(rx):
        raise ValidationFailed(f"Refill limit reached ({rx.refill_limit})")
    if await _pending_request(db, rx.id):
        raise ValidationFailed("A refill request for this prescription is already pending")

    req = RefillRequest(
        prescription_id=rx.id,
        patient_id=actor.id,
        reason=reason or "Refill requested",
        notes=notes,
    )
    db.add(req)
    await db.commit()
    await db.refresh(req)
    logger.info("Refill requested for prescription %s by %s", rx.id, actor.email)
    return req


def review_refill(
    req: RefillRequest,
    actor: User,
    status: RefillStatus,
    rejection_reason: Optional[str] = None,
) -> RefillRequest:
    if req.status != RefillStatus.pending:
        raise ValidationFailed(f"Refill request is already {req.status.value}")
    if status not in (RefillStatus.approved, RefillStatus.rejected):
        raise ValidationFailed("Refill requests can only be approved or rejected")
    req.status = status
    req.reviewed_by = actor.id
    req.reviewed_at = datetime.utcnow()
    if status == RefillStatus.rejected:
        req.rejection_reason = rejection_reason
    return req


async def process_refill(
    db: AsyncSession,
    rx: Prescription,
    actor: User,
    reset_quantities: bool = False,
) -> RefillRequest:
    """Start the next fulfillment cycle of an approved refill. Items must be loaded on `rx`."""
    q = (
        select(RefillRequest)
        .where(RefillRequest.prescription_id == rx.id, RefillRequest.status == RefillStatus.approved)
        .order_by(RefillRequest.created_at)
    )
    req = (await db.execute(q)).scalars().first()
    if req is None:
        raise ValidationFailed("No approved refill request for this prescription")
    if limit_reached(rx):
        raise ValidationFailed(f"Refill limit reached ({rx.refill_limit})")

    now = datetime.utcnow()
    rx.refill_count += 1
    rx.last_refilled_at = now
    rx.status = PrescriptionStatus.processing
    if reset_quantities:
        for it in rx.items:
            it.quantity = it.total_amount

    req.status = RefillStatus.completed
    req.refill_number = rx.refill_count
    req.reviewed_by = req.reviewed_by or actor.id
    logger.info("Refill %s processed for prescription %s", req.refill_number, rx.id)
    return req
