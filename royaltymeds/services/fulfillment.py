# royaltymeds/services/fulfillment.py
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from royaltymeds.core.errors import Conflict, NotFound, ValidationFailed
from royaltymeds.models.prescription import (
    Prescription, PrescriptionFill, PrescriptionItem, PrescriptionStatus,
)
from royaltymeds.models.user import User

logger = logging.getLogger(__name__)

# manual admin steps; fill results are handled by apply_fill
TRANSITIONS: dict[PrescriptionStatus, set[PrescriptionStatus]] = {
    PrescriptionStatus.pending: {PrescriptionStatus.approved, PrescriptionStatus.rejected},
    PrescriptionStatus.approved: {PrescriptionStatus.processing},
}

FILLABLE = {PrescriptionStatus.processing, PrescriptionStatus.partially_filled}
EDITABLE = FILLABLE


@dataclass(frozen=True)
class FillLine:
    item_id: int
    quantity_filled: int


def change_status(rx: Prescription, target: PrescriptionStatus) -> PrescriptionStatus:
    """Apply a manual status change; returns the previous status."""
    current = rx.status
    if target not in TRANSITIONS.get(current, set()):
        raise ValidationFailed(f"Cannot change prescription status from {current.value} to {target.value}")
    rx.status = target
    return current


def status_after_fill(items: Iterable[PrescriptionItem]) -> PrescriptionStatus:
    if all(it.quantity == 0 for it in items):
        return PrescriptionStatus.filled
    return PrescriptionStatus.partially_filled


def apply_fill(
    rx: Prescription,
    lines: list[FillLine],
    proof_file_url: Optional[str],
    actor: User,
    now: Optional[datetime] = None,
) -> PrescriptionFill:
    """
    Dispense quantities against the prescription's items.

    Every check runs before the first item is touched, so a rejected fill
    leaves the quantities and the status exactly as they were.
    """
    if rx.status not in FILLABLE:
        raise ValidationFailed("Prescription must be processing or partially filled to be filled")
    if not proof_file_url:
        raise ValidationFailed("A proof of fulfillment file is required")
    if not lines:
        raise ValidationFailed("At least one item must be filled")

    by_id = {it.id: it for it in rx.items}
    seen: set[int] = set()
    for line in lines:
        if line.item_id in seen:
            raise ValidationFailed(f"Item {line.item_id} appears more than once")
        seen.add(line.item_id)

        item = by_id.get(line.item_id)
        if item is None:
            raise NotFound(f"Prescription item {line.item_id} not found")
        if line.quantity_filled < 0:
            raise ValidationFailed(f"Quantity filled for {item.medication_name} cannot be negative")
        if line.quantity_filled > item.quantity:
            raise ValidationFailed(
                f"Cannot fill {line.quantity_filled} of {item.medication_name}: only {item.quantity} remaining"
            )

    now = now or datetime.utcnow()
    recorded = []
    for line in lines:
        item = by_id[line.item_id]
        item.quantity -= line.quantity_filled
        recorded.append({
            "item_id": item.id,
            "medication_name": item.medication_name,
            "quantity_filled": line.quantity_filled,
            "remaining": item.quantity,
        })

    rx.status = status_after_fill(rx.items)
    rx.filled_at = now
    rx.pharmacist_name = actor.display_name

    fill = PrescriptionFill(
        pharmacist_id=actor.id,
        pharmacist_name=actor.display_name,
        proof_file_url=proof_file_url,
        lines=recorded,
        resulting_status=rx.status,
        filled_at=now,
    )
    rx.fills.append(fill)
    return fill


async def commit_prescription(db: AsyncSession, rx: Prescription) -> None:
    """Commit prescription and item changes; a stale version means another request got there first."""
    rx_id = rx.id
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("Concurrent update on prescription %s lost the race", rx_id)
        raise Conflict("Prescription was changed by another request, reload and try again")


async def fill_prescription(
    db: AsyncSession,
    rx: Prescription,
    lines: list[FillLine],
    proof_file_url: Optional[str],
    actor: User,
) -> PrescriptionFill:
    fill = apply_fill(rx, lines, proof_file_url, actor)
    await commit_prescription(db, rx)
    logger.info("Prescription %s filled by %s -> %s", rx.id, actor.email, rx.status.value)
    return fill


def settle_status(rx: Prescription) -> None:
    """An edit that leaves nothing to dispense on a partially filled prescription completes it."""
    if rx.status == PrescriptionStatus.partially_filled and rx.items:
        rx.status = status_after_fill(rx.items)


def ensure_items_editable(rx: Prescription) -> None:
    if rx.status not in EDITABLE:
        raise ValidationFailed("Medications can only be changed while the prescription is processing or partially filled")


def add_item(
    rx: Prescription,
    medication_name: str,
    dosage: str,
    quantity: int,
    notes: Optional[str] = None,
    price: Optional[Decimal] = None,
) -> PrescriptionItem:
    ensure_items_editable(rx)
    if quantity <= 0:
        raise ValidationFailed("Quantity must be greater than zero")
    item = PrescriptionItem(
        position=max((it.position for it in rx.items), default=-1) + 1,
        medication_name=medication_name,
        dosage=dosage,
        total_amount=quantity,
        quantity=quantity,
        notes=notes,
        price=price,
    )
    rx.items.append(item)
    return item


def update_item(rx: Prescription, item: PrescriptionItem, changes: dict) -> PrescriptionItem:
    """`changes["quantity"]` is the new ordered total; what was already dispensed stays dispensed."""
    ensure_items_editable(rx)
    if "quantity" in changes and changes["quantity"] is not None:
        new_total = changes.pop("quantity")
        if new_total < item.filled:
            raise ValidationFailed(
                f"Quantity cannot be lower than the {item.filled} already filled for {item.medication_name}"
            )
        item.quantity = new_total - item.filled
        item.total_amount = new_total
    for k, v in changes.items():
        if v is not None:
            setattr(item, k, v)
    settle_status(rx)
    return item


def remove_item(rx: Prescription, item: PrescriptionItem) -> None:
    ensure_items_editable(rx)
    rx.items.remove(item)
    settle_status(rx)


async def get_prescription_or_404(db: AsyncSession, rx_id: str) -> Prescription:
    q = (
        select(Prescription)
        .options(selectinload(Prescription.items), selectinload(Prescription.fills))
        .where(Prescription.id == rx_id)
        .execution_options(populate_existing=True)
    )
    rx = (await db.execute(q)).scalar_one_or_none()
    if not rx:
        raise NotFound("Prescription not found")
    return rx
