import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.cdn import upload_document
from royaltymeds.core.config import settings
from royaltymeds.core.db import get_db
from royaltymeds.api.deps import patient_only
from royaltymeds.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from royaltymeds.models.user import User
from royaltymeds.schemas.order import CheckoutIn, OrderOut
from royaltymeds.services.orders import create_order_from_cart
from ._helpers import generate_order_number, read_and_validate_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


async def get_order_or_404(db: AsyncSession, order_id: str) -> Order:
    q = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = (await db.execute(q)).scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

async def _own_order_or_404(db: AsyncSession, order_id: str, user: User) -> Order:
    order = await get_order_or_404(db, order_id)
    if order.user_id != user.id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

@router.post("", response_model=OrderOut, status_code=201)
async def checkout(payload: CheckoutIn, user: User = Depends(patient_only), db: AsyncSession = Depends(get_db)):
    return await create_order_from_cart(db, user, payload, order_number=generate_order_number())

@router.get("", response_model=List[OrderOut])
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    q = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.user_id == user.id)
        .order_by(Order.created_at.desc())
    )
    if status:
        q = q.where(Order.status == status)
    return list((await db.execute(q.offset(offset).limit(limit))).scalars().unique())

@router.get("/{order_id}", response_model=OrderOut)
async def get_my_order(order_id: str, user: User = Depends(patient_only), db: AsyncSession = Depends(get_db)):
    return await _own_order_or_404(db, order_id, user)

@router.post("/{order_id}/receipt", response_model=OrderOut)
async def upload_payment_receipt(
    order_id: str,
    file: UploadFile = File(...),
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    order = await _own_order_or_404(db, order_id, user)
    if order.payment_status == PaymentStatus.paid:
        raise HTTPException(status_code=400, detail="Order is already paid")

    bits = await read_and_validate_document(file)
    url, _ = upload_document(bits, settings.MEDIA_FOLDER_RECEIPTS, filename=file.filename)
    order.receipt_url = url
    order.payment_method = PaymentMethod.bank_transfer
    order.payment_status = PaymentStatus.pending
    await db.commit()
    logger.info("Payment receipt uploaded for order %s", order.order_number)
    return await get_order_or_404(db, order.id)
