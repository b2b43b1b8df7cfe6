import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.db import get_db
from royaltymeds.api.deps import admin_only, client_ip
from royaltymeds.models.audit import AuditAction
from royaltymeds.models.order import Order, OrderStatus, PaymentStatus
from royaltymeds.models.user import User
from royaltymeds.schemas.order import (
    InventoryCheckOut, OrderOut, OrderStatusIn, OrderStatusOut, PaymentStatusIn, ShippingUpdateIn,
)
from royaltymeds.services import audit
from royaltymeds.services.orders import check_inventory, record_shipment, update_shipping
from .orders import get_order_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/orders", tags=["admin - orders"])


@router.get("", response_model=List[OrderOut])
async def list_orders(
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    user_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    q = select(Order).options(selectinload(Order.items)).order_by(Order.created_at.desc())
    if status:
        q = q.where(Order.status == status)
    if payment_status:
        q = q.where(Order.payment_status == payment_status)
    if user_id:
        q = q.where(Order.user_id == user_id)
    return list((await db.execute(q.offset(offset).limit(limit))).scalars().unique())

@router.get("/{order_id}", response_model=OrderOut)
async def get_order(order_id: str, _: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    return await get_order_or_404(db, order_id)

@router.get("/{order_id}/inventory-check", response_model=InventoryCheckOut)
async def inventory_check(order_id: str, _: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    order = await get_order_or_404(db, order_id)
    lines = await check_inventory(db, order)
    return InventoryCheckOut(all_available=all(l["sufficient"] for l in lines), items=lines)

@router.patch("/{order_id}/status", response_model=OrderStatusOut)
async def update_order_status(
    order_id: str,
    body: OrderStatusIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    order = await get_order_or_404(db, order_id)
    before = audit.snapshot(order)
    previous = order.status

    low = []
    # stock leaves the shelf once, on the first move to shipped
    if body.status == OrderStatus.shipped and previous != OrderStatus.shipped:
        low = await record_shipment(db, order, user)
    order.status = body.status
    await db.commit()

    for drug in low:
        logger.warning("Low stock: %s (%s) has %s left", drug.name, drug.sku, drug.quantity_on_hand)

    await audit.record(
        user, AuditAction.UPDATE, "order", order.id,
        before=before, after=audit.snapshot(order),
        description=f"Order {order.order_number} status {previous.value} -> {order.status.value}",
        ip_address=client_ip(request),
    )
    return OrderStatusOut(
        order=OrderOut.model_validate(await get_order_or_404(db, order.id)),
        low_stock=[d.name for d in low],
    )

@router.patch("/{order_id}/payment-status", response_model=OrderOut)
async def update_payment_status(
    order_id: str,
    body: PaymentStatusIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    order = await get_order_or_404(db, order_id)
    before = audit.snapshot(order)
    order.payment_status = body.payment_status
    if body.payment_status == PaymentStatus.paid and order.status == OrderStatus.payment_pending:
        order.status = OrderStatus.payment_verified
    await db.commit()

    await audit.record(
        user,
        AuditAction.APPROVE if body.payment_status == PaymentStatus.paid else AuditAction.UPDATE,
        "order", order.id,
        before=before, after=audit.snapshot(order),
        description=f"Order {order.order_number} payment {body.payment_status.value}",
        ip_address=client_ip(request),
    )
    return await get_order_or_404(db, order.id)

@router.patch("/{order_id}/shipping", response_model=OrderOut)
async def update_order_shipping(
    order_id: str,
    body: ShippingUpdateIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    order = await get_order_or_404(db, order_id)
    before = audit.snapshot(order)
    update_shipping(
        order,
        shipping_amount=body.shipping_amount,
        custom_rate=body.custom_rate,
        collect_on_delivery=body.collect_on_delivery,
        paid_online=body.paid_online,
    )
    await db.commit()

    await audit.record(
        user, AuditAction.UPDATE, "order", order.id,
        before=before, after=audit.snapshot(order),
        description=f"Order {order.order_number} shipping updated, total {order.total_amount}",
        ip_address=client_ip(request),
    )
    return await get_order_or_404(db, order.id)
