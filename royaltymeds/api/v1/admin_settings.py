from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.core.db import get_db
from royaltymeds.api.deps import admin_only, client_ip
from royaltymeds.models.audit import AuditAction
from royaltymeds.models.drug import Drug
from royaltymeds.models.payment import PaymentConfig, ShippingRate
from royaltymeds.models.user import User
from royaltymeds.schemas.settings import (
    PaymentConfigIn, PaymentConfigOut, ShippingRateIn, ShippingRateOut, ShippingRatePatch,
)
from royaltymeds.schemas.store import DrugOut, DrugSaleIn
from royaltymeds.services import audit
from royaltymeds.services.shipping import get_payment_config
from .store import drug_out

router = APIRouter(prefix="/api/admin", tags=["admin - settings"])


async def _rate_or_404(db: AsyncSession, rate_id: str) -> ShippingRate:
    rate = (await db.execute(select(ShippingRate).where(ShippingRate.id == rate_id))).scalar_one_or_none()
    if not rate:
        raise HTTPException(status_code=404, detail="Shipping rate not found")
    return rate

# ---------- payment config ----------
@router.get("/payment-config", response_model=PaymentConfigOut)
async def read_payment_config(_: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    cfg = await get_payment_config(db)
    return cfg if cfg else PaymentConfigOut()

@router.put("/payment-config", response_model=PaymentConfigOut)
async def save_payment_config(
    body: PaymentConfigIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    cfg = await get_payment_config(db)
    before = audit.snapshot(cfg)
    if cfg is None:
        cfg = PaymentConfig()
        db.add(cfg)
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(cfg, k, v)
    await db.commit()
    await db.refresh(cfg)

    await audit.record(
        user, AuditAction.CREATE if before is None else AuditAction.UPDATE, "payment_config", cfg.id,
        before=before, after=audit.snapshot(cfg),
        description="Payment configuration saved",
        ip_address=client_ip(request),
    )
    return cfg

# ---------- shipping rates ----------
@router.get("/shipping-rates", response_model=List[ShippingRateOut])
async def list_shipping_rates(_: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    q = select(ShippingRate).order_by(ShippingRate.parish, ShippingRate.city_town)
    return list((await db.execute(q)).scalars().all())

@router.post("/shipping-rates", response_model=ShippingRateOut, status_code=201)
async def create_shipping_rate(
    body: ShippingRateIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rate = ShippingRate(**body.model_dump())
    db.add(rate)
    await db.commit()
    await db.refresh(rate)

    await audit.record(
        user, AuditAction.CREATE, "shipping_rate", rate.id,
        after=audit.snapshot(rate),
        description=f"Shipping rate for {rate.parish}{' / ' + rate.city_town if rate.city_town else ''} created",
        ip_address=client_ip(request),
    )
    return rate

@router.patch("/shipping-rates/{rate_id}", response_model=ShippingRateOut)
async def update_shipping_rate(
    rate_id: str,
    patch: ShippingRatePatch,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rate = await _rate_or_404(db, rate_id)
    before = audit.snapshot(rate)
    for k, v in patch.model_dump(exclude_unset=True).items():
        setattr(rate, k, v)
    await db.commit()
    await db.refresh(rate)

    await audit.record(
        user, AuditAction.UPDATE, "shipping_rate", rate.id,
        before=before, after=audit.snapshot(rate),
        description=f"Shipping rate for {rate.parish} updated",
        ip_address=client_ip(request),
    )
    return rate

@router.delete("/shipping-rates/{rate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shipping_rate(
    rate_id: str,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    rate = await _rate_or_404(db, rate_id)
    before = audit.snapshot(rate)
    await db.delete(rate)
    await db.commit()

    await audit.record(
        user, AuditAction.DELETE, "shipping_rate", rate_id,
        before=before,
        description=f"Shipping rate for {before['parish']} deleted",
        ip_address=client_ip(request),
    )

# ---------- inventory ----------
@router.get("/inventory/low-stock", response_model=List[DrugOut])
async def list_low_stock(_: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    q = select(Drug).where(Drug.low_stock_alert.is_(True)).order_by(Drug.quantity_on_hand)
    return [drug_out(d) for d in (await db.execute(q)).scalars().all()]

@router.patch("/inventory/{drug_id}/sale", response_model=DrugOut)
async def set_drug_sale(
    drug_id: str,
    body: DrugSaleIn,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    drug = (await db.execute(select(Drug).where(Drug.id == drug_id))).scalar_one_or_none()
    if not drug:
        raise HTTPException(status_code=404, detail="Product not found")
    before = audit.snapshot(drug)
    drug.is_on_sale = body.is_on_sale
    if body.is_on_sale:
        drug.sale_price = body.sale_price
        drug.sale_discount_percent = body.sale_discount_percent
    else:
        drug.sale_price = None
        drug.sale_discount_percent = None
    await db.commit()
    await db.refresh(drug)

    await audit.record(
        user, AuditAction.UPDATE, "otc_drug", drug.id,
        before=before, after=audit.snapshot(drug),
        description=f"{drug.name} sale {'started' if drug.is_on_sale else 'ended'}",
        ip_address=client_ip(request),
    )
    return drug_out(drug)
