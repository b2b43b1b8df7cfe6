from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.core.db import get_db
from royaltymeds.models.drug import Drug, DrugStatus
from royaltymeds.schemas.settings import ShippingQuoteOut
from royaltymeds.schemas.store import DrugOut
from royaltymeds.services.pricing import effective_unit_price, money
from royaltymeds.services.shipping import lookup_shipping_rate

router = APIRouter(prefix="/api/store", tags=["store"])

def drug_out(drug: Drug) -> DrugOut:
    out = DrugOut.model_validate(drug)
    out.effective_price = money(effective_unit_price(drug))
    return out

@router.get("/drugs", response_model=List[DrugOut])
async def list_drugs(
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    q = select(Drug).where(Drug.status == DrugStatus.active).order_by(Drug.name)
    if category:
        q = q.where(Drug.category == category)
    if search:
        like = f"%{search}%"
        q = q.where(or_(Drug.name.ilike(like), Drug.manufacturer.ilike(like)))
    rows = (await db.execute(q.offset(offset).limit(limit))).scalars().all()
    return [drug_out(d) for d in rows]

@router.get("/sale-items", response_model=List[DrugOut])
async def list_sale_items(db: AsyncSession = Depends(get_db)):
    q = (
        select(Drug)
        .where(Drug.status == DrugStatus.active, Drug.is_on_sale.is_(True))
        .order_by(Drug.name)
    )
    return [drug_out(d) for d in (await db.execute(q)).scalars().all()]

@router.get("/shipping-rate", response_model=ShippingQuoteOut)
async def quote_shipping(
    parish: str = Query(..., min_length=1),
    city: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Delivery cost shown at checkout before the order is placed."""
    return ShippingQuoteOut(parish=parish, city=city, rate=await lookup_shipping_rate(db, parish, city))
