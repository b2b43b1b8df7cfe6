# royaltymeds/services/shipping.py
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.core.config import settings
from royaltymeds.models.payment import PaymentConfig, ShippingRate
from royaltymeds.services.pricing import to_decimal


def resolve_shipping_rate(
    parish: str,
    city: Optional[str],
    rates: Iterable[Any],
    default: Any,
) -> Decimal:
    """
    Parish + city/town exact match, else the parish-wide row (no city/town),
    else `default`. Matching is case-sensitive; `is_default` plays no part.
    """
    rates = list(rates)
    if city:
        for r in rates:
            if r.parish == parish and r.city_town == city:
                return to_decimal(r.rate)
    for r in rates:
        if r.parish == parish and r.city_town is None:
            return to_decimal(r.rate)
    return to_decimal(default)


async def get_payment_config(db: AsyncSession) -> PaymentConfig | None:
    q = select(PaymentConfig).order_by(PaymentConfig.created_at).limit(1)
    return (await db.execute(q)).scalar_one_or_none()


async def default_shipping_cost(db: AsyncSession) -> Decimal:
    cfg = await get_payment_config(db)
    if cfg is None:
        return settings.DEFAULT_SHIPPING_COST
    return to_decimal(cfg.default_shipping_cost)


async def lookup_shipping_rate(db: AsyncSession, parish: str, city: Optional[str]) -> Decimal:
    rates = (await db.execute(select(ShippingRate).where(ShippingRate.parish == parish))).scalars().all()
    return resolve_shipping_rate(parish, city, rates, await default_shipping_cost(db))
