# royaltymeds/services/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Tuple

from royaltymeds.models.payment import TaxType

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def effective_unit_price(drug) -> Decimal:
    """
    Price a single unit of a catalog drug is sold at right now.

    An explicit sale price beats a discount percent; a sale flag with neither
    set falls back to the list price. The result is not rounded.
    """
    unit_price = to_decimal(drug.unit_price)
    if not drug.is_on_sale:
        return unit_price

    sale_price = to_decimal(drug.sale_price)
    if sale_price > 0:
        return sale_price

    pct = to_decimal(drug.sale_discount_percent)
    if pct > 0:
        return unit_price * (1 - pct / 100)
    return unit_price


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Any) -> str:
    return f"${money(value):,.2f}"


@dataclass(frozen=True)
class ListPrice:
    """A line sold at a fixed price, such as a priced prescription medication."""
    unit_price: Decimal
    is_on_sale: bool = False
    sale_price: Optional[Decimal] = None
    sale_discount_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total: Decimal
    collect_on_delivery: bool


def compute_order_totals(
    lines: Iterable[Tuple[Any, int]],
    tax_type: TaxType | str,
    shipping: Any,
    pay_on_delivery: bool = False,
) -> OrderTotals:
    """`lines` are (drug, quantity) pairs; anything priced like a drug works, e.g. `ListPrice`."""
    TaxType(tax_type)
    # each line is rounded to the cent before summing, matching the stored line totals
    subtotal = sum((money(effective_unit_price(drug) * qty) for drug, qty in lines), ZERO)
    # inclusive prices already carry the tax, so no tax line is ever added
    tax_amount = ZERO
    shipping_amount = to_decimal(shipping)
    total = subtotal + tax_amount + (ZERO if pay_on_delivery else shipping_amount)
    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        shipping_amount=shipping_amount,
        total=total,
        collect_on_delivery=pay_on_delivery,
    )


def order_total(order) -> Decimal:
    shipping = ZERO if order.shipping_collect_on_delivery else to_decimal(order.shipping_amount)
    return to_decimal(order.subtotal_amount) + to_decimal(order.tax_amount) + shipping
