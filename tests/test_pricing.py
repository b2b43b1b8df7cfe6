from decimal import Decimal
from types import SimpleNamespace

import pytest

from royaltymeds.models.payment import TaxType
from royaltymeds.services.pricing import (
    ListPrice, compute_order_totals, effective_unit_price, format_currency, money, order_total,
)


def drug(unit_price="20.00", is_on_sale=False, sale_price=None, sale_discount_percent=None):
    return SimpleNamespace(
        unit_price=Decimal(unit_price),
        is_on_sale=is_on_sale,
        sale_price=Decimal(sale_price) if sale_price is not None else None,
        sale_discount_percent=Decimal(sale_discount_percent) if sale_discount_percent is not None else None,
    )


def test_not_on_sale_uses_unit_price_even_with_sale_fields():
    assert effective_unit_price(drug(sale_price="12.00", sale_discount_percent="25")) == Decimal("20.00")


def test_sale_price_beats_discount_percent():
    d = drug(is_on_sale=True, sale_price="12.00", sale_discount_percent="25")
    assert effective_unit_price(d) == Decimal("12.00")


def test_discount_percent_applies_when_sale_price_is_zero():
    d = drug(is_on_sale=True, sale_price="0", sale_discount_percent="25")
    assert effective_unit_price(d) == Decimal("15.00")


def test_on_sale_without_price_or_percent_falls_back():
    assert effective_unit_price(drug(is_on_sale=True)) == Decimal("20.00")


def test_resolver_does_not_round():
    d = drug(unit_price="10.00", is_on_sale=True, sale_discount_percent="33.33")
    assert effective_unit_price(d) == Decimal("6.6670")
    assert money(effective_unit_price(d)) == Decimal("6.67")


def test_format_currency():
    assert format_currency(Decimal("1000")) == "$1,000.00"
    assert format_currency(Decimal("2.005")) == "$2.01"


@pytest.mark.parametrize("tax_type", [TaxType.none, TaxType.inclusive])
def test_tax_is_never_added(tax_type):
    totals = compute_order_totals([(drug(unit_price="250.00"), 4)], tax_type, Decimal("300"))
    assert totals.subtotal == Decimal("1000.00")
    assert totals.tax_amount == 0
    assert totals.total == Decimal("1300.00")


def test_pay_on_delivery_keeps_shipping_out_of_total():
    totals = compute_order_totals(
        [(drug(unit_price="500.00"), 1), (drug(unit_price="20.00", is_on_sale=True, sale_price="12.00"), 5),
         (drug(unit_price="1.00"), 440)],
        "inclusive",
        Decimal("300"),
        pay_on_delivery=True,
    )
    assert totals.subtotal == Decimal("1000.00")
    assert totals.shipping_amount == Decimal("300")
    assert totals.collect_on_delivery is True
    assert totals.total == totals.subtotal


def test_subtotal_sums_lines_rounded_to_the_cent():
    half_off = drug(unit_price="0.99", is_on_sale=True, sale_discount_percent="50")
    totals = compute_order_totals([(half_off, 1), (half_off, 1)], TaxType.none, 0)
    assert totals.subtotal == Decimal("1.00")


def test_list_price_lines():
    totals = compute_order_totals([(ListPrice(Decimal("1500.00")), 1), (ListPrice(Decimal("250.50")), 1)], "none", 500)
    assert totals.subtotal == Decimal("1750.50")
    assert totals.total == Decimal("2250.50")


def test_unknown_tax_type_is_rejected():
    with pytest.raises(ValueError):
        compute_order_totals([], "exclusive", 0)


def test_order_total_follows_collect_on_delivery_flag():
    order = SimpleNamespace(
        subtotal_amount=Decimal("1000.00"),
        tax_amount=Decimal("0"),
        shipping_amount=Decimal("300.00"),
        shipping_collect_on_delivery=False,
    )
    assert order_total(order) == Decimal("1300.00")
    order.shipping_collect_on_delivery = True
    assert order_total(order) == Decimal("1000.00")
