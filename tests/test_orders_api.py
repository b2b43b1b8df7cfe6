import re
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from royaltymeds.api.v1._helpers import generate_order_number
from royaltymeds.core.db import SessionLocal
from royaltymeds.models import Drug, InventoryTransaction, PaymentConfig, ShippingRate
from royaltymeds.models.payment import TaxType
from conftest import auth

ADDRESS = {
    "street_line_1": "12 Harbour Street",
    "city": "Downtown",
    "state": "Kingston",
    "country": "Jamaica",
}


def test_order_number_format():
    now = datetime(2026, 1, 12, 10, 30, 55, 123000)
    stamp = str(int(now.timestamp() * 1000))[-6:]
    assert re.fullmatch(rf"ORD-{stamp}[A-Z0-9]{{6}}", generate_order_number(now))
    assert re.fullmatch(rf"RX-{stamp}[A-Z0-9]{{6}}", generate_order_number(now, prefix="RX"))


async def _configure_shipping(session):
    session.add(PaymentConfig(tax_type=TaxType.inclusive, tax_rate=Decimal("15"), default_shipping_cost=Decimal("500")))
    session.add(ShippingRate(parish="Kingston", city_town="Downtown", rate=Decimal("300")))
    session.add(ShippingRate(parish="Kingston", city_town=None, rate=Decimal("200")))
    await session.commit()


async def test_cart_merges_and_prices_sale_items(client, patient, make_drug):
    sale = await make_drug(n=1, is_on_sale=True, sale_price=Decimal("12.00"))
    plain = await make_drug(n=2, unit_price=Decimal("20.00"))

    await client.post("/api/cart", json={"drug_id": sale.id, "quantity": 2}, headers=auth(patient))
    r = await client.post("/api/cart", json={"drug_id": sale.id, "quantity": 3}, headers=auth(patient))
    assert r.status_code == 201
    r = await client.post("/api/cart", json={"drug_id": plain.id, "quantity": 1}, headers=auth(patient))
    cart = r.json()
    assert [(i["drug_id"], i["quantity"]) for i in cart["items"]] == [(sale.id, 5), (plain.id, 1)]
    assert Decimal(cart["items"][0]["unit_price"]) == Decimal("12.00")
    assert Decimal(cart["subtotal"]) == Decimal("80.00")

    r = await client.patch(f"/api/cart/{cart['items'][1]['id']}", json={"quantity": 0}, headers=auth(patient))
    assert r.status_code == 400

    r = await client.delete(f"/api/cart/{cart['items'][1]['id']}", headers=auth(patient))
    assert [i["drug_id"] for i in r.json()["items"]] == [sale.id]

    r = await client.delete("/api/cart", headers=auth(patient))
    assert r.status_code == 204
    r = await client.get("/api/cart", headers=auth(patient))
    assert r.json()["items"] == []


async def test_store_lists_effective_prices(client, make_drug):
    await make_drug(n=1, is_on_sale=True, sale_price=Decimal("0"), sale_discount_percent=Decimal("25"))
    await make_drug(n=2)

    r = await client.get("/api/store/drugs")
    prices = {d["sku"]: Decimal(d["effective_price"]) for d in r.json()}
    assert prices == {"SKU-0001": Decimal("15.00"), "SKU-0002": Decimal("20.00")}

    r = await client.get("/api/store/sale-items")
    assert [d["sku"] for d in r.json()] == ["SKU-0001"]


async def test_shipping_quote(client, session):
    await _configure_shipping(session)
    r = await client.get("/api/store/shipping-rate", params={"parish": "Kingston", "city": "Uptown"})
    assert Decimal(r.json()["rate"]) == Decimal("200")
    r = await client.get("/api/store/shipping-rate", params={"parish": "St. Ann"})
    assert Decimal(r.json()["rate"]) == Decimal("500")


async def test_checkout_totals(client, session, patient, make_drug):
    await _configure_shipping(session)
    drug = await make_drug(unit_price=Decimal("250.00"))
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 4}, headers=auth(patient))

    r = await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))
    assert r.status_code == 201, r.text
    order = r.json()
    assert order["order_number"].startswith("ORD-")
    assert len(order["order_number"]) == 16
    assert order["status"] == "payment_pending"
    assert order["payment_status"] == "pending"
    assert Decimal(order["subtotal_amount"]) == Decimal("1000")
    assert Decimal(order["tax_amount"]) == 0
    assert Decimal(order["shipping_amount"]) == Decimal("300")
    assert Decimal(order["total_amount"]) == Decimal("1300")

    r = await client.get("/api/cart", headers=auth(patient))
    assert r.json()["items"] == []


async def test_checkout_collect_on_delivery(client, session, patient, make_drug):
    await _configure_shipping(session)
    drug = await make_drug(unit_price=Decimal("1000.00"))
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 1}, headers=auth(patient))

    r = await client.post(
        "/api/orders",
        json={"shipping_address": {**ADDRESS, "city": "Uptown"}, "collect_on_delivery": True},
        headers=auth(patient),
    )
    order = r.json()
    assert order["shipping_collect_on_delivery"] is True
    assert Decimal(order["shipping_amount"]) == Decimal("200")
    assert Decimal(order["total_amount"]) == Decimal("1000")


async def test_subtotal_is_sum_of_rounded_lines(client, session, patient, make_drug):
    await _configure_shipping(session)
    half_off = dict(unit_price=Decimal("0.99"), is_on_sale=True, sale_discount_percent=Decimal("50"))
    first = await make_drug(n=1, **half_off)
    second = await make_drug(n=2, **half_off)
    await client.post("/api/cart", json={"drug_id": first.id, "quantity": 1}, headers=auth(patient))
    r = await client.post("/api/cart", json={"drug_id": second.id, "quantity": 1}, headers=auth(patient))
    cart = r.json()
    assert [Decimal(i["line_total"]) for i in cart["items"]] == [Decimal("0.50"), Decimal("0.50")]
    assert Decimal(cart["subtotal"]) == Decimal("1.00")

    r = await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))
    order = r.json()
    assert Decimal(order["subtotal_amount"]) == Decimal("1.00")
    assert Decimal(order["subtotal_amount"]) == sum(Decimal(i["total_price"]) for i in order["items"])
    assert Decimal(order["total_amount"]) == Decimal("301.00")


async def test_pharmacist_confirmation_items_start_pending(client, patient, make_drug):
    drug = await make_drug(pharm_confirm=True)
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 1}, headers=auth(patient))
    r = await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))
    assert r.json()["status"] == "pending"
    assert r.json()["items"][0]["pharm_confirm"] is True


async def test_checkout_validation(client, patient, make_drug):
    r = await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))
    assert r.status_code == 400
    assert r.json() == {"error": "Cart is empty"}

    drug = await make_drug()
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 1}, headers=auth(patient))
    r = await client.post(
        "/api/orders",
        json={"shipping_address": {**ADDRESS, "street_line_1": ""}},
        headers=auth(patient),
    )
    assert r.status_code == 400
    assert "street_line_1" in r.json()["error"]


async def test_receipt_upload(client, patient, make_drug, uploads):
    drug = await make_drug()
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 1}, headers=auth(patient))
    order = (await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))).json()

    r = await client.post(
        f"/api/orders/{order['id']}/receipt",
        files={"file": ("receipt.jpg", b"\xff\xd8 receipt", "image/jpeg")},
        headers=auth(patient),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["payment_method"] == "bank_transfer"
    assert body["payment_status"] == "pending"
    assert body["receipt_url"]


async def test_admin_shipping_update_recomputes_total(client, session, patient, admin, make_drug):
    await _configure_shipping(session)
    drug = await make_drug(unit_price=Decimal("100.00"))
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 10}, headers=auth(patient))
    order = (await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))).json()
    assert Decimal(order["total_amount"]) == Decimal("1300")

    url = f"/api/admin/orders/{order['id']}/shipping"
    r = await client.patch(url, json={"custom_rate": "750"}, headers=auth(admin))
    body = r.json()
    assert Decimal(body["shipping_custom_rate"]) == Decimal("750")
    assert Decimal(body["total_amount"]) == Decimal("1750")

    r = await client.patch(url, json={"collect_on_delivery": True}, headers=auth(admin))
    assert Decimal(r.json()["total_amount"]) == Decimal("1000")

    r = await client.patch(url, json={"collect_on_delivery": False, "paid_online": True}, headers=auth(admin))
    body = r.json()
    assert body["shipping_paid_online"] is True
    assert Decimal(body["total_amount"]) == Decimal("1750")

    r = await client.patch(url, json={"shipping_amount": "-1"}, headers=auth(admin))
    assert r.status_code == 400


async def test_shipping_order_decrements_stock(client, patient, admin, make_drug):
    drug = await make_drug(quantity_on_hand=14, reorder_level=10)
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 5}, headers=auth(patient))
    order = (await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))).json()

    r = await client.get(f"/api/admin/orders/{order['id']}/inventory-check", headers=auth(admin))
    assert r.json()["all_available"] is True

    r = await client.patch(f"/api/admin/orders/{order['id']}/status", json={"status": "shipped"}, headers=auth(admin))
    assert r.status_code == 200, r.text
    assert r.json()["order"]["status"] == "shipped"
    assert r.json()["low_stock"] == [drug.name]

    # shipping twice does not take stock twice
    await client.patch(f"/api/admin/orders/{order['id']}/status", json={"status": "shipped"}, headers=auth(admin))

    async with SessionLocal() as s:
        stocked = (await s.execute(select(Drug).where(Drug.id == drug.id))).scalar_one()
        txs = (await s.execute(select(InventoryTransaction))).scalars().all()
    assert stocked.quantity_on_hand == 9
    assert stocked.low_stock_alert is True
    assert [(t.quantity_before, t.quantity_after, t.quantity_change) for t in txs] == [(14, 9, -5)]


async def test_payment_status(client, patient, admin, make_drug):
    drug = await make_drug()
    await client.post("/api/cart", json={"drug_id": drug.id, "quantity": 1}, headers=auth(patient))
    order = (await client.post("/api/orders", json={"shipping_address": ADDRESS}, headers=auth(patient))).json()

    r = await client.patch(
        f"/api/admin/orders/{order['id']}/payment-status",
        json={"payment_status": "paid"},
        headers=auth(admin),
    )
    assert r.json()["payment_status"] == "paid"
    assert r.json()["status"] == "payment_verified"

    r = await client.get(f"/api/orders/{order['id']}", headers=auth(patient))
    assert r.json()["payment_status"] == "paid"
