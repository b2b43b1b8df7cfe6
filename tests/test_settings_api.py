from decimal import Decimal

from conftest import auth


async def test_payment_config_roundtrip(client, admin):
    r = await client.get("/api/admin/payment-config", headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["id"] is None
    assert r.json()["tax_type"] == "none"

    r = await client.put(
        "/api/admin/payment-config",
        json={"bank_name": "NCB", "tax_type": "inclusive", "tax_rate": "15", "default_shipping_cost": "500"},
        headers=auth(admin),
    )
    assert r.status_code == 200
    first_id = r.json()["id"]

    r = await client.put("/api/admin/payment-config", json={"bank_name": "Scotiabank"}, headers=auth(admin))
    body = r.json()
    assert body["id"] == first_id
    assert body["bank_name"] == "Scotiabank"
    assert Decimal(body["default_shipping_cost"]) == Decimal("500")

    r = await client.get("/api/admin/audit-logs", params={"resource_type": "payment_config"}, headers=auth(admin))
    assert sorted(x["action"] for x in r.json()["data"]) == ["CREATE", "UPDATE"]


async def test_shipping_rate_crud(client, admin):
    r = await client.post(
        "/api/admin/shipping-rates",
        json={"parish": "Kingston", "city_town": "Downtown", "rate": "300", "is_default": True},
        headers=auth(admin),
    )
    assert r.status_code == 201
    rate_id = r.json()["id"]

    r = await client.patch(f"/api/admin/shipping-rates/{rate_id}", json={"rate": "350"}, headers=auth(admin))
    assert Decimal(r.json()["rate"]) == Decimal("350")

    r = await client.get("/api/store/shipping-rate", params={"parish": "Kingston", "city": "Downtown"})
    assert Decimal(r.json()["rate"]) == Decimal("350")

    r = await client.delete(f"/api/admin/shipping-rates/{rate_id}", headers=auth(admin))
    assert r.status_code == 204
    r = await client.delete(f"/api/admin/shipping-rates/{rate_id}", headers=auth(admin))
    assert r.status_code == 404


async def test_drug_sale_toggle(client, admin, make_drug):
    drug = await make_drug()
    r = await client.patch(
        f"/api/admin/inventory/{drug.id}/sale",
        json={"is_on_sale": True, "sale_discount_percent": "25"},
        headers=auth(admin),
    )
    assert Decimal(r.json()["effective_price"]) == Decimal("15.00")

    r = await client.patch(f"/api/admin/inventory/{drug.id}/sale", json={"is_on_sale": False}, headers=auth(admin))
    body = r.json()
    assert Decimal(body["effective_price"]) == Decimal("20.00")
    assert body["sale_discount_percent"] is None


async def test_low_stock_list(client, admin, patient, make_drug):
    await make_drug(n=1, name="Plenty")
    await make_drug(n=2, name="Scarce", quantity_on_hand=3, low_stock_alert=True)

    r = await client.get("/api/admin/inventory/low-stock", headers=auth(admin))
    assert r.status_code == 200
    assert [d["name"] for d in r.json()] == ["Scarce"]

    r = await client.get("/api/admin/inventory/low-stock", headers=auth(patient))
    assert r.status_code == 403


async def test_blank_city_rate_covers_whole_parish(client, admin):
    await client.put("/api/admin/payment-config", json={"default_shipping_cost": "500"}, headers=auth(admin))
    r = await client.post(
        "/api/admin/shipping-rates",
        json={"parish": "Kingston", "city_town": "", "rate": "200"},
        headers=auth(admin),
    )
    assert r.status_code == 201
    assert r.json()["city_town"] is None
    rate_id = r.json()["id"]

    r = await client.get("/api/store/shipping-rate", params={"parish": "Kingston", "city": "Uptown"})
    assert Decimal(r.json()["rate"]) == Decimal("200")

    r = await client.patch(
        f"/api/admin/shipping-rates/{rate_id}", json={"city_town": "  Uptown  "}, headers=auth(admin),
    )
    assert r.json()["city_town"] == "Uptown"
    r = await client.patch(f"/api/admin/shipping-rates/{rate_id}", json={"city_town": "   "}, headers=auth(admin))
    assert r.json()["city_town"] is None
