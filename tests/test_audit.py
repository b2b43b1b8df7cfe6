import csv
import io
from datetime import datetime, timedelta
from decimal import Decimal

from royaltymeds.models.audit import AuditAction, AuditLog
from royaltymeds.services import audit
from conftest import auth


async def _seed_logs(session, admin):
    base = datetime(2026, 3, 1, 9, 0)
    rows = [
        AuditLog(user_id=admin.id, user_email=admin.email, action=AuditAction.UPDATE, resource_type="order",
                 resource_id="o-1", description='Order "ORD-1" shipped', created_at=base),
        AuditLog(user_id=admin.id, user_email=admin.email, action=AuditAction.APPROVE, resource_type="prescription",
                 resource_id="rx-1", before={"status": "pending"}, after={"status": "approved"},
                 created_at=base + timedelta(days=1)),
        AuditLog(user_id="someone-else", user_email="other@royaltymeds.com", action=AuditAction.DELETE,
                 resource_type="shipping_rate", resource_id="r-1", created_at=base + timedelta(days=2)),
    ]
    session.add_all(rows)
    await session.commit()
    return rows


async def test_list_filters_and_pagination(client, session, admin):
    await _seed_logs(session, admin)

    r = await client.get("/api/admin/audit-logs", params={"page_size": 2}, headers=auth(admin))
    body = r.json()
    assert body["pagination"] == {"page": 1, "page_size": 2, "total": 3, "total_pages": 2}
    assert [x["resource_type"] for x in body["data"]] == ["shipping_rate", "prescription"]

    r = await client.get("/api/admin/audit-logs", params={"action": "APPROVE"}, headers=auth(admin))
    [log] = r.json()["data"]
    assert log["before"] == {"status": "pending"}
    assert log["after"] == {"status": "approved"}

    r = await client.get("/api/admin/audit-logs", params={"user_id": admin.id, "resource_type": "order"}, headers=auth(admin))
    assert [x["resource_id"] for x in r.json()["data"]] == ["o-1"]

    r = await client.get(
        "/api/admin/audit-logs",
        params={"date_from": "2026-03-02", "date_to": "2026-03-02"},
        headers=auth(admin),
    )
    assert [x["resource_id"] for x in r.json()["data"]] == ["rx-1"]

    r = await client.get(f"/api/admin/audit-logs/{log['id']}", headers=auth(admin))
    assert r.json()["action"] == "APPROVE"


async def test_csv_export(client, session, admin):
    await _seed_logs(session, admin)
    r = await client.get("/api/admin/audit-logs/export", params={"resource_type": "order"}, headers=auth(admin))
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment" in r.headers["content-disposition"]

    lines = r.text.splitlines()
    assert lines[0] == '"ID","Timestamp","User Email","Action","Resource Type","Resource ID","Details"'
    [row] = list(csv.reader(io.StringIO("\n".join(lines[1:]))))
    assert row[2:] == ["pharmacist@royaltymeds.com", "UPDATE", "order", "o-1", 'Order "ORD-1" shipped']


async def test_audit_logs_are_admin_only(client, patient):
    r = await client.get("/api/admin/audit-logs", headers=auth(patient))
    assert r.status_code == 403
    r = await client.get("/api/admin/audit-logs")
    assert r.status_code == 401


async def test_audit_failure_does_not_undo_change(client, session, admin, monkeypatch):
    def broken_session():
        raise RuntimeError("audit database unavailable")

    monkeypatch.setattr(audit, "SessionLocal", broken_session)
    r = await client.post(
        "/api/admin/shipping-rates",
        json={"parish": "St. Ann", "rate": "450"},
        headers=auth(admin),
    )
    assert r.status_code == 201
    monkeypatch.undo()

    r = await client.get("/api/admin/shipping-rates", headers=auth(admin))
    assert [Decimal(x["rate"]) for x in r.json()] == [Decimal("450")]
    r = await client.get("/api/admin/audit-logs", headers=auth(admin))
    assert r.json()["data"] == []


async def test_snapshot_is_plain_json(session, admin):
    snap = audit.snapshot(admin)
    assert snap["email"] == "pharmacist@royaltymeds.com"
    assert snap["role"] == "admin"
    assert isinstance(snap["created_at"], str)
    assert audit.snapshot(None) is None
