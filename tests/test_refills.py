import pytest

from royaltymeds.models.prescription import Prescription, PrescriptionItem, PrescriptionStatus
from royaltymeds.models.refill import RefillRequest, RefillStatus
from royaltymeds.services.refills import is_refillable
from conftest import auth


@pytest.mark.parametrize("status,expected", [
    (PrescriptionStatus.partially_filled, True),
    (PrescriptionStatus.pending, False),
    (PrescriptionStatus.approved, False),
    (PrescriptionStatus.processing, False),
    (PrescriptionStatus.filled, False),
    (PrescriptionStatus.rejected, False),
])
def test_refill_gate(status, expected):
    assert is_refillable(Prescription(status=status)) is expected


async def _seed(session, patient, status=PrescriptionStatus.partially_filled, **kw) -> Prescription:
    rx = Prescription(prescription_number="WEDJAN14-120000", patient_id=patient.id, status=status, **kw)
    rx.items.append(PrescriptionItem(position=0, medication_name="Lisinopril", dosage="10mg", total_amount=30, quantity=10))
    session.add(rx)
    await session.commit()
    return rx


async def test_patient_requests_refill(client, session, patient):
    rx = await _seed(session, patient)
    r = await client.post(f"/api/patient/prescriptions/{rx.id}/request-refill", headers=auth(patient))
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "pending"
    assert body["reason"] == "Refill requested"

    r = await client.post(f"/api/patient/prescriptions/{rx.id}/request-refill", headers=auth(patient))
    assert r.status_code == 400
    assert "already pending" in r.json()["error"]


async def test_refill_rejected_for_non_partial_prescription(client, session, patient):
    rx = await _seed(session, patient, status=PrescriptionStatus.filled)
    r = await client.post(f"/api/patient/prescriptions/{rx.id}/request-refill", headers=auth(patient))
    assert r.status_code == 400


async def test_refill_limit_and_flag(client, session, patient):
    limited = await _seed(session, patient, refill_count=2, refill_limit=2)
    r = await client.post(f"/api/patient/prescriptions/{limited.id}/request-refill", headers=auth(patient))
    assert r.status_code == 400
    assert "limit" in r.json()["error"]

    locked = await _seed(session, patient, is_refillable=False)
    r = await client.post(f"/api/patient/prescriptions/{locked.id}/request-refill", headers=auth(patient))
    assert r.status_code == 400


async def test_only_owner_may_request(client, session, patient, other_patient):
    rx = await _seed(session, patient)
    r = await client.post(f"/api/patient/prescriptions/{rx.id}/request-refill", headers=auth(other_patient))
    assert r.status_code == 403
    assert r.json() == {"error": "Unauthorized"}


async def test_approve_and_process_refill(client, session, patient, admin):
    rx = await _seed(session, patient, refill_limit=3)
    r = await client.post(
        f"/api/patient/prescriptions/{rx.id}/request-refill",
        json={"reason": "Running low"},
        headers=auth(patient),
    )
    req_id = r.json()["id"]

    # nothing approved yet
    r = await client.post(f"/api/admin/prescriptions/{rx.id}/process-refill", headers=auth(admin))
    assert r.status_code == 400

    r = await client.patch(
        f"/api/admin/prescriptions/refill-requests/{req_id}",
        json={"status": "approved"},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"
    assert r.json()["reviewed_by"] == admin.id

    r = await client.post(
        f"/api/admin/prescriptions/{rx.id}/process-refill",
        json={"reset_quantities": True},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "processing"
    assert body["refill_count"] == 1
    assert body["last_refilled_at"] is not None
    assert body["items"][0]["quantity"] == 30

    r = await client.get("/api/patient/refill-requests", headers=auth(patient))
    [req] = r.json()
    assert req["status"] == "completed"
    assert req["refill_number"] == 1


async def test_reject_refill_with_reason(client, session, patient, admin):
    rx = await _seed(session, patient)
    req = RefillRequest(prescription_id=rx.id, patient_id=patient.id, reason="Refill requested")
    session.add(req)
    await session.commit()

    r = await client.patch(
        f"/api/admin/prescriptions/refill-requests/{req.id}",
        json={"status": "rejected", "rejection_reason": "See your doctor first"},
        headers=auth(admin),
    )
    assert r.status_code == 200
    assert r.json()["rejection_reason"] == "See your doctor first"

    r = await client.patch(
        f"/api/admin/prescriptions/refill-requests/{req.id}",
        json={"status": "approved"},
        headers=auth(admin),
    )
    assert r.status_code == 400

    r = await client.get("/api/admin/prescriptions/refill-requests?status=rejected", headers=auth(admin))
    assert [x["id"] for x in r.json()] == [req.id]
    assert RefillStatus(r.json()[0]["status"]) == RefillStatus.rejected
