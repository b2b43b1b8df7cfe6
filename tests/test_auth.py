from conftest import PASSWORD, auth


async def test_register_login_me(client):
    r = await client.post(
        "/auth/register",
        json={"full_name": "New Patient", "email": "New@RoyaltyMeds.com", "password": "hunter22"},
    )
    assert r.status_code == 201, r.text
    assert r.json()["role"] == "patient"
    assert r.json()["email"] == "new@royaltymeds.com"

    r = await client.post("/auth/login", json={"email": "new@royaltymeds.com", "password": "hunter22"})
    token = r.json()["access_token"]

    r = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.json()["full_name"] == "New Patient"


async def test_duplicate_email_and_admin_signup_rejected(client, patient):
    r = await client.post(
        "/auth/register",
        json={"full_name": "Dup", "email": patient.email, "password": PASSWORD},
    )
    assert r.status_code == 400

    r = await client.post(
        "/auth/register",
        json={"full_name": "Sneaky", "email": "sneaky@royaltymeds.com", "password": PASSWORD, "role": "admin"},
    )
    assert r.status_code == 400


async def test_bad_credentials_and_tokens(client, patient):
    r = await client.post("/auth/login", json={"email": patient.email, "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid credentials"}

    r = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401

    r = await client.get("/auth/me", headers=auth(patient))
    assert r.json()["id"] == patient.id


async def test_role_guard(client, patient, doctor):
    r = await client.get("/api/doctor/prescriptions", headers=auth(patient))
    assert r.status_code == 403
    r = await client.get("/api/patient/prescriptions", headers=auth(doctor))
    assert r.status_code == 403


async def test_health(client):
    r = await client.get("/health")
    assert r.json() == {"status": "ok"}
