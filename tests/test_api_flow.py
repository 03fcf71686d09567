from serena.seed import DEMO_EMAIL, DEMO_PASSWORD, seed_demo
from tests.conftest import PASSWORD, auth_header, patient_data


def _login(client, email, password):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return auth_header(resp.json()["token"])


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"
    assert resp.json()["environment"] == "development"


def test_booking_conflict_end_to_end(client, alice):
    headers = _login(client, alice.email, PASSWORD)
    patient = client.post("/api/patients", json=patient_data(), headers=headers).json()["patient"]

    first = client.post(
        "/api/appointments",
        json={"patientId": patient["id"], "date": "2030-03-14T10:00:00", "duration": 50, "type": "presencial"},
        headers=headers,
    )
    assert first.status_code == 201
    assert first.json()["appointment"]["status"] == "agendado"
    assert first.json()["appointment"]["patientName"] == "Maria Silva"

    second = client.post(
        "/api/appointments",
        json={"patientId": patient["id"], "date": "2030-03-14T10:20:00", "duration": 50, "type": "presencial"},
        headers=headers,
    )
    assert second.status_code == 409
    assert second.json() == {"error": "Conflito de horário", "details": "Já existe um agendamento neste horário"}

    listed = client.get("/api/appointments", params={"startDate": "2030-03-14", "endDate": "2030-03-14"}, headers=headers)
    assert [a["id"] for a in listed.json()] == [first.json()["appointment"]["id"]]


def test_timezone_aware_dates_are_stored_in_utc(client, alice):
    headers = _login(client, alice.email, PASSWORD)
    patient = client.post("/api/patients", json=patient_data(), headers=headers).json()["patient"]

    resp = client.post(
        "/api/appointments",
        json={"patientId": patient["id"], "date": "2030-03-14T10:00:00-03:00", "duration": 50, "type": "online"},
        headers=headers,
    )
    assert resp.json()["appointment"]["date"] == "2030-03-14T13:00:00"


def test_appointment_duration_bounds(client, alice):
    headers = _login(client, alice.email, PASSWORD)
    patient = client.post("/api/patients", json=patient_data(), headers=headers).json()["patient"]
    for duration in (10, 181):
        resp = client.post(
            "/api/appointments",
            json={"patientId": patient["id"], "date": "2030-03-14T10:00:00", "duration": duration, "type": "online"},
            headers=headers,
        )
        assert resp.status_code == 400


def test_session_and_payment_crud(client, alice):
    headers = _login(client, alice.email, PASSWORD)
    patient = client.post("/api/patients", json=patient_data(), headers=headers).json()["patient"]

    session = client.post(
        "/api/sessions",
        json={
            "patientId": patient["id"],
            "date": "2030-03-10T15:00:00",
            "duration": 50,
            "type": "online",
            "mood": 7,
            "objectives": ["Reduzir ansiedade"],
            "techniques": ["Respiração diafragmática"],
        },
        headers=headers,
    )
    assert session.status_code == 201
    session = session.json()["session"]
    assert session["objectives"] == ["Reduzir ansiedade"]
    assert session["attachments"] == []

    payment = client.post(
        "/api/payments",
        json={
            "patientId": patient["id"],
            "sessionId": session["id"],
            "amount": 150.5,
            "date": "2030-03-10T16:00:00",
            "method": "pix",
        },
        headers=headers,
    )
    assert payment.status_code == 201
    payment = payment.json()["payment"]
    assert payment["status"] == "pendente"
    assert payment["amount"] == 150.5

    updated = client.put(
        f"/api/payments/{payment['id']}",
        json={
            "patientId": patient["id"],
            "sessionId": session["id"],
            "amount": 150.5,
            "date": "2030-03-10T16:00:00",
            "method": "pix",
            "status": "pago",
        },
        headers=headers,
    )
    assert updated.json()["payment"]["status"] == "pago"

    assert client.get("/api/payments", params={"status": "pago"}, headers=headers).json()[0]["id"] == payment["id"]
    assert client.delete(f"/api/sessions/{session['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/payments/{payment['id']}", headers=headers).json()["sessionId"] is None


def test_payment_amount_with_three_decimals_rejected(client, alice):
    headers = _login(client, alice.email, PASSWORD)
    patient = client.post("/api/patients", json=patient_data(), headers=headers).json()["patient"]
    resp = client.post(
        "/api/payments",
        json={"patientId": patient["id"], "amount": "10.123", "date": "2030-03-10T16:00:00", "method": "pix"},
        headers=headers,
    )
    assert resp.status_code == 400


def test_demo_seed_is_idempotent(client, db):
    assert seed_demo(db) == 3
    assert seed_demo(db) == 0

    headers = _login(client, DEMO_EMAIL, DEMO_PASSWORD)
    assert len(client.get("/api/patients", headers=headers).json()) == 3
    assert len(client.get("/api/appointments", headers=headers).json()) == 3
