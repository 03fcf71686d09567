import pytest

from serena import auth_service, errors
from serena.auth_models import Role
from tests.conftest import PASSWORD, auth_header


def test_non_admin_gets_403_on_admin_routes(client, alice, token_for):
    headers = auth_header(token_for(alice))
    assert client.get("/api/users/all", headers=headers).status_code == 403
    resp = client.post(
        "/api/users/create",
        json={"name": "Novo", "email": "novo@clinica.com.br", "password": "123456"},
        headers=headers,
    )
    assert resp.status_code == 403
    assert resp.json() == {"error": "Acesso negado"}


def test_super_admin_creates_and_lists_users(client, root, alice, token_for):
    headers = auth_header(token_for(root))
    resp = client.post(
        "/api/users/create",
        json={"name": "Nova Psicóloga", "email": "nova@clinica.com.br", "password": "123456"},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "psychologist"

    emails = {u["email"] for u in client.get("/api/users/all", headers=headers).json()}
    assert emails == {"root@clinica.com.br", "alice@clinica.com.br", "nova@clinica.com.br"}

    dup = client.post(
        "/api/users/create",
        json={"name": "Outra", "email": "nova@clinica.com.br", "password": "123456"},
        headers=headers,
    )
    assert dup.status_code == 409


def test_super_admin_cannot_deactivate_self(db, root):
    with pytest.raises(errors.AuthorizationError):
        auth_service.admin_deactivate_user(db, root, root.id)
    with pytest.raises(errors.AuthorizationError):
        auth_service.admin_update_user(db, root, root.id, is_active=False)


def test_super_admin_manages_other_user(client, db, root, alice, token_for):
    headers = auth_header(token_for(root))

    resp = client.put(f"/api/users/{alice.id}", json={"role": "admin", "name": "Alice S."}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "admin"

    assert client.put(f"/api/users/{alice.id}/password", json={"newPassword": "troca123"}, headers=headers).status_code == 200
    assert auth_service.authenticate(db, alice.email, "troca123").role == Role.ADMIN

    assert client.delete(f"/api/users/{alice.id}", headers=headers).status_code == 200
    with pytest.raises(errors.AccountDisabled):
        auth_service.authenticate(db, alice.email, "troca123")


def test_inspect_user(client, root, alice, make_patient, token_for):
    make_patient(alice)
    resp = client.get(f"/api/users/{alice.id}/inspect", headers=auth_header(token_for(root)))
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["email"] == alice.email
    assert body["stats"]["patients"] == 1
    assert body["recentPatients"][0]["name"] == "Maria Silva"
    assert body["recentSessions"] == []


def test_unknown_user_is_404(client, root, token_for):
    resp = client.get("/api/users/999/inspect", headers=auth_header(token_for(root)))
    assert resp.status_code == 404


def test_profile_update_email_conflict(client, alice, bob, token_for):
    headers = auth_header(token_for(alice))
    assert client.get("/api/users/profile", headers=headers).json()["email"] == alice.email

    resp = client.put("/api/users/profile", json={"email": bob.email}, headers=headers)
    assert resp.status_code == 409

    resp = client.put("/api/users/profile", json={"name": "Alice Nova"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["name"] == "Alice Nova"


def test_own_stats(client, db, alice, make_patient, token_for):
    make_patient(alice)
    resp = client.get("/api/users/stats", headers=auth_header(token_for(alice)))
    assert resp.json() == {"patients": 1, "sessions": 0, "appointments": 0, "payments": 0, "totalRevenue": 0}


def test_ensure_super_admin_is_idempotent(db, alice):
    u, created = auth_service.ensure_super_admin(db, "boss@clinica.com.br", PASSWORD)
    assert created and u.role == Role.SUPER_ADMIN

    again, created = auth_service.ensure_super_admin(db, "BOSS@clinica.com.br", "outra")
    assert not created and again.id == u.id

    promoted, created = auth_service.ensure_super_admin(db, alice.email, "ignorada")
    assert not created and promoted.role == Role.SUPER_ADMIN
