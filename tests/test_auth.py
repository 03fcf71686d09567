from datetime import datetime, timedelta, timezone

import pytest

from serena import auth_service, errors
from serena.auth_security import create_access_token, decode_token, hash_password, verify_password
from serena.config import Settings, parse_expiry_seconds
from tests.conftest import PASSWORD, auth_header


def test_password_hash_roundtrip():
    h = hash_password("abc123")
    assert h != "abc123"
    assert verify_password("abc123", h)
    assert not verify_password("errada", h)
    assert not verify_password("abc123", "not-a-hash")


def test_login_returns_token_and_user(client, alice):
    resp = client.post("/api/auth/login", json={"email": "ALICE@clinica.com.br", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Login realizado com sucesso"
    assert body["token"]
    assert body["user"]["email"] == "alice@clinica.com.br"
    assert body["user"]["isActive"] is True
    assert "passwordHash" not in body["user"]


def test_unknown_email_and_wrong_password_fail_identically(client, alice):
    unknown = client.post("/api/auth/login", json={"email": "ninguem@clinica.com.br", "password": PASSWORD})
    wrong = client.post("/api/auth/login", json={"email": "alice@clinica.com.br", "password": "errada"})
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == {"error": "Credenciais inválidas"}


def test_disabled_account_only_revealed_with_correct_password(client, db, alice):
    auth_service.set_active(db, alice.email, active=False)

    ok_pw = client.post("/api/auth/login", json={"email": alice.email, "password": PASSWORD})
    assert ok_pw.status_code == 401
    assert ok_pw.json()["error"] == "Conta desativada"

    bad_pw = client.post("/api/auth/login", json={"email": alice.email, "password": "errada"})
    assert bad_pw.json()["error"] == "Credenciais inválidas"


def test_token_claims(settings, alice):
    payload = decode_token(create_access_token(alice, settings), settings)
    assert payload["userId"] == alice.id
    assert payload["email"] == alice.email
    assert payload["role"] == "psychologist"
    assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60


def test_expired_token(client, settings, alice):
    issued = datetime.now(timezone.utc) - timedelta(days=8)
    token = create_access_token(alice, settings, now=issued)

    with pytest.raises(errors.ExpiredToken):
        decode_token(token, settings)

    resp = client.get("/api/auth/verify", headers=auth_header(token))
    assert resp.status_code == 401
    assert resp.json() == {"error": "Token expirado"}


def test_token_signed_with_other_secret_is_invalid(client, alice):
    forged = create_access_token(alice, Settings(jwt_secret="outro-segredo"))
    resp = client.get("/api/auth/verify", headers=auth_header(forged))
    assert resp.status_code == 401
    assert resp.json() == {"error": "Token inválido"}


def test_garbage_token_is_invalid(client):
    resp = client.get("/api/auth/verify", headers=auth_header("abc.def.ghi"))
    assert resp.status_code == 401
    assert resp.json()["error"] == "Token inválido"


def test_missing_token(client):
    resp = client.get("/api/patients")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Token de acesso necessário"}


def test_user_deactivated_after_token_issue(client, db, settings, alice, token_for):
    token = token_for(alice)
    assert client.get("/api/auth/verify", headers=auth_header(token)).status_code == 200

    auth_service.set_active(db, alice.email, active=False)

    with pytest.raises(errors.AccountDisabled):
        auth_service.resolve_principal(db, token, settings)
    resp = client.get("/api/patients", headers=auth_header(token))
    assert resp.status_code == 401
    assert resp.json()["error"] == "Conta desativada"


def test_verify_returns_user(client, alice, token_for):
    resp = client.get("/api/auth/verify", headers=auth_header(token_for(alice)))
    assert resp.status_code == 200
    assert resp.json()["valid"] is True
    assert resp.json()["user"]["id"] == alice.id


def test_public_registration_disabled(client):
    resp = client.post("/api/auth/register", json={"name": "X", "email": "x@clinica.com.br", "password": "123456"})
    assert resp.status_code == 403
    assert "desabilitado" in resp.json()["error"]


def test_change_password(client, db, alice, token_for):
    headers = auth_header(token_for(alice))
    mismatch = client.put(
        "/api/users/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "nova1234", "confirmPassword": "outra123"},
        headers=headers,
    )
    assert mismatch.status_code == 400

    wrong = client.put(
        "/api/users/change-password",
        json={"currentPassword": "errada", "newPassword": "nova1234", "confirmPassword": "nova1234"},
        headers=headers,
    )
    assert wrong.status_code == 401

    ok = client.put(
        "/api/users/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "nova1234", "confirmPassword": "nova1234"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert auth_service.authenticate(db, alice.email, "nova1234").id == alice.id


def test_delete_own_account_requires_password(client, alice, token_for):
    headers = auth_header(token_for(alice))
    assert client.request("DELETE", "/api/users/account", json={"password": "errada"}, headers=headers).status_code == 401

    resp = client.request("DELETE", "/api/users/account", json={"password": PASSWORD}, headers=headers)
    assert resp.status_code == 200
    assert client.get("/api/auth/verify", headers=headers).status_code == 401


@pytest.mark.parametrize(
    "raw, seconds",
    [("7d", 7 * 24 * 60 * 60), ("12h", 12 * 60 * 60), ("30m", 1800), ("3600", 3600), ("90", 90), ("30s", 30)],
)
def test_parse_expiry_seconds(raw, seconds):
    assert parse_expiry_seconds(raw) == seconds


@pytest.mark.parametrize("raw", ["0", "0d", "abc", ""])
def test_parse_expiry_rejects_invalid(raw):
    with pytest.raises(ValueError):
        parse_expiry_seconds(raw)


def test_short_expiry_keeps_seconds(alice):
    short = Settings(database_url="sqlite://", jwt_secret="test-secret", jwt_expire_seconds=90)
    now = datetime.now(timezone.utc)
    token = create_access_token(alice, short, now=now)
    claims = decode_token(token, short)
    assert claims["exp"] - claims["iat"] == 90


def test_invalid_conflict_window_rejected():
    with pytest.raises(ValueError):
        Settings(conflict_window="whatever")
