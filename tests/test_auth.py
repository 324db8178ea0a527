from datetime import timedelta

from conftest import PASSWORD
from security import create_access_token


def test_register_then_me(client):
    res = client.post("/api/auth/register", json={
        "name": "New Person",
        "email": "New.Person@Example.com",
        "address": "1 Fresh Lane, Newtown",
        "password": "secret1",
    })

    assert res.status_code == 201
    body = res.json()
    assert body["user"]["role"] == "user"
    assert body["user"]["email"] == "new.person@example.com"
    assert "passwordHash" not in body["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]


def test_register_ignores_requested_role(client):
    res = client.post("/api/auth/register", json={
        "name": "Sneaky Person",
        "email": "sneaky@example.com",
        "address": "2 Side Street, Town",
        "password": "secret1",
        "role": "admin",
    })
    assert res.json()["user"]["role"] == "user"


def test_register_duplicate_email(client, shopper):
    res = client.post("/api/auth/register", json={
        "name": "Copy Cat",
        "email": shopper["email"],
        "address": "3 Copy Road, Town",
        "password": "secret1",
    })
    assert res.status_code == 409


def test_register_validation_errors(client):
    res = client.post("/api/auth/register", json={"name": "X", "email": "nope", "address": "a", "password": "1"})

    assert res.status_code == 400
    fields = {e["field"] for e in res.json()["errors"]}
    assert fields == {"name", "email", "address", "password"}


def test_login_stamps_last_login(client, db, shopper):
    res = client.post("/api/auth/login", json={"email": shopper["email"], "password": PASSWORD})

    assert res.status_code == 200
    assert res.json()["token"]
    assert db["user"].find_one({"_id": shopper["_id"]})["last_login"] is not None


def test_login_wrong_password(client, shopper):
    res = client.post("/api/auth/login", json={"email": shopper["email"], "password": "wrong-password"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid credentials"


def test_missing_token_is_401(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["message"] == "No token, authorization denied"


def test_garbage_token_is_401(client):
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert res.status_code == 401


def test_expired_token_is_401(client, shopper):
    token = create_access_token({"sub": str(shopper["_id"])}, expires_delta=timedelta(minutes=-1))
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_deactivated_user_is_rejected(client, make_user, auth_headers):
    user = make_user(is_active=False)
    res = client.get("/api/auth/me", headers=auth_headers(user))
    assert res.status_code == 401


def test_role_gate_is_403(client, shopper, auth_headers):
    res = client.get("/api/dashboard/stats", headers=auth_headers(shopper))
    assert res.status_code == 403


def test_update_password(client, shopper, auth_headers):
    bad = client.put("/api/auth/password", json={"currentPassword": "wrong", "newPassword": "another1"},
                     headers=auth_headers(shopper))
    assert bad.status_code == 400

    ok = client.put("/api/auth/password", json={"currentPassword": PASSWORD, "newPassword": "another1"},
                    headers=auth_headers(shopper))
    assert ok.status_code == 200

    login = client.post("/api/auth/login", json={"email": shopper["email"], "password": "another1"})
    assert login.status_code == 200
