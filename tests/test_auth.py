from datetime import timedelta

from auth import create_access_token, get_password_hash, verify_password
from config import get_settings


def test_password_hash_roundtrip():
    hashed = get_password_hash("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_missing_authorization_header_is_401(client):
    resp = client.get("/api/scans")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required"}


def test_garbage_token_is_401(client):
    resp = client.get("/api/scans", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required"}


def test_token_signed_with_other_secret_is_401(client, alice_headers, settings):
    other = settings.model_copy(update={"jwt_secret": "another-secret"})
    token = create_access_token({"sub": "whatever", "email": "x@example.com"}, other)
    resp = client.get("/api/scans", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_expired_token_is_401(client, settings):
    client.post("/api/auth/register", json={"email": "late@example.com", "password": "s3cret-pass"})
    user_id = client.post(
        "/api/auth/login", data={"username": "late@example.com", "password": "s3cret-pass"}
    ).json()["user"]["id"]
    token = create_access_token({"sub": user_id}, settings, expires_delta=timedelta(minutes=-5))
    resp = client.get("/api/scans", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_token_for_unknown_user_is_401(client, settings):
    token = create_access_token({"sub": "no-such-user", "email": "ghost@example.com"}, settings)
    resp = client.get("/api/scans", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required"}


def test_dev_token_accepted_when_bypass_enabled(client, dev_headers):
    resp = client.get("/api/auth/me", headers=dev_headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == "1"
    assert resp.json()["email"] == "test@example.com"


def test_dev_token_rejected_when_bypass_disabled(client, settings, dev_headers):
    from main import app

    app.dependency_overrides[get_settings] = lambda: settings.model_copy(update={"dev_auth_bypass": False})
    resp = client.get("/api/auth/me", headers=dev_headers)
    assert resp.status_code == 401


def test_register_login_me(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "carol@example.com", "password": "s3cret-pass", "name": "Dr Carol"},
    )
    assert resp.status_code == 201
    assert resp.json()["email"] == "carol@example.com"
    assert "passwordHash" not in resp.json()

    resp = client.post("/api/auth/login", data={"username": "carol@example.com", "password": "s3cret-pass"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["name"] == "Dr Carol"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


def test_duplicate_registration_is_400(client, alice_headers):
    resp = client.post("/api/auth/register", json={"email": "alice@example.com", "password": "another-pass"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Email already registered"


def test_login_with_wrong_password_is_401(client, alice_headers):
    resp = client.post("/api/auth/login", data={"username": "alice@example.com", "password": "nope-nope"})
    assert resp.status_code == 401


def test_dev_token_when_dev_email_already_registered(client, dev_headers):
    client.post("/api/auth/register", json={"email": "test@example.com", "password": "s3cret-pass"})

    resp = client.get("/api/auth/me", headers=dev_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "test@example.com"
    assert client.get("/api/scans", headers=dev_headers).status_code == 200


def test_dev_user_created_concurrently_is_refetched(db, monkeypatch):
    import auth
    import crud

    # another request inserts the row between our lookup and our insert
    crud.create_user(db, email=auth.DEV_USER_EMAIL, password_hash="x", user_id=auth.DEV_USER_ID)
    real_get_user = crud.get_user
    real_get_by_email = crud.get_user_by_email
    misses = {"id": 1, "email": 1}

    def get_user(session, user_id):
        if misses["id"]:
            misses["id"] -= 1
            return None
        return real_get_user(session, user_id)

    def get_user_by_email(session, email):
        if misses["email"]:
            misses["email"] -= 1
            return None
        return real_get_by_email(session, email)

    monkeypatch.setattr(crud, "get_user", get_user)
    monkeypatch.setattr(crud, "get_user_by_email", get_user_by_email)

    user = auth._get_or_create_dev_user(db)
    assert user.id == auth.DEV_USER_ID
    assert user.email == auth.DEV_USER_EMAIL
