import pytest

from healthcare_pro.app import app
from healthcare_pro.auth.deps import get_current_user
from healthcare_pro.auth.jwt import create_access_token, hash_password, verify_password


@pytest.fixture
def real_auth(client):
    override = app.dependency_overrides.pop(get_current_user)
    yield client
    app.dependency_overrides[get_current_user] = override


def _register(client, email="ana@example.com", password="s3cret-pw", name="Ana"):
    return client.post("/api/auth/register", json={"email": email, "password": password, "name": name})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_password_hashing():
    hashed = hash_password("s3cret-pw")
    assert hashed.startswith("$pbkdf2-sha256$")
    assert hash_password(hashed) == hashed
    assert verify_password("s3cret-pw", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret-pw", "plain-text")


def test_register_login_and_use_token(real_auth):
    r = _register(real_auth)
    assert r.status_code == 201, r.text
    j = r.json()
    assert j["status"] == "created"
    assert j["token_type"] == "bearer"

    r = real_auth.get("/api/profile/", headers=_bearer(j["access_token"]))
    assert r.status_code == 200
    assert r.json()["user_id"] == j["user_id"]

    r = real_auth.post("/api/auth/login", json={"username": "ana@example.com", "password": "s3cret-pw"})
    assert r.status_code == 200
    assert r.json()["refresh_token"]


def test_duplicate_registration(real_auth):
    _register(real_auth)
    r = _register(real_auth)
    assert r.status_code == 409
    assert r.json()["code"] == "CONFLICT"


def test_short_password_rejected(real_auth):
    assert _register(real_auth, password="123").status_code == 422


def test_bad_login(real_auth):
    _register(real_auth)
    r = real_auth.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"

    r = real_auth.post("/api/auth/login", json={"password": "s3cret-pw"})
    assert r.status_code == 422
    assert r.json()["code"] == "UNPROCESSABLE_ENTITY"


def test_refresh(real_auth):
    tokens = _register(real_auth).json()
    r = real_auth.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    access = r.json()["access_token"]
    assert real_auth.get("/api/preferences/", headers=_bearer(access)).status_code == 200

    r = real_auth.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert r.status_code == 401


def test_protected_routes_need_a_token(real_auth):
    r = real_auth.get("/api/mood/entries")
    assert r.status_code == 401
    j = r.json()
    assert j["code"] == "UNAUTHORIZED"
    assert j["message"] == "Missing bearer token"
    assert "trace_id" in j


def test_refresh_token_is_not_a_bearer(real_auth):
    tokens = _register(real_auth).json()
    r = real_auth.get("/api/mood/entries", headers=_bearer(tokens["refresh_token"]))
    assert r.status_code == 401


def test_token_for_deleted_user(real_auth):
    token = create_access_token({"sub": "ghost", "email": "ghost@example.com"})
    r = real_auth.get("/api/mood/entries", headers=_bearer(token))
    assert r.status_code == 401
    assert r.json()["message"] == "User not found"
