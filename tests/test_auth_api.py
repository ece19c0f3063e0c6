from fastapi.testclient import TestClient

from doctor_helper.main import app
from doctor_helper.models.user import UserStatus
from factories import run, make_plan, make_user, auth_headers

client = TestClient(app)


def test_root_and_health():
    assert client.get("/").json()["status"] == "operational"
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json() == {"status": "healthy", "environment": "test"}


def test_register_assigns_default_plan():
    free = run(make_plan(title="Free", interactions_limit=3))

    resp = client.post(
        "/api/v1/auth/register",
        json={"email": "alice@example.com", "password": "secret123", "first_name": "Alice"},
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["email"] == "alice@example.com"
    assert data["role"] == "client"
    assert data["plan_id"] == free.id
    assert data["plan"] == "Free"


def test_register_duplicate_email():
    body = {"email": "bob@example.com", "password": "secret123"}
    assert client.post("/api/v1/auth/register", json=body).status_code == 201

    resp = client.post("/api/v1/auth/register", json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "User already exists"


def test_register_validates_password_length():
    resp = client.post("/api/v1/auth/register", json={"email": "carol@example.com", "password": "123"})
    assert resp.status_code == 422


def test_login_and_refresh():
    user = run(make_user(email="dave@example.com", password="secret123"))

    login = client.post("/api/v1/auth/login", json={"email": "dave@example.com", "password": "secret123"})
    assert login.status_code == 200
    tokens = login.json()
    assert tokens["token_type"] == "bearer"
    assert tokens["user"]["id"] == user.id

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["access_token"]

    # An access token is not accepted as a refresh token
    wrong_type = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert wrong_type.status_code == 401


def test_login_wrong_password():
    run(make_user(email="erin@example.com", password="secret123"))

    resp = client.post("/api/v1/auth/login", json={"email": "erin@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401


def test_login_inactive_account():
    run(make_user(email="frank@example.com", password="secret123", status=UserStatus.INACTIVE))

    resp = client.post("/api/v1/auth/login", json={"email": "frank@example.com", "password": "secret123"})
    assert resp.status_code == 403


def test_refresh_token_cannot_authenticate_requests():
    user = run(make_user(email="gina@example.com", password="secret123"))
    tokens = client.post(
        "/api/v1/auth/login", json={"email": "gina@example.com", "password": "secret123"}
    ).json()

    resp = client.get(
        "/api/v1/user/interaction-limit",
        headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
    )
    assert resp.status_code == 401
    assert client.get("/api/v1/user/interaction-limit", headers=auth_headers(user)).status_code == 200


def test_public_plans_lists_active_plans_cheapest_first():
    run(make_plan(title="Premium", monthly_price=29.99, interactions_limit=None))
    run(make_plan(title="Free", monthly_price=0, interactions_limit=3))
    run(make_plan(title="Basic", monthly_price=9.99, interactions_limit=50))
    run(make_plan(title="Legacy", monthly_price=4.99, is_active=False))

    resp = client.get("/api/v1/plans")

    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    assert [p["title"] for p in resp.json()] == ["Free", "Basic", "Premium"]
