from datetime import datetime, timezone

from fastapi.testclient import TestClient

from doctor_helper.main import app
from doctor_helper.core.interactions import InteractionLedger
from doctor_helper.core.system_config import get_config_value, GENERATION_API_KEY
from doctor_helper.database import AsyncSessionLocal
from doctor_helper.models.user import UserRole, UserStatus
from factories import run, make_plan, make_user, auth_headers

client = TestClient(app)

PLAN_BODY = {
    "title": "Pro",
    "description": "For clinics",
    "features": ["100 AI consultations per month"],
    "monthly_price": 19.99,
    "yearly_price": 199.99,
    "interactions_limit": 100,
}


def _admin_headers():
    admin = run(make_user(role=UserRole.ADMIN))
    return auth_headers(admin)


def test_admin_routes_require_admin_role():
    client_user = run(make_user())

    assert client.get("/api/v1/admin/plans").status_code == 401
    assert client.get("/api/v1/admin/plans", headers=auth_headers(client_user)).status_code == 403


def test_inactive_admin_is_rejected():
    admin = run(make_user(role=UserRole.ADMIN, status=UserStatus.INACTIVE))

    resp = client.get("/api/v1/admin/plans", headers=auth_headers(admin))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Account is inactive"


def test_plan_crud():
    headers = _admin_headers()

    created = client.post("/api/v1/admin/plans", json=PLAN_BODY, headers=headers)
    assert created.status_code == 201
    plan = created.json()
    assert plan["title"] == "Pro"
    assert plan["interactions_limit"] == 100

    duplicate = client.post("/api/v1/admin/plans", json=PLAN_BODY, headers=headers)
    assert duplicate.status_code == 400

    updated = client.put(
        f"/api/v1/admin/plans/{plan['id']}",
        json={"interactions_limit": None, "is_popular": True},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["interactions_limit"] is None
    assert updated.json()["is_popular"] is True
    # Fields left out of the update are unchanged
    assert updated.json()["title"] == "Pro"

    listed = client.get("/api/v1/admin/plans", headers=headers)
    assert [p["id"] for p in listed.json()] == [plan["id"]]

    deleted = client.delete(f"/api/v1/admin/plans/{plan['id']}", headers=headers)
    assert deleted.status_code == 200
    assert client.get("/api/v1/admin/plans", headers=headers).json() == []


def test_update_ignores_null_for_required_fields():
    headers = _admin_headers()
    plan = run(make_plan(title="Basic", interactions_limit=50))

    resp = client.put(f"/api/v1/admin/plans/{plan.id}", json={"title": None}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["title"] == "Basic"


def test_update_rename_to_existing_title_is_rejected():
    headers = _admin_headers()
    run(make_plan(title="Basic"))
    other = run(make_plan(title="Premium"))

    resp = client.put(f"/api/v1/admin/plans/{other.id}", json={"title": "Basic"}, headers=headers)
    assert resp.status_code == 400


def test_update_and_delete_missing_plan():
    headers = _admin_headers()

    assert client.put("/api/v1/admin/plans/missing", json={"is_active": False}, headers=headers).status_code == 404
    assert client.delete("/api/v1/admin/plans/missing", headers=headers).status_code == 404


def test_negative_limit_is_rejected():
    headers = _admin_headers()

    resp = client.post("/api/v1/admin/plans", json={**PLAN_BODY, "interactions_limit": -1}, headers=headers)
    assert resp.status_code == 422


def test_list_users_includes_monthly_interactions():
    headers = _admin_headers()
    plan = run(make_plan(interactions_limit=10))
    user = run(make_user(plan=plan))
    user_headers = auth_headers(user)
    client.post("/api/v1/user/interaction-limit", json={}, headers=user_headers)
    client.post("/api/v1/user/interaction-limit", json={}, headers=user_headers)

    resp = client.get("/api/v1/admin/users", headers=headers)

    assert resp.status_code == 200
    by_id = {u["id"]: u for u in resp.json()}
    assert by_id[user.id]["interactions_this_month"] == 2
    assert by_id[user.id]["plan_id"] == plan.id


def test_switching_user_plan_restarts_monthly_count():
    headers = _admin_headers()
    plan_a = run(make_plan(title="Free", interactions_limit=3))
    plan_b = run(make_plan(title="Basic", interactions_limit=5))
    user = run(make_user(plan=plan_a))
    user_headers = auth_headers(user)
    for _ in range(3):
        client.post("/api/v1/user/interaction-limit", json={}, headers=user_headers)
    assert client.post("/api/v1/user/interaction-limit", json={}, headers=user_headers).status_code == 429

    resp = client.put(f"/api/v1/admin/users/{user.id}/plan", json={"plan_id": plan_b.id}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["plan_id"] == plan_b.id
    assert resp.json()["plan"] == "Basic"

    stats = client.get("/api/v1/user/interaction-limit", headers=user_headers)
    assert stats.json() == {"currentMonth": 0, "limit": 5, "remaining": 5, "hasUnlimited": False}


def test_switching_to_unknown_plan_or_user():
    headers = _admin_headers()
    plan = run(make_plan())
    user = run(make_user(plan=plan))

    assert client.put(
        f"/api/v1/admin/users/{user.id}/plan", json={"plan_id": "missing"}, headers=headers
    ).status_code == 404
    assert client.put(
        "/api/v1/admin/users/missing/plan", json={"plan_id": plan.id}, headers=headers
    ).status_code == 404


def test_usage_summary():
    headers = _admin_headers()

    async def seed():
        plan = await make_plan(interactions_limit=None)
        async with AsyncSessionLocal() as db:
            ledger = InteractionLedger(db)
            await ledger.record("u1", plan.id, "chat", now=datetime(2025, 3, 2, 10, tzinfo=timezone.utc))
            await ledger.record("u2", plan.id, "image_analysis", now=datetime(2025, 3, 2, 11, tzinfo=timezone.utc))
            await ledger.record("u1", plan.id, "chat", now=datetime(2025, 4, 1, 10, tzinfo=timezone.utc))

    run(seed())

    resp = client.get("/api/v1/admin/usage?start=2025-03-01&end=2025-03-31", headers=headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["totalInteractions"] == 2
    assert data["uniqueUsers"] == 2
    assert data["byType"]["image_analysis"] == 1
    assert data["chartData"] == [
        {"date": "2025-03-02", "interactions": 2, "uniqueUsers": 2, "byType": {"chat": 1, "image_analysis": 1}}
    ]


def test_usage_rejects_inverted_range():
    headers = _admin_headers()

    resp = client.get("/api/v1/admin/usage?start=2025-03-31&end=2025-03-01", headers=headers)
    assert resp.status_code == 400


def test_configs_mask_secrets():
    headers = _admin_headers()

    resp = client.put(
        f"/api/v1/admin/configs/{GENERATION_API_KEY}",
        json={"value": "sk-live-secret", "description": "Gemini key"},
        headers=headers,
    )
    assert resp.status_code == 200

    configs = client.get("/api/v1/admin/configs", headers=headers).json()
    entry = next(c for c in configs if c["key"] == GENERATION_API_KEY)
    assert entry["is_secret"] is True
    assert "sk-live-secret" not in entry["value"]

    async def stored_value():
        async with AsyncSessionLocal() as db:
            return await get_config_value(db, GENERATION_API_KEY)

    assert run(stored_value()) == "sk-live-secret"


def test_metering_policy_must_be_boolean():
    headers = _admin_headers()

    bad = client.put("/api/v1/admin/configs/metering_fail_open", json={"value": "maybe"}, headers=headers)
    assert bad.status_code == 400

    good = client.put("/api/v1/admin/configs/metering_fail_open", json={"value": "false"}, headers=headers)
    assert good.status_code == 200
