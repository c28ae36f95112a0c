from datetime import timedelta

import pytest
from conftest import login, register, register_verified

from scripts.create_admin import create_admin
from scripts.load_seed_users import load_seed_users


def test_seed_loader_is_idempotent(client):
    assert load_seed_users() == 3
    assert load_seed_users() == 0


def test_dashboard_requires_admin(client, dispatcher):
    assert client.get("/api/admin/dashboard").status_code == 401

    register_verified(client, dispatcher)
    token = login(client)
    resp = client.get("/api/admin/dashboard", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


def test_dashboard_reports_users_and_otp_stats(client, clock):
    load_seed_users()
    register(client, email="new@x.com", phone="9123456789", role="employer")
    clock.advance(11 * 60)

    token = login(client, email="admin@jobportal.in", password="Admin123")
    stats = client.get("/api/admin/dashboard", headers={"Authorization": f"Bearer {token}"}).json()["stats"]

    assert stats["total_users"] == 4
    assert stats["verified_users"] == 3
    assert stats["users_by_role"] == {"jobseeker": 1, "employer": 2, "admin": 1}
    # Registration codes have lapsed but the sweep has not run yet.
    assert stats["otp"] == {"total_otps": 2, "expired": 2}


def test_otp_stats_and_scheduled_sweep(client, store, clock):
    import main

    load_seed_users()
    store.generate("x@x.com")
    store.generate("9000000009", "sms")
    clock.advance(11 * 60)
    store.generate("fresh@x.com")

    token = login(client, email="admin@jobportal.in", password="Admin123")
    headers = {"Authorization": f"Bearer {token}"}
    assert client.get("/api/admin/otp-stats", headers=headers).json() == {"ok": True, "total_otps": 3, "expired": 2}

    job = main.app.state._scheduler.get_job("sweep_expired_otps")
    assert job.trigger.interval == timedelta(minutes=5)
    job.func()

    assert client.get("/api/admin/otp-stats", headers=headers).json() == {"ok": True, "total_otps": 1, "expired": 0}


def test_list_users_for_admin_only(client, dispatcher):
    load_seed_users()
    register(client, email="new@x.com", phone="9123456789")

    token = login(client, email="admin@jobportal.in", password="Admin123")
    resp = client.get("/api/admin/users", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    users = resp.json()["users"]
    assert [u["email"] for u in users] == [
        "admin@jobportal.in",
        "employer@jobportal.in",
        "seeker@jobportal.in",
        "new@x.com",
    ]
    assert "password_hash" not in users[0]

    token = login(client, email="employer@jobportal.in", password="Employer123")
    resp = client.get("/api/admin/users", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


def test_create_admin_creates_new_account(client):
    user = create_admin(email="Boss@X.com", phone="9222222222", password="Boss1234")
    assert user.role == "admin"
    assert user.is_verified is True

    token = login(client, email="boss@x.com", password="Boss1234")
    resp = client.get("/api/admin/otp-stats", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200


def test_create_admin_promotes_existing_user(client, dispatcher):
    register_verified(client, dispatcher)
    token = login(client)
    assert client.get("/api/admin/users", headers={"Authorization": f"Bearer {token}"}).status_code == 403

    user = create_admin(email="a@x.com")
    assert user.role == "admin"

    # Same password still works; role is read from the database on each request.
    assert client.get("/api/admin/users", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_create_admin_requires_details_for_new_account(client):
    with pytest.raises(ValueError):
        create_admin(email="nobody@x.com")
