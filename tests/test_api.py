from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import auth
from app.db.models.booking import BookingStatus
from app.db.models.provider import ApprovalStatus, Provider
from app.db.models.user import Role
from app.services.pin import completion_pin


def _booking_payload(service_id, provider_id=None):
    payload = {
        "service_id": service_id,
        "address": "Plot 12",
        "area": "Cidco N-2",
        "date": "2026-10-20",
        "time": "10:00",
        "description": "Leaking tap",
    }
    if provider_id:
        payload["provider_id"] = provider_id
    return payload


def test_root(client):
    assert client.get("/").json() == {"message": "LocalBookr API running"}


# --- auth ---

def test_register_and_login(client):
    body = {"email": "asha@example.com", "name": "Asha", "password": "pw123", "phone": "9876543210"}
    res = client.post("/api/auth/register", json=body)
    assert res.status_code == 200
    user = res.json()
    assert user["role"] == "CUSTOMER"
    assert "password" not in user and "password_hash" not in user

    assert client.post("/api/auth/register", json=body).status_code == 400

    res = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "pw123"})
    assert res.status_code == 200
    assert res.json()["id"] == user["id"]

    res = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "wrong"})
    assert res.status_code == 400

    me = client.get("/api/auth/me", headers={"X-User-Id": user["id"]})
    assert me.json()["email"] == "asha@example.com"


def test_requests_without_identity_are_rejected(client):
    assert client.get("/bookings").status_code == 401
    assert client.get("/bookings", headers={"X-User-Id": "nobody"}).status_code == 401


def test_register_cannot_self_promote_to_admin(client):
    body = {"email": "eve@example.com", "name": "Eve", "password": "pw", "role": "ADMIN"}
    assert client.post("/api/auth/register", json=body).status_code == 422


# --- services ---

def test_service_catalog_admin_only_writes(client, factory):
    admin = factory.user(Role.ADMIN)
    customer = factory.user()
    body = {"name": "Cleaning", "description": "Deep clean", "base_price": 800}

    assert client.post("/services", json=body, headers=auth(customer)).status_code == 403

    res = client.post("/services", json=body, headers=auth(admin))
    assert res.status_code == 201
    service_id = res.json()["id"]

    res = client.put(f"/services/{service_id}", json={"base_price": 900}, headers=auth(admin))
    assert res.json()["base_price"] == 900
    assert res.json()["name"] == "Cleaning"

    assert [s["name"] for s in client.get("/services").json()] == ["Cleaning"]

    assert client.delete(f"/services/{service_id}", headers=auth(admin)).status_code == 204
    assert client.get(f"/services/{service_id}").status_code == 404


# --- providers and search ---

def test_provider_registration_approval_and_search(client, factory):
    admin = factory.user(Role.ADMIN)
    pro_user = factory.user(Role.PROVIDER, name="Ravi")

    res = client.post("/providers", json={"skill": "Plumbing", "area": "Cidco N-4"}, headers=auth(pro_user))
    assert res.status_code == 201
    provider = res.json()
    assert provider["approval_status"] == ApprovalStatus.PENDING.value
    assert provider["is_active"] is False

    again = client.post("/providers", json={"skill": "Plumbing", "area": "Cidco"}, headers=auth(pro_user))
    assert again.status_code == 400

    # not visible until approved
    assert client.get("/search/providers", params={"service": "Plumbing", "area": "N2"}).json() == []
    pending = client.get("/providers/pending", headers=auth(admin)).json()
    assert [p["id"] for p in pending] == [provider["id"]]

    res = client.put(
        f"/providers/{provider['id']}/approval",
        json={"approval_status": "ACTIVE"},
        headers=auth(admin),
    )
    assert res.json()["is_active"] is True

    found = client.get("/search/providers", params={"service": "Plumbing", "area": "N2"}).json()
    assert [p["id"] for p in found] == [provider["id"]]
    assert found[0]["user"]["name"] == "Ravi"


def test_customer_cannot_create_provider_profile(client, factory):
    customer = factory.user()
    res = client.post("/providers", json={"skill": "Plumbing", "area": "Cidco"}, headers=auth(customer))
    assert res.status_code == 403


def test_provider_owner_updates_and_photos(client, factory):
    provider = factory.provider()
    owner = provider.user
    stranger = factory.user(Role.PROVIDER)

    res = client.put(f"/providers/{provider.id}", json={"bio": "20 years"}, headers=auth(stranger))
    assert res.status_code == 403

    res = client.put(
        f"/providers/{provider.id}",
        json={"bio": "20 years", "push_subscription_id": "sub-1"},
        headers=auth(owner),
    )
    assert res.json()["bio"] == "20 years"

    res = client.post(
        f"/providers/{provider.id}/photos",
        json={"url": "https://img.test/1.jpg", "caption": "Bathroom"},
        headers=auth(owner),
    )
    assert res.status_code == 201
    photo_id = res.json()["id"]
    assert [p["id"] for p in client.get("/providers/me", headers=auth(owner)).json()["photos"]] == [photo_id]

    assert client.delete(f"/providers/{provider.id}/photos/{photo_id}", headers=auth(owner)).status_code == 204
    assert client.get("/providers/me", headers=auth(owner)).json()["photos"] == []


def test_provider_soft_delete(client, factory):
    admin = factory.user(Role.ADMIN)
    provider = factory.provider()

    assert client.delete(f"/providers/{provider.id}", headers=auth(admin)).status_code == 204
    assert client.get("/providers").json() == []
    assert client.get("/search/providers", params={"service": "Plumbing", "area": "Cidco"}).json() == []


# --- booking lifecycle ---

def test_full_booking_flow(client, factory, email_client):
    customer = factory.user(name="Asha")
    service = factory.service("Plumbing", base_price=500)
    provider = factory.provider(area="Cidco")

    res = client.post("/bookings", json=_booking_payload(service.id, provider.id), headers=auth(customer))
    assert res.status_code == 201
    booking = res.json()
    assert booking["status"] == BookingStatus.ASSIGNED.value
    assert booking["amount"] == 500
    assert booking["completion_pin"] == completion_pin(booking["id"])
    assert len(email_client.sent) == 1

    # provider sees the job but not the PIN
    jobs = client.get("/bookings", headers=auth(provider.user)).json()
    assert [j["id"] for j in jobs] == [booking["id"]]
    assert jobs[0]["completion_pin"] is None

    res = client.put(
        f"/bookings/{booking['id']}/status",
        json={"status": "IN_PROGRESS"},
        headers=auth(provider.user),
    )
    assert res.json()["status"] == BookingStatus.IN_PROGRESS.value

    res = client.post(f"/bookings/{booking['id']}/complete", json={"pin": "999999x"}, headers=auth(provider.user))
    assert res.json() == {"completed": False}

    res = client.post(
        f"/bookings/{booking['id']}/complete",
        json={"pin": booking["completion_pin"]},
        headers=auth(provider.user),
    )
    assert res.json() == {"completed": True}

    res = client.post(f"/bookings/{booking['id']}/rating", json={"rating": 4, "review": "Quick"}, headers=auth(customer))
    assert res.status_code == 200
    assert res.json()["rating"] == 4

    res = client.post(f"/bookings/{booking['id']}/rating", json={"rating": 1}, headers=auth(customer))
    assert res.status_code == 409
    assert res.json()["detail"] == "You have already rated this service."

    profile = client.get("/providers/me", headers=auth(provider.user)).json()
    assert profile["rating"] == 4.0

    messages = [n["message"] for n in client.get("/notifications/me", headers=auth(customer)).json()]
    assert "Service completed. Please rate!" in messages
    assert "Booking created! Share PIN with provider when done." in messages


def test_only_customers_book(client, factory):
    service = factory.service()
    provider_user = factory.user(Role.PROVIDER)
    res = client.post("/bookings", json=_booking_payload(service.id), headers=auth(provider_user))
    assert res.status_code == 403


def test_booking_unknown_service_is_404(client, factory):
    res = client.post("/bookings", json=_booking_payload("missing"), headers=auth(factory.user()))
    assert res.status_code == 404


def test_illegal_transition_is_409(client, factory):
    admin = factory.user(Role.ADMIN)
    booking = factory.booking()

    res = client.put(f"/bookings/{booking.id}/status", json={"status": "COMPLETED"}, headers=auth(admin))

    assert res.status_code == 409
    assert client.get(f"/bookings/{booking.id}", headers=auth(admin)).json()["status"] == "PENDING"


def test_admin_assigns_provider(client, factory, email_client):
    admin = factory.user(Role.ADMIN)
    provider = factory.provider()
    booking = factory.booking()

    res = client.put(
        f"/bookings/{booking.id}/status",
        json={"status": "ASSIGNED", "provider_id": provider.id},
        headers=auth(admin),
    )

    assert res.json()["provider_id"] == provider.id
    assert len(email_client.sent) == 1


def test_role_limits_on_status_updates(client, factory):
    provider = factory.provider()
    booking = factory.booking(status=BookingStatus.ASSIGNED, provider=provider)
    customer = booking.customer

    res = client.put(f"/bookings/{booking.id}/status", json={"status": "CANCELLED"}, headers=auth(provider.user))
    assert res.status_code == 403
    res = client.put(f"/bookings/{booking.id}/status", json={"status": "IN_PROGRESS"}, headers=auth(customer))
    assert res.status_code == 403

    other = factory.user()
    assert client.get(f"/bookings/{booking.id}", headers=auth(other)).status_code == 403

    res = client.post(f"/bookings/{booking.id}/cancel", headers=auth(customer))
    assert res.json()["status"] == "CANCELLED"

    # cancelled jobs drop off the provider's list
    assert client.get("/bookings", headers=auth(provider.user)).json() == []


def test_delete_booking(client, factory):
    admin = factory.user(Role.ADMIN)
    booking = factory.booking()

    assert client.delete(f"/bookings/{booking.id}", headers=auth(booking.customer)).status_code == 403
    assert client.delete(f"/bookings/{booking.id}", headers=auth(admin)).status_code == 204
    assert client.get(f"/bookings/{booking.id}", headers=auth(admin)).status_code == 404


def test_notify_provider_resends(client, factory, email_client, push_client):
    admin = factory.user(Role.ADMIN)
    provider = factory.provider(push_subscription_id="sub-1")
    booking = factory.booking(status=BookingStatus.ASSIGNED, provider=provider)

    res = client.post(f"/bookings/{booking.id}/notify-provider", headers=auth(admin))

    assert res.json() == {"ok": True, "booking_id": booking.id, "delivered": 2, "skipped": 0, "failed": 0}
    assert push_client.sent[0].heading == "Reminder: New Job Assigned"

    unassigned = factory.booking()
    assert client.post(f"/bookings/{unassigned.id}/notify-provider", headers=auth(admin)).status_code == 404


# --- notifications ---

def test_mark_notification_read(client, factory):
    customer = factory.user()
    service = factory.service()
    client.post("/bookings", json=_booking_payload(service.id), headers=auth(customer))

    notices = client.get("/notifications/me", headers=auth(customer)).json()
    assert len(notices) == 1 and notices[0]["is_read"] is False

    res = client.post(f"/notifications/{notices[0]['id']}/read", headers=auth(customer))
    assert res.json()["is_read"] is True

    other = factory.user()
    assert client.post(f"/notifications/{notices[0]['id']}/read", headers=auth(other)).status_code == 404


# --- admin ---

def test_csv_export(client, factory):
    admin = factory.user(Role.ADMIN)
    customer = factory.user(name="Asha", phone="9000000001")
    provider = factory.provider(user=factory.user(Role.PROVIDER, name="Ravi"))
    assigned = factory.booking(customer=customer, status=BookingStatus.ASSIGNED, provider=provider)
    open_booking = factory.booking(customer=customer)

    res = client.get("/admin/bookings/export", headers=auth(admin))

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert "localbookr-export-" in res.headers["content-disposition"]
    lines = res.text.split("\n")
    assert lines[0] == "ID,Date,Time,Customer,Phone,Service,Provider,Area,Status,Amount"
    rows = {line.split(",")[0]: line for line in lines[1:]}
    assert rows[assigned.id] == f"{assigned.id},2026-10-20,10:00,Asha,9000000001,Plumbing,Ravi,Cidco N-2,ASSIGNED,500"
    assert rows[open_booking.id].split(",")[6] == "Unassigned"

    filtered = client.get("/admin/bookings/export", params={"status": "ASSIGNED"}, headers=auth(admin))
    assert len(filtered.text.split("\n")) == 2


def test_sweep_endpoint(client, factory, email_client):
    admin = factory.user(Role.ADMIN)
    factory.provider(area="Cidco")
    factory.booking(age=timedelta(minutes=5))
    factory.booking(age=timedelta(seconds=10))

    res = client.post("/admin/bookings/sweep", headers=auth(admin))

    assert res.json() == {"scanned": 1, "assigned": 1, "waiting": 0, "skipped": 0, "failed": 0}
    assert len(email_client.sent) == 1


def test_admin_summary(client, factory):
    admin = factory.user(Role.ADMIN)
    provider = factory.provider()
    factory.provider(approval_status=ApprovalStatus.PENDING, is_active=False)
    factory.booking()
    factory.booking(status=BookingStatus.COMPLETED, provider=provider)
    factory.booking(status=BookingStatus.COMPLETED, provider=provider)

    summary = client.get("/admin/summary", headers=auth(admin)).json()

    assert summary["total_bookings"] == 3
    assert summary["pending_bookings"] == 1
    assert summary["completed_bookings"] == 2
    assert summary["revenue"] == 1000
    assert summary["total_providers"] == 2
    assert summary["pending_providers"] == 1
    assert summary["total_services"] == 3

    assert client.get("/admin/summary", headers=auth(factory.user())).status_code == 403


def _fail_first_commit(monkeypatch):
    real_commit = Session.commit
    calls = []

    def commit(self):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("UPDATE providers", {}, Exception("no such column: is_deleted"))
        return real_commit(self)

    monkeypatch.setattr(Session, "commit", commit)


def test_provider_hard_delete_fallback_removes_unreferenced_row(client, factory, db, monkeypatch):
    admin = factory.user(Role.ADMIN)
    provider = factory.provider()
    _fail_first_commit(monkeypatch)

    assert client.delete(f"/providers/{provider.id}", headers=auth(admin)).status_code == 204
    assert db.query(Provider).filter(Provider.id == provider.id).first() is None


def test_provider_hard_delete_fallback_refuses_when_bookings_reference_it(client, factory, db, monkeypatch):
    admin = factory.user(Role.ADMIN)
    provider = factory.provider()
    factory.booking(status=BookingStatus.ASSIGNED, provider=provider)
    _fail_first_commit(monkeypatch)

    with pytest.raises(OperationalError):
        client.delete(f"/providers/{provider.id}", headers=auth(admin))

    monkeypatch.undo()
    db.expire_all()
    stored = db.query(Provider).filter(Provider.id == provider.id).one()
    assert stored.is_deleted is False
