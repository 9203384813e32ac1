from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shared.core.auth import create_access_token, validate_current_token
from shared.core.database import get_leasing_db, get_leasing_session_factory
from shared.core.schemas import UserToken
from leasing_service.app.core.clock import get_now
from leasing_service.app.main import app

ALL_PERMISSIONS = ["billing.read", "billing.manage", "lease.read", "lease.write"]
NOW = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)

LEASE_PAYLOAD = {
    "start_date": "2024-01-01",
    "end_date": "2025-01-01",
    "base_rent_cents": 500000,
    "deposit_cents": 100000,
    "charges": [
        {"name": "Internet", "mode": "fixed", "fixed_amount_cents": 5000},
        {"name": "Water", "mode": "metered", "unit_price_cents": 500, "unit_name": "m3"},
    ],
}


@pytest.fixture
def user(org_id):
    return UserToken(user_id="manager-1", org_id=org_id, permissions=list(ALL_PERMISSIONS))


@pytest.fixture
def client(session_factory, user):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_leasing_db] = override_db
    app.dependency_overrides[get_leasing_session_factory] = lambda: session_factory
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[validate_current_token] = lambda: user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def lease(client):
    response = client.post("/api/leases/", json=LEASE_PAYLOAD)
    assert response.status_code == 200
    return response.json()["data"]


@pytest.fixture
def invoices(client, lease):
    """Bill the lease through NOW and return its invoices by period start."""
    response = client.post("/api/billing/run")
    assert response.status_code == 200
    listed = client.get("/api/invoices/all", params={"lease_id": lease["id"]}).json()["data"]
    return sorted(listed["invoices"], key=lambda i: i["period_start"])


def item_named(invoice, name):
    return next(i for i in invoice["items"] if i["name"] == name)


def confirm_water(client, invoice, meter_end):
    water = item_named(invoice, "Water")
    return client.post(
        f"/api/invoices/{invoice['id']}/items/{water['id']}/confirm-reading",
        json={"meter_end": meter_end},
    )


class TestLeases:
    def test_create_lease(self, lease, org_id):
        assert lease["status"] == "active"
        assert lease["org_id"] == str(org_id)
        assert [c["name"] for c in lease["charges"]] == ["Internet", "Water"]

    def test_create_draft_lease_and_activate(self, client):
        created = client.post("/api/leases/", json={**LEASE_PAYLOAD, "activate": False}).json()
        assert created["data"]["status"] == "draft"

        response = client.post(f"/api/leases/{created['data']['id']}/activate")
        assert response.json()["data"]["status"] == "active"

    def test_metered_charge_needs_unit_price(self, client):
        payload = {**LEASE_PAYLOAD, "charges": [{"name": "Power", "mode": "metered"}]}
        response = client.post("/api/leases/", json=payload)
        assert response.status_code == 422
        assert response.json()["status_code"] == "201"

    def test_interval_not_multiple_of_cycle_is_rejected(self, client):
        payload = {**LEASE_PAYLOAD, "billing_cycle_months": 5,
                   "rent_increase_type": "fixed", "rent_increase_value": "100",
                   "rent_increase_interval_months": 12}
        response = client.post("/api/leases/", json=payload)
        assert response.status_code == 422
        assert response.json()["status_code"] == "400"

    def test_terminate_clips_end_date(self, client, lease):
        response = client.post(f"/api/leases/{lease['id']}/terminate",
                               json={"terminated_on": "2024-02-15"})
        data = response.json()["data"]
        assert data["status"] == "terminated"
        assert data["end_date"] == "2024-02-15"
        assert data["terminated_at"] == "2024-02-15"

        run = client.post("/api/billing/run").json()["data"]
        assert run["created"] == 2
        periods = client.get("/api/invoices/all", params={"lease_id": lease["id"]}).json()["data"]["invoices"]
        assert max(i["period_end"] for i in periods) == "2024-02-15"

    def test_end_clips_to_today_and_bills_up_to_it(self, client, lease):
        data = client.post(f"/api/leases/{lease['id']}/end").json()["data"]
        assert data["status"] == "ended"
        assert data["end_date"] == "2024-03-15"

        run = client.post("/api/billing/run").json()["data"]
        assert run["created"] == 3
        assert client.post("/api/billing/run").json()["data"]["created"] == 0

    def test_ended_lease_cannot_be_terminated(self, client, lease):
        client.post(f"/api/leases/{lease['id']}/end")
        response = client.post(f"/api/leases/{lease['id']}/terminate",
                               json={"terminated_on": "2024-02-15"})
        assert response.status_code == 409
        assert response.json()["status_code"] == "404"


class TestBillingRun:
    def test_run_reports_created_invoices(self, client, lease):
        report = client.post("/api/billing/run").json()
        assert report["status"] == "Success"
        assert report["data"]["created"] == 3
        assert report["data"]["errored"] == 0

        again = client.post("/api/billing/run").json()["data"]
        assert again["created"] == 0

    def test_first_invoice_carries_deposit(self, invoices):
        first = invoices[0]
        assert [i["kind"] for i in first["items"]] == ["rent", "deposit", "charge", "charge"]
        assert first["total_amount_cents"] == 500000 + 100000 + 5000
        assert item_named(first, "Water")["status"] == "pending_reading"
        assert item_named(first, "Water")["amount_cents"] is None


class TestInvoiceLifecycle:
    def test_reading_confirm_and_pay(self, client, invoices):
        january = invoices[0]

        response = confirm_water(client, january, 42)
        assert response.status_code == 200
        data = response.json()["data"]
        water = item_named(data, "Water")
        assert water["status"] == "confirmed"
        assert water["amount_cents"] == 21000
        assert Decimal(str(water["quantity"])) == 42
        assert data["total_amount_cents"] == 500000 + 100000 + 5000 + 21000

        issued = client.post(f"/api/invoices/{january['id']}/confirm").json()["data"]
        assert issued["status"] == "issued"
        # due 2024-01-01, today is 2024-03-15
        assert issued["display_status"] == "overdue"

        paid = client.post(f"/api/invoices/{january['id']}/pay").json()["data"]
        assert paid["status"] == "paid"
        assert paid["display_status"] == "paid"
        assert paid["total_amount_cents"] == 626000
        assert {(h["from_status"], h["to_status"]) for h in paid["history"]} == {
            ("draft", "issued"), ("issued", "paid")}
        assert {h["changed_by"] for h in paid["history"]} == {"manager-1"}

    def test_status_filters_follow_display_status(self, client, lease, invoices):
        confirm_water(client, invoices[0], 10)
        client.post(f"/api/invoices/{invoices[0]['id']}/confirm")

        def total(status):
            return client.get("/api/invoices/all", params={"status": status}).json()["data"]["total"]

        assert total("overdue") == 1
        assert total("issued") == 0
        assert total("draft") == 2
        assert total("all") == 3

    def test_get_single_invoice(self, client, invoices):
        response = client.get(f"/api/invoices/{invoices[1]['id']}")
        data = response.json()["data"]
        assert data["period_start"] == "2024-02-01"
        assert data["period_end"] == "2024-03-01"
        assert data["display_status"] == "draft"

    def test_confirm_with_pending_reading_is_rejected(self, client, invoices):
        response = client.post(f"/api/invoices/{invoices[0]['id']}/confirm")
        assert response.status_code == 409
        body = response.json()
        assert body["status"] == "Failure"
        assert body["status_code"] == "403"
        assert "Water" in body["message"]

    def test_reading_below_start_is_rejected(self, client, invoices):
        invoice = invoices[0]
        water = item_named(invoice, "Water")
        response = client.post(
            f"/api/invoices/{invoice['id']}/items/{water['id']}/confirm-reading",
            json={"meter_start": 50, "meter_end": 40},
        )
        assert response.status_code == 400
        assert response.json()["status_code"] == "402"

        unchanged = client.get(f"/api/invoices/{invoice['id']}").json()["data"]
        assert item_named(unchanged, "Water")["status"] == "pending_reading"

    def test_negative_reading_fails_validation(self, client, invoices):
        response = confirm_water(client, invoices[0], -1)
        assert response.status_code == 422
        assert response.json()["status_code"] == "201"

    def test_pay_draft_is_rejected(self, client, invoices):
        response = client.post(f"/api/invoices/{invoices[1]['id']}/pay")
        assert response.status_code == 409
        assert response.json()["status_code"] == "404"

    def test_void_then_rebuild(self, client, invoices):
        february = invoices[1]
        voided = client.post(f"/api/invoices/{february['id']}/void").json()["data"]
        assert voided["status"] == "void"

        response = client.post(f"/api/invoices/{february['id']}/rebuild")
        assert response.json()["status_code"] == "102"
        rebuilt = response.json()["data"]
        assert rebuilt["id"] != february["id"]
        assert rebuilt["period_start"] == "2024-02-01"
        assert rebuilt["status"] == "draft"

    def test_rebuild_requires_void(self, client, invoices):
        response = client.post(f"/api/invoices/{invoices[1]['id']}/rebuild")
        assert response.status_code == 409
        assert response.json()["status_code"] == "404"

    def test_unknown_invoice(self, client, lease):
        response = client.get(f"/api/invoices/{lease['id']}")
        assert response.status_code == 404
        assert response.json()["status_code"] == "202"


class TestBillingEventsApi:
    def test_list_and_dispatch(self, client, invoices):
        events = client.get("/api/billing/events").json()["data"]
        types = [e["event_type"] for e in events]
        assert types.count("InvoiceCreated") == 3
        assert types.count("ItemPendingReading") == 3

        event_id = events[0]["id"]
        dispatched = client.post(f"/api/billing/events/{event_id}/dispatched").json()["data"]
        assert dispatched["dispatched_at"] is not None

        pending = client.get("/api/billing/events").json()["data"]
        assert event_id not in [e["id"] for e in pending]

        filtered = client.get("/api/billing/events",
                              params={"event_type": "ItemPendingReading"}).json()["data"]
        assert {e["event_type"] for e in filtered} == {"ItemPendingReading"}


class TestAuthorization:
    def test_missing_permission_is_forbidden(self, client, user):
        user.permissions = ["billing.read"]
        response = client.post("/api/billing/run")
        assert response.status_code == 403
        body = response.json()
        assert body["status_code"] == "301"
        assert "billing.manage" in body["message"]

    def test_signed_token_is_accepted(self, client, org_id):
        app.dependency_overrides.pop(validate_current_token)
        token = create_access_token(
            {"user_id": "manager-2", "org_id": str(org_id), "permissions": ["billing.read"]},
            expires_minutes=5)

        response = client.get("/api/invoices/all", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 0

    def test_bad_token_is_unauthorized(self, client):
        app.dependency_overrides.pop(validate_current_token)
        response = client.get("/api/invoices/all", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["status"] == "Failure"
        assert response.json()["status_code"] == "300"
