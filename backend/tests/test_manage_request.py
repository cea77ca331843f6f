from datetime import date, time, timedelta
from decimal import Decimal

from fastapi.testclient import TestClient

import app.main as main_module
from app.db.models import BookingRequest, ConfirmedBooking, Package
from app.main import app


client = TestClient(app)

TARGET = date.today() + timedelta(days=14)
ADMIN_HEADERS = {"X-Admin-Key": "super-secret"}


class FakeQuery:
    def __init__(self, session, model):
        self.session = session
        self.model = model

    def filter(self, *_criteria):
        return self

    def order_by(self, *_clauses):
        return self

    def with_for_update(self):
        return self

    def all(self):
        return list(self.session.store.get(self.model, []))


class FakeSession:
    def __init__(self, packages=None, requests=None, bookings=None):
        self.store = {
            Package: list(packages or []),
            BookingRequest: list(requests or []),
            ConfirmedBooking: list(bookings or []),
        }
        self.next_id = {BookingRequest: 100, ConfirmedBooking: 50}
        self.commits = 0
        self.rollbacks = 0
        self.concurrent_updates = {}

    def query(self, model):
        return FakeQuery(self, model)

    def add(self, row):
        model = type(row)
        if getattr(row, "id", None) is None and model in self.next_id:
            row.id = self.next_id[model]
            self.next_id[model] += 1
        if model in self.store and row not in self.store[model]:
            self.store[model].append(row)

    def refresh(self, row):
        for attr, value in self.concurrent_updates.pop(id(row), {}).items():
            setattr(row, attr, value)

    def flush(self):
        return None

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        return None


def _admin_env(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("ADMIN_API_KEY", "super-secret")


def _package():
    return Package(
        id=1,
        package_name="Premium",
        price=Decimal("450.00"),
        duration_hours=3,
        status=True,
        display=True,
    )


def _request(request_id, start_hour, status="pending", user_id=8):
    return BookingRequest(
        id=request_id,
        package_id=1,
        user_id=user_id,
        event_date=TARGET,
        event_time=time(start_hour, 0),
        event_address="7 Bay St",
        event_name=f"Event {request_id}",
        status=status,
    )


def test_accept_creates_confirmed_booking(monkeypatch):
    _admin_env(monkeypatch)
    request = _request(1, 10)
    fake_session = FakeSession(packages=[_package()], requests=[request])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/admin/bookingRequest/1/accept", headers=ADMIN_HEADERS)

    body = response.json()
    assert response.status_code == 200
    assert body["ok"] is True
    assert body["data"]["booking_request"]["status"] == "accepted"
    confirmed = body["data"]["confirmed_booking"]
    assert confirmed["booking_id"] == 50
    assert confirmed["booking_status"] == "scheduled"
    assert confirmed["payment_status"] == "unpaid"
    assert confirmed["total_booking_price"] == "450.00"
    assert request.status == "accepted"
    assert len(fake_session.store[ConfirmedBooking]) == 1


def test_accept_rejects_overlap_with_accepted_booking(monkeypatch):
    _admin_env(monkeypatch)
    fake_session = FakeSession(
        packages=[_package()],
        requests=[_request(1, 10, status="accepted"), _request(2, 15)],
    )
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/admin/bookingRequest/2/accept", headers=ADMIN_HEADERS)

    body = response.json()
    assert response.status_code == 409
    assert body["error_code"] == "BOOKING_CONFLICT"
    assert body["message"] == "Request conflicts with an accepted booking"
    assert body["conflicts"] == [1]
    assert fake_session.store[ConfirmedBooking] == []


def test_accept_ignores_own_interval(monkeypatch):
    _admin_env(monkeypatch)
    fake_session = FakeSession(
        packages=[_package()],
        requests=[_request(1, 10, status="accepted"), _request(2, 17)],
    )
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/admin/bookingRequest/2/accept", headers=ADMIN_HEADERS)

    assert response.status_code == 200


def test_accept_requires_pending_request(monkeypatch):
    _admin_env(monkeypatch)
    fake_session = FakeSession(packages=[_package()], requests=[_request(1, 10, status="rejected")])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/admin/bookingRequest/1/accept", headers=ADMIN_HEADERS)

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_BOOKING_STATE"


def test_accept_unknown_request_returns_404(monkeypatch):
    _admin_env(monkeypatch)
    monkeypatch.setattr(main_module, "SessionLocal", lambda: FakeSession(packages=[_package()]))

    response = client.patch("/v1/admin/bookingRequest/99/accept", headers=ADMIN_HEADERS)

    assert response.status_code == 404
    assert response.json()["error_code"] == "BOOKING_NOT_FOUND"


def test_reject_frees_the_slot(monkeypatch):
    _admin_env(monkeypatch)
    request = _request(1, 10)
    fake_session = FakeSession(packages=[_package()], requests=[request])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/admin/bookingRequest/1/reject", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert request.status == "rejected"

    response = client.get("/v1/availability/day", params={"date": TARGET.isoformat()})
    assert response.json()["packages"][0]["status"] == "available"


def test_customer_cancels_accepted_booking(monkeypatch):
    request = _request(1, 10, status="accepted")
    booking = ConfirmedBooking(id=3, request_id=1, booking_status="scheduled")
    fake_session = FakeSession(packages=[_package()], requests=[request], bookings=[booking])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch(
        "/v1/customer/bookingRequest/1/cancel",
        headers={"X-User-Id": "8"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["booking_request"]["status"] == "cancelled"
    assert request.status == "cancelled"
    assert booking.booking_status == "cancelled"


def test_customer_cannot_cancel_someone_elses_request(monkeypatch):
    fake_session = FakeSession(packages=[_package()], requests=[_request(1, 10)])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch(
        "/v1/customer/bookingRequest/1/cancel",
        headers={"X-User-Id": "999"},
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "BOOKING_NOT_FOUND"


def test_cancel_is_idempotent(monkeypatch):
    request = _request(1, 10, status="cancelled")
    fake_session = FakeSession(packages=[_package()], requests=[request])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/customer/bookingRequest/1/cancel")

    assert response.status_code == 200
    assert fake_session.commits == 0


def test_completed_booking_cannot_be_cancelled(monkeypatch):
    request = _request(1, 10, status="accepted")
    booking = ConfirmedBooking(id=3, request_id=1, booking_status="completed")
    fake_session = FakeSession(packages=[_package()], requests=[request], bookings=[booking])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/customer/bookingRequest/1/cancel")

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_BOOKING_STATE"
    assert request.status == "accepted"


def test_admin_auth_required(monkeypatch):
    _admin_env(monkeypatch)

    response = client.patch("/v1/admin/bookingRequest/1/accept")

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "INVALID_ADMIN_API_KEY"


def test_admin_auth_not_configured_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)

    response = client.patch("/v1/admin/bookingRequest/1/reject", headers=ADMIN_HEADERS)

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "ADMIN_AUTH_NOT_CONFIGURED"


def test_admin_key_optional_in_dev(monkeypatch):
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    monkeypatch.setattr(
        main_module,
        "SessionLocal",
        lambda: FakeSession(packages=[_package()], requests=[_request(1, 10)]),
    )

    response = client.patch("/v1/admin/bookingRequest/1/reject")

    assert response.status_code == 200


def test_accept_sees_decision_committed_while_waiting_for_lock(monkeypatch):
    _admin_env(monkeypatch)
    request = _request(1, 10)
    fake_session = FakeSession(packages=[_package()], requests=[request])
    fake_session.concurrent_updates[id(request)] = {"status": "accepted"}
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.patch("/v1/admin/bookingRequest/1/accept", headers=ADMIN_HEADERS)

    body = response.json()
    assert response.status_code == 400
    assert body["error_code"] == "INVALID_BOOKING_STATE"
    assert fake_session.store[ConfirmedBooking] == []
    assert fake_session.commits == 0
    assert fake_session.rollbacks == 1


def _admin_booking_payload(start, **overrides):
    payload = {
        "package_id": 1,
        "user_id": 12,
        "event_date": TARGET.isoformat(),
        "event_time": start,
        "event_address": "5 Dock Rd",
        "event_name": "Walk-in wedding",
    }
    payload.update(overrides)
    return payload


def test_admin_create_and_confirm_booking(monkeypatch):
    _admin_env(monkeypatch)
    fake_session = FakeSession(packages=[_package()], requests=[_request(1, 10, status="accepted")])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.post(
        "/v1/admin/bookings",
        json=_admin_booking_payload("17:00"),
        headers=ADMIN_HEADERS,
    )

    body = response.json()
    assert response.status_code == 201
    assert body["ok"] is True
    request_data = body["data"]["booking_request"]
    confirmed = body["data"]["confirmed_booking"]
    assert request_data["request_id"] == 100
    assert request_data["status"] == "accepted"
    assert confirmed["booking_id"] == 50
    assert confirmed["request_id"] == 100
    assert confirmed["booking_status"] == "scheduled"
    assert confirmed["total_booking_price"] == "450.00"
    assert len(fake_session.store[BookingRequest]) == 2
    assert len(fake_session.store[ConfirmedBooking]) == 1
    assert fake_session.commits == 1


def test_admin_create_and_confirm_conflict_returns_409(monkeypatch):
    _admin_env(monkeypatch)
    fake_session = FakeSession(packages=[_package()], requests=[_request(1, 10, status="accepted")])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.post(
        "/v1/admin/bookings",
        json=_admin_booking_payload("15:00"),
        headers=ADMIN_HEADERS,
    )

    body = response.json()
    assert response.status_code == 409
    assert body["error_code"] == "BOOKING_CONFLICT"
    assert body["message"] == "Timeslot not available"
    assert body["conflicts"] == [1]
    assert len(fake_session.store[BookingRequest]) == 1
    assert fake_session.store[ConfirmedBooking] == []
    assert fake_session.commits == 0


def test_admin_create_and_confirm_blocks_later_requests(monkeypatch):
    _admin_env(monkeypatch)
    fake_session = FakeSession(packages=[_package()])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)

    response = client.post(
        "/v1/admin/bookings",
        json=_admin_booking_payload("12:00"),
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 201

    response = client.post(
        "/v1/customer/bookingRequest",
        json=_admin_booking_payload("13:00"),
    )
    assert response.status_code == 409
    assert response.json()["conflicts"] == [100]


def test_admin_create_and_confirm_requires_admin_key(monkeypatch):
    _admin_env(monkeypatch)

    response = client.post("/v1/admin/bookings", json=_admin_booking_payload("12:00"))

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "INVALID_ADMIN_API_KEY"
