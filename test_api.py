"""
API endpoint tests for the Room Reservation API
The app keeps module-level in-memory state, so every test books its own room
on dates far in the future.
"""

import pytest
from fastapi.testclient import TestClient
from datetime import date, timedelta
from uuid import uuid4

from main import app


# ============================================================================
# FIXTURES
# ============================================================================

def _login(client, username, password):
    response = client.post("/token", data={"username": username, "password": password})
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    """FastAPI test client"""
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Admin authentication headers"""
    return _login(client, "admin", "admin123")


@pytest.fixture
def manager_headers(client):
    return _login(client, "manager", "manager123")


@pytest.fixture
def guest_headers(client):
    return _login(client, "guest", "guest123")


@pytest.fixture
def booking_day():
    return date.today() + timedelta(days=400)


@pytest.fixture
def room(client, auth_headers):
    """A fresh room with hourly and nightly rates"""
    response = client.post(
        "/api/rooms",
        json={
            "code": f"API-{uuid4().hex[:8]}",
            "name": "API Test Room",
            "capacity": 2,
            "rates": {"hourly": "50", "nightly": "300"},
            "min_hours": 3
        },
        headers=auth_headers
    )
    assert response.status_code == 201
    return response.json()


def _hourly_payload(room, day, start="10:00", end="13:00"):
    return {
        "room_id": room["room_id"],
        "tariff_type": "HOUR",
        "start_date": day.isoformat(),
        "end_date": day.isoformat(),
        "start_time": start,
        "end_time": end
    }


# ============================================================================
# HEALTH, ENUMS & AUTH
# ============================================================================

class TestHealthAndEnumsAPI:
    """Test health and enum reference endpoints"""

    @pytest.mark.api
    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.api
    def test_tariff_type_enum(self, client):
        response = client.get("/api/enums/tariff-type")
        assert response.json()["values"] == ["HOUR", "NIGHT", "MONTH"]

    @pytest.mark.api
    def test_reservation_status_enum(self, client):
        response = client.get("/api/enums/reservation-status")
        assert "RELEASED" in response.json()["values"]


class TestAuthenticationAPI:
    """Test token issuing and role checks"""

    @pytest.mark.api
    @pytest.mark.security
    def test_login_success(self, client):
        response = client.post("/token", data={"username": "manager", "password": "manager123"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    @pytest.mark.api
    @pytest.mark.security
    def test_login_wrong_password(self, client):
        response = client.post("/token", data={"username": "admin", "password": "wrong"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_users_me(self, client, guest_headers):
        response = client.get("/users/me", headers=guest_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "GUEST"

    @pytest.mark.api
    @pytest.mark.security
    def test_missing_token(self, client):
        response = client.get("/api/rooms")
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_invalid_token(self, client):
        response = client.get("/api/rooms", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_guest_cannot_create_room(self, client, guest_headers):
        response = client.post(
            "/api/rooms",
            json={"code": "NOPE", "name": "Nope", "rates": {"nightly": "100"}},
            headers=guest_headers
        )
        assert response.status_code == 403


# ============================================================================
# ROOMS
# ============================================================================

class TestRoomAPI:
    """Test room endpoints"""

    @pytest.mark.api
    def test_create_room(self, room):
        assert room["occupancy"] == "AVAILABLE"
        assert room["offered_tariffs"] == ["HOUR", "NIGHT"]
        assert room["min_hours"] == 3

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_duplicate_room_code(self, client, auth_headers, room):
        response = client.post(
            "/api/rooms",
            json={"code": room["code"], "name": "Copy", "rates": {"nightly": "100"}},
            headers=auth_headers
        )
        assert response.status_code == 409

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_room_without_rates(self, client, auth_headers):
        response = client.post(
            "/api/rooms",
            json={"code": f"API-{uuid4().hex[:8]}", "name": "Free", "rates": {}},
            headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "rates"

    @pytest.mark.api
    def test_get_and_deactivate_room(self, client, auth_headers, room):
        response = client.get(f"/api/rooms/{room['room_id']}", headers=auth_headers)
        assert response.status_code == 200

        response = client.patch(
            f"/api/rooms/{room['room_id']}/active", json={"active": False}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["active"] is False

        active_ids = [r["room_id"] for r in client.get("/api/rooms?active=true", headers=auth_headers).json()]
        assert room["room_id"] not in active_ids

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_get_room_not_found(self, client, auth_headers):
        response = client.get(f"/api/rooms/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.api
    def test_update_room(self, client, manager_headers, room, booking_day):
        response = client.patch(
            f"/api/rooms/{room['room_id']}",
            json={"rates": {"hourly": "80"}, "min_hours": 2, "capacity": 4},
            headers=manager_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["offered_tariffs"] == ["HOUR"]
        assert data["min_hours"] == 2
        assert data["capacity"] == 4
        assert data["name"] == room["name"]
        assert data["version"] == room["version"] + 1

        quote = client.post(
            "/api/quotes", json=_hourly_payload(room, booking_day, "10:00", "12:00"), headers=manager_headers
        )
        assert float(quote.json()["total_amount"]) == 160

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_update_room_validation(self, client, auth_headers, guest_headers, room):
        forbidden = client.patch(f"/api/rooms/{room['room_id']}", json={"name": "Mine"}, headers=guest_headers)
        assert forbidden.status_code == 403

        no_rates = client.patch(f"/api/rooms/{room['room_id']}", json={"rates": {}}, headers=auth_headers)
        assert no_rates.status_code == 400
        assert no_rates.json()["detail"]["field"] == "rates"

        missing = client.patch(f"/api/rooms/{uuid4()}", json={"name": "Ghost"}, headers=auth_headers)
        assert missing.status_code == 404


# ============================================================================
# QUOTES, AVAILABILITY & SLOTS
# ============================================================================

class TestAvailabilityAPI:
    """Test quote, availability search and slot endpoints"""

    @pytest.mark.api
    def test_quote_below_minimum(self, client, guest_headers, room, booking_day):
        response = client.post(
            "/api/quotes", json=_hourly_payload(room, booking_day, "10:00", "12:00"), headers=guest_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["unit_count"] == 3
        assert float(data["total_amount"]) == 150
        assert data["currency"] == "BOB"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_quote_unknown_tariff(self, client, guest_headers, room, booking_day):
        payload = _hourly_payload(room, booking_day)
        payload["tariff_type"] = "WEEK"
        response = client.post("/api/quotes", json=payload, headers=guest_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "tariff_type"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_quote_missing_rate(self, client, guest_headers, room, booking_day):
        payload = {
            "room_id": room["room_id"],
            "tariff_type": "MONTH",
            "start_date": booking_day.isoformat(),
            "end_date": (booking_day + timedelta(days=30)).isoformat()
        }
        response = client.post("/api/quotes", json=payload, headers=guest_headers)
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_availability_search_inverted_window(self, client, auth_headers, room, booking_day):
        response = client.post(
            "/api/availability/search",
            json={
                "start_date": booking_day.isoformat(),
                "end_date": booking_day.isoformat(),
                "start_time": "12:00",
                "end_time": "10:00",
                "tariff_type": "HOUR",
                "room_id": room["room_id"]
            },
            headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "end_time"

    @pytest.mark.api
    def test_availability_search(self, client, auth_headers, room, booking_day):
        client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)

        response = client.post(
            "/api/availability/search",
            json={
                "start_date": booking_day.isoformat(),
                "end_date": booking_day.isoformat(),
                "start_time": "12:00",
                "end_time": "15:00",
                "room_id": room["room_id"]
            },
            headers=auth_headers
        )
        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["available"] is False
        assert rows[0]["conflicts"][0]["frees_at"].endswith("13:00:00")

    @pytest.mark.api
    def test_slot_suggestions(self, client, auth_headers, room, booking_day):
        client.post(
            "/api/reservations", json=_hourly_payload(room, booking_day, "09:00", "12:00"), headers=auth_headers
        )
        response = client.get(
            f"/api/rooms/{room['room_id']}/slots",
            params={"date": booking_day.isoformat()},
            headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["min_hours"] == 3
        assert data["suggestions"][0]["start"] == "06:00:00"
        assert data["suggestions"][0]["maximum_end"] == "09:00:00"
        assert data["suggestions"][1]["start"] == "12:00:00"


# ============================================================================
# RESERVATIONS & STAYS
# ============================================================================

class TestReservationAPI:
    """Test reservation endpoints"""

    @pytest.mark.api
    def test_guest_booking_is_pending(self, client, guest_headers, room, booking_day):
        response = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=guest_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["stay_state"] == "NOT_CHECKED_IN"
        assert data["created_by"] == "guest"

        mine = client.get("/api/reservations/mine", headers=guest_headers).json()
        assert data["reservation_id"] in [r["reservation_id"] for r in mine]

    @pytest.mark.api
    def test_staff_booking_is_confirmed(self, client, manager_headers, room, booking_day):
        response = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=manager_headers)
        assert response.status_code == 201
        assert response.json()["status"] == "CONFIRMED"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_overlapping_booking_conflict(self, client, auth_headers, room, booking_day):
        first = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        assert first.status_code == 201

        response = client.post(
            "/api/reservations", json=_hourly_payload(room, booking_day, "11:00", "14:00"), headers=auth_headers
        )
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["conflicts"][0]["reservation_id"] == first.json()["reservation_id"]
        assert "frees at" in detail["message"]

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_below_minimum_duration(self, client, auth_headers, room, booking_day):
        response = client.post(
            "/api/reservations", json=_hourly_payload(room, booking_day, "10:00", "12:59"), headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_guest_cannot_book_for_someone_else(self, client, guest_headers, room, booking_day):
        payload = _hourly_payload(room, booking_day)
        payload["guest_id"] = str(uuid4())
        response = client.post("/api/reservations", json=payload, headers=guest_headers)
        assert response.status_code == 403

    @pytest.mark.api
    @pytest.mark.security
    def test_guest_cannot_see_foreign_reservation(self, client, auth_headers, guest_headers, room, booking_day):
        created = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        reservation_id = created.json()["reservation_id"]

        assert client.get(f"/api/reservations/{reservation_id}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/reservations/{reservation_id}", headers=guest_headers).status_code == 404
        assert client.get("/api/reservations", headers=guest_headers).status_code == 403

    @pytest.mark.api
    def test_confirm_pending_reservation(self, client, guest_headers, manager_headers, room, booking_day):
        created = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=guest_headers)
        reservation_id = created.json()["reservation_id"]

        forbidden = client.post(
            f"/api/reservations/{reservation_id}/status", json={"status": "CONFIRMED"}, headers=guest_headers
        )
        assert forbidden.status_code == 403

        response = client.post(
            f"/api/reservations/{reservation_id}/status", json={"status": "CONFIRMED"}, headers=manager_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_completed_status_rejected(self, client, auth_headers, room, booking_day):
        created = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        response = client.post(
            f"/api/reservations/{created.json()['reservation_id']}/status",
            json={"status": "COMPLETED"},
            headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.api
    def test_list_reservations_by_room(self, client, auth_headers, room, booking_day):
        client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        response = client.get("/api/reservations", params={"room_id": room["room_id"]}, headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1


class TestStayAPI:
    """Test check-in/check-out endpoints"""

    @pytest.mark.api
    def test_check_in_and_check_out(self, client, auth_headers, room, booking_day):
        created = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        reservation_id = created.json()["reservation_id"]

        response = client.post(
            f"/api/reservations/{reservation_id}/check-in", json={"notes": "ID checked"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["stay_state"] == "CHECKED_IN"
        occupancy = client.get(f"/api/rooms/{room['room_id']}/occupancy", headers=auth_headers).json()
        assert occupancy["occupancy"] == "OCCUPIED"

        again = client.post(f"/api/reservations/{reservation_id}/check-in", json={}, headers=auth_headers)
        assert again.status_code == 409

        response = client.post(f"/api/reservations/{reservation_id}/check-out", json={}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        occupancy = client.get(f"/api/rooms/{room['room_id']}/occupancy", headers=auth_headers).json()
        assert occupancy["occupancy"] == "AVAILABLE"

        stay = client.get(f"/api/reservations/{reservation_id}/stay", headers=auth_headers).json()
        assert stay["state"] == "CHECKED_OUT"
        assert stay["checked_in_at"] is not None

        events = client.get(
            "/api/stay-events", params={"reservation_id": reservation_id}, headers=auth_headers
        ).json()
        assert sorted(e["kind"] for e in events) == ["CHECK_IN", "CHECK_OUT"]

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_check_out_without_check_in(self, client, auth_headers, room, booking_day):
        created = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        response = client.post(
            f"/api/reservations/{created.json()['reservation_id']}/check-out", json={}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.security
    def test_guest_cannot_check_in(self, client, guest_headers, auth_headers, room, booking_day):
        created = client.post("/api/reservations", json=_hourly_payload(room, booking_day), headers=auth_headers)
        response = client.post(
            f"/api/reservations/{created.json()['reservation_id']}/check-in", json={}, headers=guest_headers
        )
        assert response.status_code == 403

    @pytest.mark.api
    def test_night_stay_checkout_ceiling(self, client, auth_headers, room, booking_day):
        payload = {
            "room_id": room["room_id"],
            "tariff_type": "NIGHT",
            "start_date": booking_day.isoformat(),
            "end_date": (booking_day + timedelta(days=2)).isoformat()
        }
        response = client.post("/api/reservations", json=payload, headers=auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["unit_count"] == 2
        assert data["checkout_ceiling"] == f"{(booking_day + timedelta(days=2)).isoformat()}T12:00:00"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_stay_status_not_found(self, client, auth_headers):
        response = client.get(f"/api/reservations/{uuid4()}/stay", headers=auth_headers)
        assert response.status_code == 404
