"""
Tests for the reservation endpoints and their confirmation emails.
"""

import pytest


@pytest.fixture
def book(client, reception_headers, seed_client, table_by_number):
    def _book(start, table_number=3, party_size=2):
        return client.post(
            "/api/Reservacion",
            json={
                "client_id": seed_client.id,
                "table_id": table_by_number(table_number).id,
                "party_size": party_size,
                "start_at": start.isoformat(),
            },
            headers=reception_headers,
        )
    return _book


class TestCreateReservation:

    def test_create_sends_confirmation(self, book, tomorrow_at, mail_transport):
        response = book(tomorrow_at(19))

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["table_number"] == 3
        assert data["client_name"] == "María Rodríguez"
        assert data["duration_minutes"] == 120
        assert mail_transport.recipients == ["maria.rodriguez@gmail.com"]

    def test_overlap_returns_conflict(self, book, tomorrow_at):
        book(tomorrow_at(19))

        response = book(tomorrow_at(20))

        assert response.status_code == 409
        assert response.json()["code"] == "ReservationConflict"

    def test_waiter_cannot_book(self, client, waiter_headers, seed_client, tomorrow_at):
        response = client.post(
            "/api/Reservacion",
            json={"client_id": seed_client.id, "party_size": 2, "start_at": tomorrow_at(19).isoformat()},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_party_size_must_be_positive(self, client, reception_headers, seed_client, tomorrow_at):
        response = client.post(
            "/api/Reservacion",
            json={"client_id": seed_client.id, "party_size": 0, "start_at": tomorrow_at(19).isoformat()},
            headers=reception_headers,
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "party_size"


class TestReservationLifecycleApi:

    def test_confirm_arrive_complete(self, client, book, tomorrow_at, reception_headers, waiter_headers):
        reservation = book(tomorrow_at(19)).json()
        rid = reservation["id"]

        confirmed = client.post(f"/api/Reservacion/{rid}/confirmar", headers=reception_headers)
        assert confirmed.json()["status"] == "CONFIRMED"

        arrived = client.post(f"/api/Reservacion/{rid}/iniciar", headers=waiter_headers)
        assert arrived.json()["status"] == "IN_PROGRESS"
        table = client.get(f"/api/Mesas/{reservation['table_id']}", headers=waiter_headers).json()
        assert table["status"] == "OCCUPIED"

        completed = client.post(f"/api/Reservacion/{rid}/completar", headers=waiter_headers)
        assert completed.json()["status"] == "COMPLETED"

    def test_cancel_sends_notice(self, client, book, tomorrow_at, reception_headers, mail_transport):
        rid = book(tomorrow_at(19)).json()["id"]

        response = client.post(
            f"/api/Reservacion/{rid}/cancelar", json={"reason": "Viaje imprevisto"}, headers=reception_headers
        )

        assert response.json()["status"] == "CANCELLED"
        assert response.json()["cancellation_reason"] == "Viaje imprevisto"
        assert len(mail_transport.messages) == 2

    def test_cancel_without_reason(self, client, book, tomorrow_at, reception_headers):
        rid = book(tomorrow_at(19)).json()["id"]
        response = client.post(f"/api/Reservacion/{rid}/cancelar", json={}, headers=reception_headers)
        assert response.status_code == 400

    def test_complete_pending_rejected(self, client, book, tomorrow_at, reception_headers):
        rid = book(tomorrow_at(19)).json()["id"]

        response = client.post(f"/api/Reservacion/{rid}/completar", headers=reception_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidReservationState"


class TestReservationQueries:

    def test_list_by_day(self, client, book, tomorrow_at, reception_headers):
        book(tomorrow_at(13))
        book(tomorrow_at(20), table_number=4)

        response = client.get(
            "/api/Reservacion/dia", params={"fecha": tomorrow_at(0).date().isoformat()}, headers=reception_headers
        )

        assert [r["table_number"] for r in response.json()] == [3, 4]

    def test_availability_excludes_booked_table(self, client, book, tomorrow_at, reception_headers):
        book(tomorrow_at(19), table_number=3)

        response = client.get(
            "/api/Reservacion/disponibilidad",
            params={"fechaHora": tomorrow_at(19).isoformat(), "personas": 4},
            headers=reception_headers,
        )

        numbers = [t["number"] for t in response.json()]
        assert 3 not in numbers
        assert 4 in numbers

    def test_unknown_reservation(self, client, reception_headers):
        response = client.get("/api/Reservacion/4242", headers=reception_headers)
        assert response.status_code == 404
