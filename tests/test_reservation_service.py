"""
Tests for ReservationService: overlap detection and the reservation lifecycle.
"""

from datetime import timedelta

import pytest

from criollo_api.services.domain import ReservationService, TableService
from criollo_shared.config.constants import ReservationStatus, TableStatus
from criollo_shared.utils.clock import now_local
from criollo_shared.utils.exceptions import (
    ConflictError,
    InvalidReservationStateError,
    ReservationConflictError,
    TableInvalidTransitionError,
    ValidationError,
)
from criollo_shared.utils.schemas import ReservationCreate, ReservationUpdate


def _book(db_session, client, table, start, party_size=2, duration=120):
    return ReservationService(db_session).create(
        ReservationCreate(
            client_id=client.id,
            table_id=table.id,
            party_size=party_size,
            start_at=start,
            duration_minutes=duration,
        )
    )


class TestReservationOverlap:

    def test_overlapping_window_is_rejected(self, db_session, seed_client, table_by_number, tomorrow_at):
        """[19:00, 21:00) and [20:00, 22:00) on the same table conflict."""
        table = table_by_number(3)
        _book(db_session, seed_client, table, tomorrow_at(19))

        with pytest.raises(ReservationConflictError):
            _book(db_session, seed_client, table, tomorrow_at(20))

    def test_back_to_back_windows_are_allowed(self, db_session, seed_client, table_by_number, tomorrow_at):
        """[19:00, 21:00) and [21:00, 23:00) touch but do not overlap."""
        table = table_by_number(3)
        _book(db_session, seed_client, table, tomorrow_at(19))

        second = _book(db_session, seed_client, table, tomorrow_at(21))

        assert second.status == ReservationStatus.PENDING

    def test_cancelled_reservation_frees_the_window(self, db_session, seed_client, table_by_number, tomorrow_at):
        table = table_by_number(3)
        first = _book(db_session, seed_client, table, tomorrow_at(19))
        ReservationService(db_session).cancel(first.id, "Cambio de planes")

        second = _book(db_session, seed_client, table, tomorrow_at(19, 30))

        assert second.table_id == table.id

    def test_same_time_on_another_table_is_allowed(self, db_session, seed_client, table_by_number, tomorrow_at):
        _book(db_session, seed_client, table_by_number(3), tomorrow_at(19))
        other = _book(db_session, seed_client, table_by_number(4), tomorrow_at(19))
        assert other.table_id == table_by_number(4).id

    def test_update_cannot_move_into_another_booking(self, db_session, seed_client, table_by_number, tomorrow_at):
        table = table_by_number(3)
        _book(db_session, seed_client, table, tomorrow_at(19))
        later = _book(db_session, seed_client, table, tomorrow_at(21))

        with pytest.raises(ReservationConflictError):
            ReservationService(db_session).update(later.id, ReservationUpdate(start_at=tomorrow_at(20)))


class TestReservationValidation:

    def test_party_larger_than_capacity(self, db_session, seed_client, table_by_number, tomorrow_at):
        with pytest.raises(ValidationError):
            _book(db_session, seed_client, table_by_number(1), tomorrow_at(19), party_size=5)

    def test_past_start_rejected(self, db_session, seed_client, table_by_number):
        with pytest.raises(ValidationError):
            _book(db_session, seed_client, table_by_number(3), now_local() - timedelta(hours=1))

    def test_table_picked_automatically(self, db_session, seed_client, tomorrow_at):
        """Without a table the smallest one that seats the party is chosen."""
        reservation = ReservationService(db_session).create(
            ReservationCreate(client_id=seed_client.id, party_size=7, start_at=tomorrow_at(20))
        )
        assert reservation.table.capacity == 8

    def test_no_table_large_enough(self, db_session, seed_client, tomorrow_at):
        with pytest.raises(ConflictError):
            ReservationService(db_session).create(
                ReservationCreate(client_id=seed_client.id, party_size=40, start_at=tomorrow_at(20))
            )


class TestReservationLifecycle:

    def test_confirm_arrive_complete(self, db_session, seed_client, table_by_number, tomorrow_at):
        table = table_by_number(3)
        reservation = _book(db_session, seed_client, table, tomorrow_at(19))
        service = ReservationService(db_session)

        service.confirm(reservation.id)
        assert reservation.status == ReservationStatus.CONFIRMED
        # Tomorrow is outside the hold window
        assert table.status == TableStatus.FREE

        service.mark_arrived(reservation.id)
        assert reservation.status == ReservationStatus.IN_PROGRESS
        assert table.status == TableStatus.OCCUPIED

        service.complete(reservation.id)
        assert reservation.status == ReservationStatus.COMPLETED
        assert table.status == TableStatus.FREE

    def test_confirm_within_hold_window_reserves_table(self, db_session, seed_client, table_by_number):
        table = table_by_number(3)
        reservation = _book(db_session, seed_client, table, now_local() + timedelta(minutes=20))

        ReservationService(db_session).confirm(reservation.id)

        assert table.status == TableStatus.RESERVED

    def test_cannot_complete_pending(self, db_session, seed_client, table_by_number, tomorrow_at):
        reservation = _book(db_session, seed_client, table_by_number(3), tomorrow_at(19))
        with pytest.raises(InvalidReservationStateError):
            ReservationService(db_session).complete(reservation.id)

    def test_cancel_requires_reason(self, db_session, seed_client, table_by_number, tomorrow_at):
        reservation = _book(db_session, seed_client, table_by_number(3), tomorrow_at(19))
        with pytest.raises(ValidationError):
            ReservationService(db_session).cancel(reservation.id, "")

    def test_stats_no_show_rate(self, db_session, seed_client, table_by_number, tomorrow_at):
        service = ReservationService(db_session)
        first = _book(db_session, seed_client, table_by_number(3), tomorrow_at(12))
        _book(db_session, seed_client, table_by_number(4), tomorrow_at(12))
        service.mark_no_show(first.id)

        day = tomorrow_at(12).date()
        stats = service.stats(day, day)

        assert stats.total == 2
        assert stats.by_status["NO_SHOW"] == 1
        assert stats.no_show_rate == 50.0

    def test_cancel_confirmed(self, db_session, seed_client, table_by_number, tomorrow_at):
        reservation = _book(db_session, seed_client, table_by_number(3), tomorrow_at(19))
        service = ReservationService(db_session)
        service.confirm(reservation.id)

        service.cancel(reservation.id, "El cliente llamó para cancelar")

        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.cancellation_reason == "El cliente llamó para cancelar"

    @pytest.mark.parametrize(
        "close",
        [lambda service, rid: service.cancel(rid, "Error"), lambda service, rid: service.mark_no_show(rid)],
        ids=["cancel", "no_show"],
    )
    def test_seated_party_cannot_be_cancelled_or_no_show(
        self, db_session, seed_client, table_by_number, tomorrow_at, close
    ):
        reservation = _book(db_session, seed_client, table_by_number(3), tomorrow_at(19))
        service = ReservationService(db_session)
        service.confirm(reservation.id)
        service.mark_arrived(reservation.id)

        with pytest.raises(InvalidReservationStateError):
            close(service, reservation.id)


class TestReservationTableOwnership:

    def test_cancel_leaves_walk_in_table_occupied(self, db_session, seed_client, table_by_number, tomorrow_at):
        table = table_by_number(3)
        TableService(db_session).occupy(table.id)
        reservation = _book(db_session, seed_client, table, tomorrow_at(19))

        ReservationService(db_session).cancel(reservation.id, "Cambio de planes")

        assert table.status == TableStatus.OCCUPIED

    def test_cancel_keeps_hold_of_another_reservation(
        self, db_session, seed_client, table_by_number, tomorrow_at
    ):
        table = table_by_number(3)
        service = ReservationService(db_session)
        soon = _book(db_session, seed_client, table, now_local() + timedelta(minutes=20))
        service.confirm(soon.id)
        later = _book(db_session, seed_client, table, tomorrow_at(19))

        service.cancel(later.id, "Cambio de planes")

        assert table.status == TableStatus.RESERVED
        assert table.held_by_reservation_id == soon.id

    def test_no_show_releases_own_hold(self, db_session, seed_client, table_by_number):
        table = table_by_number(3)
        service = ReservationService(db_session)
        reservation = _book(db_session, seed_client, table, now_local() + timedelta(minutes=20))
        service.confirm(reservation.id)

        service.mark_no_show(reservation.id)

        assert table.status == TableStatus.FREE
        assert table.held_by_reservation_id is None

    def test_arrival_cannot_take_table_held_for_another(
        self, db_session, seed_client, table_by_number, tomorrow_at
    ):
        table = table_by_number(3)
        service = ReservationService(db_session)
        held = _book(db_session, seed_client, table, now_local() + timedelta(minutes=20))
        service.confirm(held.id)
        other = _book(db_session, seed_client, table, tomorrow_at(19))
        service.confirm(other.id)

        with pytest.raises(TableInvalidTransitionError):
            service.mark_arrived(other.id)
