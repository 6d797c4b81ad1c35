from datetime import date
from decimal import Decimal

import pytest

from stayhub.errors import ValidationError
from stayhub.models import Booking, BookingStatus
from stayhub.services.availability import is_available, overlaps


def d(day: int, month: int = 6) -> date:
    return date(2025, month, day)


class TestOverlaps:
    def test_back_to_back_is_not_a_conflict(self):
        assert not overlaps(d(1), d(5), d(5), d(7))
        assert not overlaps(d(5), d(7), d(1), d(5))

    def test_identical_ranges_conflict(self):
        assert overlaps(d(1), d(5), d(1), d(5))

    def test_nested_ranges_conflict(self):
        assert overlaps(d(1), d(10), d(3), d(4))
        assert overlaps(d(3), d(4), d(1), d(10))

    def test_partial_overlap_conflicts(self):
        assert overlaps(d(1), d(5), d(4), d(7))
        assert overlaps(d(4), d(7), d(1), d(5))

    def test_disjoint_ranges(self):
        assert not overlaps(d(1), d(3), d(10), d(12))


def _add_booking(database, seed, check_in, check_out, status=BookingStatus.CONFIRMED, room_id=None):
    with database.begin() as session:
        booking = Booking(
            guest_id=seed.guest_id,
            room_id=room_id or seed.room_id,
            check_in_date=check_in,
            check_out_date=check_out,
            guests=1,
            total_price=Decimal("100.00"),
            status=status,
        )
        session.add(booking)
        session.flush()
        return booking.id


class TestIsAvailable:
    def test_empty_room_is_available(self, database, seed):
        with database.session() as session:
            assert is_available(session, seed.room_id, d(1), d(5))

    @pytest.mark.parametrize(
        "check_in, check_out, expected",
        [
            (d(5), d(7), True),    # starts on the existing check-out
            (d(1), d(3), True),    # ends on the existing check-in
            (d(3), d(5), False),   # identical
            (d(2), d(6), False),   # contains
            (d(4), d(5), False),   # nested
            (d(4), d(9), False),   # overlaps the tail
            (d(1), d(4), False),   # overlaps the head
        ],
    )
    def test_boundaries_against_existing_booking(self, database, seed, check_in, check_out, expected):
        _add_booking(database, seed, d(3), d(5))
        with database.session() as session:
            assert is_available(session, seed.room_id, check_in, check_out) is expected

    def test_cancelled_bookings_do_not_block(self, database, seed):
        _add_booking(database, seed, d(3), d(5), status=BookingStatus.CANCELLED)
        with database.session() as session:
            assert is_available(session, seed.room_id, d(3), d(5))

    def test_other_rooms_do_not_block(self, database, seed):
        _add_booking(database, seed, d(3), d(5), room_id=seed.suite_id)
        with database.session() as session:
            assert is_available(session, seed.room_id, d(3), d(5))

    def test_excluded_booking_is_ignored(self, database, seed):
        booking_id = _add_booking(database, seed, d(3), d(5))
        with database.session() as session:
            assert not is_available(session, seed.room_id, d(4), d(6))
            assert is_available(session, seed.room_id, d(4), d(6), exclude_booking_id=booking_id)

    @pytest.mark.parametrize("check_in, check_out", [(d(5), d(5)), (d(6), d(5))])
    def test_rejects_empty_or_reversed_range(self, database, seed, check_in, check_out):
        with database.session() as session:
            with pytest.raises(ValidationError):
                is_available(session, seed.room_id, check_in, check_out)
