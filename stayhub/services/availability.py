from datetime import date
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import Booking, BookingStatus


def validate_range(check_in: date, check_out: date):
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Return True if half-open ranges [a_start, a_end) and [b_start, b_end) share a night."""
    return a_start < b_end and b_start < a_end


def overlap_clause(check_in: date, check_out: date):
    """SQL form of overlaps() for confirmed bookings against [check_in, check_out)."""
    return and_(
        Booking.status == BookingStatus.CONFIRMED,
        Booking.check_in_date < check_out,
        Booking.check_out_date > check_in,
    )


def is_available(
    session: Session,
    room_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    """
    True iff no confirmed booking of the room overlaps [check_in, check_out).
    Runs on the caller's session so it sees the same transaction as a following insert.
    """
    validate_range(check_in, check_out)
    q = select(Booking.id).where(Booking.room_id == room_id, overlap_clause(check_in, check_out))
    if exclude_booking_id is not None:
        q = q.where(Booking.id != exclude_booking_id)
    return session.scalars(q.limit(1)).first() is None
