import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..cache import CacheStore, read_through, booking_list_key, booking_key
from ..db import Database, translate_store_errors, utcnow
from ..errors import CapacityError, ConflictError, NotFoundError, ValidationError
from ..invalidation import InvalidationCoordinator, MutationKind
from ..models import Booking, BookingStatus, Room
from ..schemas import BookingOut
from .availability import is_available, validate_range

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def count_nights(check_in, check_out) -> int:
    """Whole nights between two dates; any partial day counts as a full night."""
    delta = check_out - check_in
    nights = delta.days
    if delta.seconds or delta.microseconds:
        nights += 1
    return nights


def compute_total(price_per_night, check_in, check_out) -> Decimal:
    price = price_per_night if isinstance(price_per_night, Decimal) else Decimal(str(price_per_night))
    return (price * count_nights(check_in, check_out)).quantize(CENT, rounding=ROUND_HALF_UP)


def booking_payload(booking: Booking) -> dict:
    room = booking.room
    hotel = room.hotel
    return BookingOut(
        id=booking.id,
        guest_id=booking.guest_id,
        room_id=booking.room_id,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        guests=booking.guests,
        total_price=booking.total_price,
        status=booking.status,
        special_requests=booking.special_requests,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        room_type=room.room_type,
        hotel_id=hotel.id,
        hotel_name=hotel.name,
        hotel_city=hotel.city,
    ).model_dump(mode="json")


class BookingService:
    def __init__(
        self,
        database: Database,
        cache: CacheStore,
        invalidator: InvalidationCoordinator,
        today: Callable[[], date] = date.today,
    ):
        self.database = database
        self.cache = cache
        self.invalidator = invalidator
        self.today = today

    # ---- Writes ----

    def create_booking(
        self,
        guest_id: int,
        room_id: int,
        check_in: date,
        check_out: date,
        guests: int,
        special_requests: Optional[str] = None,
    ) -> dict:
        self._validate_stay(check_in, check_out, guests)

        with translate_store_errors("create booking"):
            with self.database.begin() as session:
                room = self._lock_room(session, room_id)
                if guests > room.max_guests:
                    raise CapacityError(room.max_guests)
                if not is_available(session, room_id, check_in, check_out):
                    logger.info("Booking conflict for room %s %s..%s", room_id, check_in, check_out)
                    raise ConflictError("Room is already booked for the selected dates")
                booking = Booking(
                    guest_id=guest_id,
                    room_id=room_id,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    guests=guests,
                    total_price=compute_total(room.price_per_night, check_in, check_out),
                    status=BookingStatus.CONFIRMED,
                    special_requests=(special_requests or "").strip() or None,
                )
                session.add(booking)
                session.flush()
                payload = booking_payload(booking)

        logger.info("Booking %s created: room %s, guest %s, %s..%s", payload["id"], room_id, guest_id, check_in, check_out)
        self.invalidator.invalidate(MutationKind.BOOKING_CHANGED, user_id=guest_id)
        return payload

    def cancel_booking(self, guest_id: int, booking_id: int) -> dict:
        with translate_store_errors("cancel booking"):
            with self.database.begin() as session:
                booking = self._lock_booking(session, guest_id, booking_id)
                if booking.check_in_date < self.today():
                    raise ValidationError("Cannot cancel past bookings")
                if booking.status == BookingStatus.CANCELLED:
                    raise ValidationError("Booking is already cancelled")
                booking.status = BookingStatus.CANCELLED
                booking.updated_at = utcnow()
                session.flush()
                payload = booking_payload(booking)

        logger.info("Booking %s cancelled by guest %s", booking_id, guest_id)
        self.invalidator.invalidate(MutationKind.BOOKING_CHANGED, user_id=guest_id)
        return payload

    def reschedule_booking(
        self,
        guest_id: int,
        booking_id: int,
        check_in: date,
        check_out: date,
        guests: Optional[int] = None,
    ) -> dict:
        with translate_store_errors("reschedule booking"):
            with self.database.begin() as session:
                booking = self._lock_booking(session, guest_id, booking_id)
                if booking.status != BookingStatus.CONFIRMED:
                    raise ValidationError("Only confirmed bookings can be changed")
                guests = guests if guests is not None else booking.guests
                self._validate_stay(check_in, check_out, guests)
                room = self._lock_room(session, booking.room_id)
                if guests > room.max_guests:
                    raise CapacityError(room.max_guests)
                if not is_available(session, room.id, check_in, check_out, exclude_booking_id=booking.id):
                    raise ConflictError("Room is already booked for the selected dates")
                booking.check_in_date = check_in
                booking.check_out_date = check_out
                booking.guests = guests
                booking.total_price = compute_total(room.price_per_night, check_in, check_out)
                booking.updated_at = utcnow()
                session.flush()
                payload = booking_payload(booking)

        logger.info("Booking %s rescheduled to %s..%s", booking_id, check_in, check_out)
        self.invalidator.invalidate(MutationKind.BOOKING_CHANGED, user_id=guest_id)
        return payload

    # ---- Reads ----

    def list_bookings(self, guest_id: int) -> list[dict]:
        def load():
            with translate_store_errors("list bookings"), self.database.session() as session:
                q = (
                    select(Booking)
                    .options(joinedload(Booking.room).joinedload(Room.hotel))
                    .where(Booking.guest_id == guest_id)
                    .order_by(Booking.created_at.desc(), Booking.id.desc())
                )
                return [booking_payload(b) for b in session.scalars(q).all()]

        return read_through(self.cache, booking_list_key(guest_id), load)

    def get_booking(self, guest_id: int, booking_id: int) -> dict:
        def load():
            with translate_store_errors("get booking"), self.database.session() as session:
                booking = session.get(Booking, booking_id)
                if booking is None or booking.guest_id != guest_id:
                    raise NotFoundError("booking", booking_id)
                return booking_payload(booking)

        return read_through(self.cache, booking_key(guest_id, booking_id), load)

    # ---- Helpers ----

    def _validate_stay(self, check_in: date, check_out: date, guests: int):
        if isinstance(check_in, datetime) or isinstance(check_out, datetime):
            raise ValidationError("Check-in and check-out must be calendar dates")
        if check_in < self.today():
            raise ValidationError("Check-in date cannot be in the past")
        validate_range(check_in, check_out)
        if guests < 1:
            raise ValidationError("At least one guest is required")

    @staticmethod
    def _lock_room(session: Session, room_id: int) -> Room:
        # Row lock on PostgreSQL; SQLite already holds the write lock from BEGIN IMMEDIATE
        room = session.scalars(select(Room).where(Room.id == room_id).with_for_update()).first()
        if room is None or not room.is_available:
            raise NotFoundError("room", room_id)
        return room

    @staticmethod
    def _lock_booking(session: Session, guest_id: int, booking_id: int) -> Booking:
        booking = session.scalars(select(Booking).where(Booking.id == booking_id).with_for_update()).first()
        if booking is None or booking.guest_id != guest_id:
            raise NotFoundError("booking", booking_id)
        return booking
