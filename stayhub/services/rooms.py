import logging
import math
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from ..cache import CacheStore, read_through, search_key, room_key, host_rooms_key
from ..config import Settings
from ..db import Database, translate_store_errors
from ..errors import NotFoundError, ValidationError
from ..invalidation import InvalidationCoordinator, MutationKind
from ..models import Booking, Hotel, Room
from ..schemas import RoomOut
from .availability import overlap_clause, validate_range

logger = logging.getLogger(__name__)


# ==== Field validation ====
# Only these fields may be written by a host; id, host_id and hotel_id never are.

def _room_type(value: Any) -> str:
    if not isinstance(value, str) or not value.strip() or len(value.strip()) > 50:
        raise ValidationError("room_type must be a non-empty string of at most 50 characters")
    return value.strip().lower()


def _description(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("description must be a string")
    return value.strip() or None


def _price(value: Any) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        value = str(value)
    try:
        price = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("price_per_night must be a decimal amount")
    if not price.is_finite() or price <= 0:
        raise ValidationError("price_per_night must be greater than 0")
    if price != price.quantize(Decimal("0.01")):
        raise ValidationError("price_per_night allows at most 2 decimal places")
    return price.quantize(Decimal("0.01"))


def _max_guests(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 50:
        raise ValidationError("max_guests must be an integer between 1 and 50")
    return value


def _is_available(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError("is_available must be a boolean")
    return value


def _amenities(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError("amenities must be a list of strings")
    cleaned = set()
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError("amenities must be non-empty strings")
        cleaned.add(item.strip().lower())
    return sorted(cleaned)


ROOM_FIELD_VALIDATORS = {
    "room_type": _room_type,
    "description": _description,
    "price_per_night": _price,
    "max_guests": _max_guests,
    "is_available": _is_available,
    "amenities": _amenities,
}

REQUIRED_ROOM_FIELDS = {"price_per_night"}


def clean_room_fields(fields: dict) -> dict:
    unknown = set(fields) - set(ROOM_FIELD_VALIDATORS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    return {name: ROOM_FIELD_VALIDATORS[name](value) for name, value in fields.items()}


def room_payload(room: Room) -> dict:
    hotel = room.hotel
    return RoomOut(
        id=room.id,
        host_id=room.host_id,
        hotel_id=room.hotel_id,
        room_type=room.room_type,
        description=room.description,
        price_per_night=room.price_per_night,
        max_guests=room.max_guests,
        is_available=room.is_available,
        amenities=sorted(room.amenities or []),
        hotel_name=hotel.name,
        hotel_city=hotel.city,
    ).model_dump(mode="json")


class RoomService:
    def __init__(self, database: Database, cache: CacheStore, invalidator: InvalidationCoordinator, settings: Settings):
        self.database = database
        self.cache = cache
        self.invalidator = invalidator
        self.default_page_size = settings.DEFAULT_PAGE_SIZE
        self.max_page_size = settings.MAX_PAGE_SIZE

    # ---- Search ----

    def search_rooms(
        self,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
        guests: Optional[int] = None,
        city: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        room_type: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> dict:
        limit = limit if limit is not None else self.default_page_size
        if (check_in is None) != (check_out is None):
            raise ValidationError("check_in and check_out must be given together")
        if check_in is not None:
            validate_range(check_in, check_out)
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= limit <= self.max_page_size:
            raise ValidationError(f"limit must be between 1 and {self.max_page_size}")
        if guests is not None and guests < 1:
            raise ValidationError("guests must be at least 1")
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("min_price cannot exceed max_price")
        city = city.strip() if city else None
        room_type = room_type.strip() if room_type else None

        key = search_key(
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            city=city,
            min_price=min_price,
            max_price=max_price,
            room_type=room_type,
            page=page,
            limit=limit,
        )

        def load():
            with translate_store_errors("search rooms"), self.database.session() as session:
                q = select(Room).join(Hotel, Room.hotel_id == Hotel.id).where(Room.is_available.is_(True))
                if guests is not None:
                    q = q.where(Room.max_guests >= guests)
                if city:
                    q = q.where(func.lower(Hotel.city) == city.lower())
                if room_type:
                    q = q.where(func.lower(Room.room_type) == room_type.lower())
                if min_price is not None:
                    q = q.where(Room.price_per_night >= min_price)
                if max_price is not None:
                    q = q.where(Room.price_per_night <= max_price)
                if check_in is not None:
                    booked = select(Booking.room_id).where(overlap_clause(check_in, check_out))
                    q = q.where(Room.id.not_in(booked))

                total = session.scalar(select(func.count()).select_from(q.subquery())) or 0
                rows = session.scalars(
                    q.options(joinedload(Room.hotel))
                    .order_by(Room.price_per_night.asc(), Room.id.asc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                ).all()
                return {
                    "rooms": [room_payload(r) for r in rows],
                    "pagination": {
                        "page": page,
                        "limit": limit,
                        "total": total,
                        "pages": math.ceil(total / limit) if total else 0,
                    },
                }

        return read_through(self.cache, key, load)

    # ---- Reads ----

    def get_room(self, room_id: int) -> dict:
        def load():
            with translate_store_errors("get room"), self.database.session() as session:
                room = session.get(Room, room_id)
                if room is None:
                    raise NotFoundError("room", room_id)
                return room_payload(room)

        return read_through(self.cache, room_key(room_id), load)

    def list_host_rooms(self, host_id: int) -> list[dict]:
        def load():
            with translate_store_errors("list host rooms"), self.database.session() as session:
                q = (
                    select(Room)
                    .options(joinedload(Room.hotel))
                    .where(Room.host_id == host_id)
                    .order_by(Room.id.asc())
                )
                return [room_payload(r) for r in session.scalars(q).all()]

        return read_through(self.cache, host_rooms_key(host_id), load)

    # ---- Writes ----

    def create_room(self, host_id: int, hotel_id: int, fields: dict) -> dict:
        cleaned = clean_room_fields(fields)
        missing = REQUIRED_ROOM_FIELDS - set(cleaned)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}")
        with translate_store_errors("create room"):
            with self.database.begin() as session:
                if session.get(Hotel, hotel_id) is None:
                    raise NotFoundError("hotel", hotel_id)
                room = Room(host_id=host_id, hotel_id=hotel_id, **cleaned)
                session.add(room)
                session.flush()
                payload = room_payload(room)

        logger.info("Room %s created by host %s in hotel %s", payload["id"], host_id, hotel_id)
        self.invalidator.invalidate(MutationKind.ROOM_CHANGED, user_id=host_id, room_id=payload["id"])
        return payload

    def update_room(self, host_id: int, room_id: int, fields: dict) -> dict:
        cleaned = clean_room_fields(fields)
        with translate_store_errors("update room"):
            with self.database.begin() as session:
                room = self._owned_room(session, host_id, room_id)
                for name, value in cleaned.items():
                    setattr(room, name, value)
                session.flush()
                payload = room_payload(room)

        logger.info("Room %s updated by host %s: %s", room_id, host_id, ", ".join(sorted(cleaned)) or "no changes")
        self.invalidator.invalidate(MutationKind.ROOM_CHANGED, user_id=host_id, room_id=room_id)
        return payload

    def delete_room(self, host_id: int, room_id: int):
        with translate_store_errors("delete room"):
            with self.database.begin() as session:
                room = self._owned_room(session, host_id, room_id)
                guest_ids = {b.guest_id for b in room.bookings}
                session.delete(room)

        logger.info("Room %s deleted by host %s", room_id, host_id)
        self.invalidator.invalidate(MutationKind.ROOM_CHANGED, user_id=host_id, room_id=room_id)
        # Cascaded bookings disappear from their guests' listings too
        for guest_id in guest_ids:
            self.invalidator.evict_guest_bookings(guest_id)

    @staticmethod
    def _owned_room(session: Session, host_id: int, room_id: int) -> Room:
        room = session.scalars(select(Room).where(Room.id == room_id).with_for_update()).first()
        if room is None or room.host_id != host_id:
            raise NotFoundError("room", room_id)
        return room
