from typing import Optional

from sqlalchemy import func, select

from ..cache import CacheStore, read_through, hotel_key, hotel_list_key
from ..db import Database, translate_store_errors
from ..errors import NotFoundError
from ..models import Hotel
from ..schemas import HotelOut


class HotelService:
    """Hotel reference data. Rarely changes, so it is cached on the long TTL."""

    def __init__(self, database: Database, cache: CacheStore):
        self.database = database
        self.cache = cache

    def list_hotels(self, city: Optional[str] = None) -> list[dict]:
        city = city.strip() if city else None

        def load():
            with translate_store_errors("list hotels"), self.database.session() as session:
                q = select(Hotel).order_by(Hotel.name.asc(), Hotel.id.asc())
                if city:
                    q = q.where(func.lower(Hotel.city) == city.lower())
                return [HotelOut.model_validate(h).model_dump(mode="json") for h in session.scalars(q).all()]

        return read_through(self.cache, hotel_list_key(city), load)

    def get_hotel(self, hotel_id: int) -> dict:
        def load():
            with translate_store_errors("get hotel"), self.database.session() as session:
                hotel = session.get(Hotel, hotel_id)
                if hotel is None:
                    raise NotFoundError("hotel", hotel_id)
                return HotelOut.model_validate(hotel).model_dump(mode="json")

        return read_through(self.cache, hotel_key(hotel_id), load)
