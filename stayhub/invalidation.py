import logging
from enum import Enum
from typing import Optional

from fastapi import Request

from .cache import CacheStore, booking_list_key, host_rooms_key, room_key

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    ROOM_CHANGED = "room_changed"
    BOOKING_CHANGED = "booking_changed"
    USER_CHANGED = "user_changed"


class InvalidationCoordinator:
    """
    Evicts the cache entries a committed mutation may have made stale.
    Must only be called after the write has committed.
    """

    def __init__(self, cache: CacheStore):
        self.cache = cache

    def invalidate(self, kind: MutationKind, *, user_id: Optional[int] = None, room_id: Optional[int] = None):
        if kind is MutationKind.ROOM_CHANGED:
            self.cache.delete_search_results()
            keys = []
            if user_id is not None:
                keys.append(host_rooms_key(user_id))
            if room_id is not None:
                keys.append(room_key(room_id))
            self.cache.delete(*keys)
        elif kind is MutationKind.BOOKING_CHANGED:
            self.cache.delete_search_results()
            if user_id is not None:
                self.evict_guest_bookings(user_id)
        elif kind is MutationKind.USER_CHANGED:
            if user_id is not None:
                self.cache.delete_pattern(f"user:{user_id}:*")
        else:
            raise ValueError(f"Unknown mutation kind: {kind}")
        logger.debug("Invalidated cache for %s (user_id=%s, room_id=%s)", kind.value, user_id, room_id)

    def evict_guest_bookings(self, user_id: int):
        """Drop one guest's booking list and booking details, leaving search results alone."""
        self.cache.delete(booking_list_key(user_id))
        self.cache.delete_pattern(f"user:{user_id}:booking:*")


def get_invalidator(request: Request) -> InvalidationCoordinator:
    return request.app.state.invalidator
