from datetime import date

from stayhub.cache import (
    CacheKey,
    ResourceClass,
    booking_key,
    booking_list_key,
    host_rooms_key,
    hotel_key,
    profile_key,
    room_key,
    search_key,
)
from stayhub.invalidation import MutationKind


def _fill(cache):
    keys = {
        "search": search_key(city="paris", page=1),
        "search_other": search_key(guests=2, page=3),
        "host_rooms": host_rooms_key(1),
        "other_host_rooms": host_rooms_key(9),
        "room": room_key(5),
        "other_room": room_key(6),
        "bookings": booking_list_key(2),
        "booking": booking_key(2, 11),
        "other_bookings": booking_list_key(3),
        "profile": profile_key(2),
        "hotel": hotel_key(1),
    }
    for key in keys.values():
        cache.set(key, {"cached": str(key)})
    return keys


def _present(cache, keys):
    return {name for name, key in keys.items() if cache.get(key) is not None}


def test_room_change(cache, invalidator):
    keys = _fill(cache)
    invalidator.invalidate(MutationKind.ROOM_CHANGED, user_id=1, room_id=5)
    assert _present(cache, keys) == {
        "other_host_rooms", "other_room", "bookings", "booking", "other_bookings", "profile", "hotel",
    }


def test_booking_change(cache, invalidator):
    keys = _fill(cache)
    invalidator.invalidate(MutationKind.BOOKING_CHANGED, user_id=2)
    assert _present(cache, keys) == {
        "host_rooms", "other_host_rooms", "room", "other_room", "other_bookings", "profile", "hotel",
    }


def test_user_change(cache, invalidator):
    keys = _fill(cache)
    invalidator.invalidate(MutationKind.USER_CHANGED, user_id=2)
    assert _present(cache, keys) == {
        "search", "search_other", "host_rooms", "other_host_rooms", "room", "other_room", "other_bookings", "hotel",
    }


def test_prefix_does_not_match_other_user_ids(cache, invalidator):
    # user 2 must not sweep user 20's entries
    neighbour = CacheKey.of(ResourceClass.USER, "user:20:bookings")
    cache.set(neighbour, [1])
    invalidator.invalidate(MutationKind.USER_CHANGED, user_id=2)
    assert cache.get(neighbour) == [1]


def test_room_delete_evicts_search_once_and_each_guest_listing(cache, booking_service, room_service, seed, monkeypatch):
    booking_service.create_booking(seed.guest_id, seed.room_id, date(2025, 6, 1), date(2025, 6, 3), 1)
    booking_service.create_booking(seed.other_id, seed.room_id, date(2025, 6, 5), date(2025, 6, 7), 1)
    booking_service.list_bookings(seed.guest_id)
    booking_service.list_bookings(seed.other_id)
    cache.set(search_key(city="paris", page=1), {"rooms": []})

    search_evictions = []
    evict_search = cache.delete_search_results
    monkeypatch.setattr(cache, "delete_search_results", lambda: search_evictions.append(1) or evict_search())

    room_service.delete_room(seed.host_id, seed.room_id)

    assert len(search_evictions) == 1
    assert cache.get(search_key(city="paris", page=1)) is None
    assert cache.get(booking_list_key(seed.guest_id)) is None
    assert cache.get(booking_list_key(seed.other_id)) is None
