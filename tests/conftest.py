from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import fakeredis
import pytest
from fastapi.testclient import TestClient

from stayhub.cache import CacheStore
from stayhub.config import Settings
from stayhub.db import Database
from stayhub.invalidation import InvalidationCoordinator
from stayhub.main import create_app
from stayhub.models import Hotel, Room, User, UserRole
from stayhub.security import Principal, hash_password
from stayhub.services.bookings import BookingService
from stayhub.services.rooms import RoomService

# Fixed "today" so scenarios written against 2025 dates stay in the future
TODAY = date(2024, 12, 30)
PASSWORD = "s3cret-pass"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'stayhub-test.db'}",
        SECRET_KEY="test-secret",
        CACHE_ENABLED=True,
        CACHE_KEY_PREFIX="test",
    )


@pytest.fixture
def database(settings):
    db = Database(settings)
    db.ensure_schema()
    yield db
    db.dispose()


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    return client


@pytest.fixture
def cache(redis_client, settings):
    return CacheStore(redis_client, settings)


@pytest.fixture
def invalidator(cache):
    return InvalidationCoordinator(cache)


@pytest.fixture
def booking_service(database, cache, invalidator):
    return BookingService(database, cache, invalidator, today=lambda: TODAY)


@pytest.fixture
def room_service(database, cache, invalidator, settings):
    return RoomService(database, cache, invalidator, settings)


@pytest.fixture
def seed(database):
    """A host with two rooms in Paris, one in Lyon, and two guests."""
    with database.begin() as session:
        host = User(email="host@example.com", hashed_password=hash_password(PASSWORD), full_name="Hana Host", role=UserRole.HOST.value)
        guest = User(email="guest@example.com", hashed_password=hash_password(PASSWORD), full_name="Gil Guest")
        other = User(email="other@example.com", hashed_password=hash_password(PASSWORD), full_name="Olu Other")
        paris = Hotel(name="Hotel Lumiere", city="Paris", address="1 Rue de Rivoli")
        lyon = Hotel(name="Rhone Inn", city="Lyon")
        session.add_all([host, guest, other, paris, lyon])
        session.flush()
        room = Room(
            id=5,
            host_id=host.id,
            hotel_id=paris.id,
            room_type="double",
            price_per_night=Decimal("100.00"),
            max_guests=2,
            amenities=["tv", "wifi"],
        )
        suite = Room(
            id=6,
            host_id=host.id,
            hotel_id=paris.id,
            room_type="suite",
            price_per_night=Decimal("250.00"),
            max_guests=4,
            amenities=["wifi", "minibar"],
        )
        lyon_room = Room(
            id=7,
            host_id=host.id,
            hotel_id=lyon.id,
            room_type="single",
            price_per_night=Decimal("60.00"),
            max_guests=1,
        )
        session.add_all([room, suite, lyon_room])
        session.flush()
        return SimpleNamespace(
            host_id=host.id,
            guest_id=guest.id,
            other_id=other.id,
            paris_id=paris.id,
            lyon_id=lyon.id,
            room_id=room.id,
            suite_id=suite.id,
            lyon_room_id=lyon_room.id,
        )


@pytest.fixture
def app(settings, database, redis_client):
    application = create_app(settings=settings, database=database, cache_client=redis_client)
    application.state.bookings.today = lambda: TODAY
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(app, seed):
    def _headers(user_id: int) -> dict:
        token = app.state.tokens.issue_token(Principal(id=user_id, email="", role="guest"))
        return {"Authorization": f"Bearer {token}"}

    return _headers
