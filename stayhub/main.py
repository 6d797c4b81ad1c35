import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .cache import CacheStore
from .config import Settings, settings as default_settings
from .db import Database
from .errors import BookingError
from .invalidation import InvalidationCoordinator
from .routers import auth, bookings, hotels, rooms, users
from .security import TokenIssuer
from .services.bookings import BookingService
from .services.hotels import HotelService
from .services.rooms import RoomService
from .services.users import UserService

# --- Logging configuration ---
_level = logging.DEBUG if getattr(default_settings, "DEBUG", False) else logging.INFO
logging.basicConfig(
    level=_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# Align uvicorn loggers with our level (useful under Docker Compose)
for _name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(_name).setLevel(_level)
logger = logging.getLogger("stayhub.startup")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    cache_client: Optional[redis.Redis] = None,
) -> FastAPI:
    """
    Build the application with explicitly constructed store and cache clients.
    Tests pass their own database and Redis client; production builds them from settings.
    """
    settings = settings or default_settings
    database = database or Database(settings)
    if cache_client is not None:
        cache = CacheStore(cache_client, settings)
    else:
        cache = CacheStore.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s (DEBUG=%s)", settings.APP_NAME, settings.DEBUG)
        database.ensure_schema()
        logger.info("Startup tasks complete.")
        yield
        logger.info("Shutting down %s", settings.APP_NAME)
        cache.close()
        database.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        description=f"{settings.APP_NAME}: room listings and reservations with a read-through cache.",
        lifespan=lifespan,
    )

    invalidator = InvalidationCoordinator(cache)
    app.state.settings = settings
    app.state.database = database
    app.state.cache = cache
    app.state.invalidator = invalidator
    app.state.tokens = TokenIssuer(settings)
    app.state.bookings = BookingService(database, cache, invalidator)
    app.state.rooms = RoomService(database, cache, invalidator, settings)
    app.state.hotels = HotelService(database, cache)
    app.state.users = UserService(database, cache, invalidator)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        formatted = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        return JSONResponse(status_code=400, content={"detail": formatted})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(auth.router)
    app.include_router(hotels.router)
    app.include_router(rooms.router)
    app.include_router(bookings.router)
    app.include_router(users.router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return app
