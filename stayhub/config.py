import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME: str = "StayHub"
    # Core settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development").lower()
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Auth tokens
    TOKEN_MAX_AGE_SECONDS: int = int(os.getenv("TOKEN_MAX_AGE_SECONDS", str(7 * 24 * 60 * 60)))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./stayhub.db")
    # Seconds a SQLite writer waits for the database lock before giving up
    SQLITE_BUSY_TIMEOUT: float = float(os.getenv("SQLITE_BUSY_TIMEOUT", "5"))

    # Cache (Redis)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CACHE_ENABLED: bool = os.getenv("CACHE_ENABLED", "true").lower() == "true"
    CACHE_KEY_PREFIX: str = os.getenv("CACHE_KEY_PREFIX", "stayhub")
    CACHE_SOCKET_TIMEOUT: float = float(os.getenv("CACHE_SOCKET_TIMEOUT", "0.5"))

    # TTLs per resource class, in seconds
    CACHE_TTL_SEARCH: int = int(os.getenv("CACHE_TTL_SEARCH", "180"))
    CACHE_TTL_USER: int = int(os.getenv("CACHE_TTL_USER", "300"))
    CACHE_TTL_ROOM: int = int(os.getenv("CACHE_TTL_ROOM", "600"))
    CACHE_TTL_HOTEL: int = int(os.getenv("CACHE_TTL_HOTEL", "3600"))

    # Pagination
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    def __init__(self, **overrides):
        for name, value in overrides.items():
            if not hasattr(type(self), name):
                raise AttributeError(f"Unknown setting: {name}")
            setattr(self, name, value)

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

settings = Settings()
