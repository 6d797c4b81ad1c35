import logging
from typing import Any

from ..cache import CacheStore, read_through, profile_key
from ..db import Database, translate_store_errors
from ..errors import NotFoundError, ValidationError
from ..invalidation import InvalidationCoordinator, MutationKind
from ..models import User
from ..schemas import UserOut

logger = logging.getLogger(__name__)

# Profile fields a user may change about themselves
PROFILE_FIELD_LIMITS = {"full_name": 200, "phone": 50}


def _clean_profile_field(name: str, value: Any):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    value = value.strip()
    if len(value) > PROFILE_FIELD_LIMITS[name]:
        raise ValidationError(f"{name} must be at most {PROFILE_FIELD_LIMITS[name]} characters")
    return value or None


class UserService:
    def __init__(self, database: Database, cache: CacheStore, invalidator: InvalidationCoordinator):
        self.database = database
        self.cache = cache
        self.invalidator = invalidator

    def get_profile(self, user_id: int) -> dict:
        def load():
            with translate_store_errors("get profile"), self.database.session() as session:
                user = session.get(User, user_id)
                if user is None:
                    raise NotFoundError("user", user_id)
                return UserOut.model_validate(user).model_dump(mode="json")

        return read_through(self.cache, profile_key(user_id), load)

    def update_profile(self, user_id: int, fields: dict) -> dict:
        unknown = set(fields) - set(PROFILE_FIELD_LIMITS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        cleaned = {name: _clean_profile_field(name, value) for name, value in fields.items()}
        with translate_store_errors("update profile"):
            with self.database.begin() as session:
                user = session.get(User, user_id)
                if user is None:
                    raise NotFoundError("user", user_id)
                for name, value in cleaned.items():
                    setattr(user, name, value)
                session.flush()
                payload = UserOut.model_validate(user).model_dump(mode="json")

        logger.info("Profile of user %s updated", user_id)
        self.invalidator.invalidate(MutationKind.USER_CHANGED, user_id=user_id)
        return payload
