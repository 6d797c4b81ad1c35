from dataclasses import dataclass
from typing import Optional
from passlib.context import CryptContext
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from fastapi import Request, Depends, HTTPException
from sqlalchemy import select

from .config import Settings
from .db import Database, get_database
from .models import User

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


class TokenIssuer:
    def __init__(self, settings: Settings):
        self.serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="stayhub-access")
        self.max_age = settings.TOKEN_MAX_AGE_SECONDS

    def issue_token(self, principal: Principal) -> str:
        return self.serializer.dumps({"uid": principal.id})

    def load_user_id(self, token: str) -> Optional[int]:
        try:
            data = self.serializer.loads(token, max_age=self.max_age)
            return int(data.get("uid"))
        except (SignatureExpired, BadSignature, ValueError, TypeError, AttributeError):
            return None


def verify_credentials(database: Database, email: str, password: str) -> Optional[Principal]:
    with database.session() as session:
        user = session.scalars(select(User).where(User.email == email.strip().lower())).first()
        if not user or not user.hashed_password or not verify_password(password, user.hashed_password):
            return None
        return Principal(id=user.id, email=user.email, role=user.role)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_user(request: Request, database: Database = Depends(get_database)) -> Principal:
    """
    Dependency for routes that need an authenticated caller.
    Resolves the bearer token to a Principal or answers 401.
    """
    token = _bearer_token(request)
    user_id = request.app.state.tokens.load_user_id(token) if token else None
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    # Short session so no transaction stays open while the route runs
    with database.session() as session:
        user = session.get(User, user_id)
        if not user:
            # The user was deleted but the token is still valid.
            raise HTTPException(status_code=401, detail="Not authenticated")
        return Principal(id=user.id, email=user.email, role=user.role)
