from datetime import datetime
from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base, utcnow
from enum import Enum

class UserRole(str, Enum):
    GUEST = "guest"
    HOST = "host"

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(200))
    phone: Mapped[str | None] = mapped_column(String(50))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.GUEST.value, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Rooms listed by this user as host via rooms.host_id -> users.id
    rooms: Mapped[list["Room"]] = relationship(back_populates="host")

    # Reservations made by this user as guest via bookings.guest_id -> users.id
    bookings: Mapped[list["Booking"]] = relationship(back_populates="guest")
