from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, ForeignKey, Numeric, Boolean, Text, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base, utcnow

class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    host_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    room_type: Mapped[str] = mapped_column(String(50), nullable=False, default="standard")
    description: Mapped[str | None] = mapped_column(Text)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Stored sorted and de-duplicated; treated as a set
    amenities: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    host: Mapped["User"] = relationship(back_populates="rooms")
    hotel: Mapped["Hotel"] = relationship(back_populates="rooms")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="room", cascade="all, delete-orphan")
