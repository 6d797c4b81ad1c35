from .user import User, UserRole
from .hotel import Hotel
from .room import Room
from .booking import Booking, BookingStatus
