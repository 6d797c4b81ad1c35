from typing import List

from fastapi import APIRouter, Depends, Request

from ..schemas import BookingCreateIn, BookingUpdateIn, BookingOut
from ..security import Principal, require_user
from ..services.bookings import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.bookings


@router.get("", response_model=List[BookingOut])
def list_bookings(user: Principal = Depends(require_user), service: BookingService = Depends(get_booking_service)):
    return service.list_bookings(user.id)


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, user: Principal = Depends(require_user), service: BookingService = Depends(get_booking_service)):
    return service.get_booking(user.id, booking_id)


@router.post("", response_model=BookingOut, status_code=201)
def create_booking(payload: BookingCreateIn, user: Principal = Depends(require_user), service: BookingService = Depends(get_booking_service)):
    return service.create_booking(
        guest_id=user.id,
        room_id=payload.room_id,
        check_in=payload.check_in_date,
        check_out=payload.check_out_date,
        guests=payload.guests,
        special_requests=payload.special_requests,
    )


@router.patch("/{booking_id}", response_model=BookingOut)
def reschedule_booking(booking_id: int, payload: BookingUpdateIn, user: Principal = Depends(require_user), service: BookingService = Depends(get_booking_service)):
    return service.reschedule_booking(
        guest_id=user.id,
        booking_id=booking_id,
        check_in=payload.check_in_date,
        check_out=payload.check_out_date,
        guests=payload.guests,
    )


@router.delete("/{booking_id}", response_model=BookingOut)
def cancel_booking(booking_id: int, user: Principal = Depends(require_user), service: BookingService = Depends(get_booking_service)):
    return service.cancel_booking(user.id, booking_id)
