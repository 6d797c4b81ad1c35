from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from ..schemas import HotelOut
from ..services.hotels import HotelService

router = APIRouter(prefix="/hotels", tags=["hotels"])


def get_hotel_service(request: Request) -> HotelService:
    return request.app.state.hotels


@router.get("", response_model=List[HotelOut])
def list_hotels(city: Optional[str] = None, service: HotelService = Depends(get_hotel_service)):
    return service.list_hotels(city)


@router.get("/{hotel_id}", response_model=HotelOut)
def get_hotel(hotel_id: int, service: HotelService = Depends(get_hotel_service)):
    return service.get_hotel(hotel_id)
