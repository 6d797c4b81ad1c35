from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from ..schemas import RoomCreateIn, RoomUpdateIn, RoomOut, RoomSearchOut
from ..security import Principal, require_user
from ..services.rooms import RoomService

router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_room_service(request: Request) -> RoomService:
    return request.app.state.rooms


# Static paths are declared before /{room_id} so they are matched first

@router.get("/search", response_model=RoomSearchOut)
def search_rooms(
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    guests: Optional[int] = Query(None, ge=1),
    city: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    room_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: RoomService = Depends(get_room_service),
):
    return service.search_rooms(
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        city=city,
        min_price=min_price,
        max_price=max_price,
        room_type=room_type,
        page=page,
        limit=limit,
    )


@router.get("/mine", response_model=List[RoomOut])
def my_rooms(user: Principal = Depends(require_user), service: RoomService = Depends(get_room_service)):
    return service.list_host_rooms(user.id)


@router.get("/{room_id}", response_model=RoomOut)
def get_room(room_id: int, service: RoomService = Depends(get_room_service)):
    return service.get_room(room_id)


@router.post("", response_model=RoomOut, status_code=201)
def create_room(payload: RoomCreateIn, user: Principal = Depends(require_user), service: RoomService = Depends(get_room_service)):
    fields = payload.model_dump(exclude={"hotel_id"})
    return service.create_room(user.id, payload.hotel_id, fields)


@router.patch("/{room_id}", response_model=RoomOut)
def update_room(room_id: int, payload: RoomUpdateIn, user: Principal = Depends(require_user), service: RoomService = Depends(get_room_service)):
    return service.update_room(user.id, room_id, payload.model_dump(exclude_unset=True))


@router.delete("/{room_id}", status_code=204)
def delete_room(room_id: int, user: Principal = Depends(require_user), service: RoomService = Depends(get_room_service)):
    service.delete_room(user.id, room_id)
    return Response(status_code=204)
