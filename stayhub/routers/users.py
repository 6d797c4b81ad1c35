from fastapi import APIRouter, Depends, Request

from ..schemas import UserOut, ProfileUpdateIn
from ..security import Principal, require_user
from ..services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(request: Request) -> UserService:
    return request.app.state.users


@router.get("/me", response_model=UserOut)
def me(user: Principal = Depends(require_user), service: UserService = Depends(get_user_service)):
    return service.get_profile(user.id)


@router.patch("/me", response_model=UserOut)
def update_me(payload: ProfileUpdateIn, user: Principal = Depends(require_user), service: UserService = Depends(get_user_service)):
    return service.update_profile(user.id, payload.model_dump(exclude_unset=True))
