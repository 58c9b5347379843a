"""Current-user endpoint. Sessions are issued by the identity provider."""

from fastapi import APIRouter, Depends

from ..schemas import UserResponse
from ..security import CurrentUser, get_current_user

router = APIRouter(prefix="/api/users", tags=["auth"])


@router.get("/me", response_model=UserResponse)
def me(user: CurrentUser = Depends(get_current_user)):
    return UserResponse(id=user.id, email=user.email, name=user.name)
