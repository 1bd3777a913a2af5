from fastapi import APIRouter, Depends

from src.livechat.models.api import UserResponse
from src.livechat.models.chat import CurrentUser
from src.livechat.api.deps import get_current_user

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser = Depends(get_current_user)):
    """Return the user identified by the bearer token"""
    return UserResponse(**user.model_dump())
