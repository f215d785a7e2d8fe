from fastapi import APIRouter, Depends

from volunteer_tracker.auth import get_current_user
from volunteer_tracker.models import User
from volunteer_tracker.schemas import UserRead

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the local record for the signed-in user."""
    return current_user
