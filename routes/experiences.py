from typing import Optional
from fastapi import APIRouter, Depends
from models.auth import Profile
from core.auth import get_current_user
from controllers import experience_controller

router = APIRouter(prefix="/experiences", tags=["experiences"])


@router.get("")
async def list_experiences(search: Optional[str] = None, current_user: Profile = Depends(get_current_user)):
    return await experience_controller.list_experiences(current_user, search)


@router.get("/{experience_id}/dates")
async def list_experience_dates(experience_id: str, current_user: Profile = Depends(get_current_user)):
    return await experience_controller.list_experience_dates(current_user, experience_id)
