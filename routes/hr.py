from fastapi import APIRouter, Depends
from models.auth import Profile, UserRole
from models.booking import HRDashboard
from core.auth import check_role
from controllers import hr_controller

router = APIRouter(prefix="/hr", tags=["hr"])


@router.get("/dashboard", response_model=HRDashboard)
async def get_dashboard(current_user: Profile = Depends(check_role([UserRole.HR_ADMIN]))):
    return await hr_controller.get_dashboard(current_user)
