from fastapi import APIRouter, Depends
from models.access_code import AccessCodeCheck, AccessCodeValidation
from models.auth import Profile, UserRole
from core.auth import check_role
from controllers import access_code_controller

router = APIRouter(prefix="/access-codes", tags=["access-codes"])


@router.post("/generate")
async def generate_code(current_user: Profile = Depends(check_role([UserRole.SUPER_ADMIN]))):
    return await access_code_controller.generate_unique_code()


@router.post("/validate", response_model=AccessCodeValidation)
async def validate_code(data: AccessCodeCheck):
    return await access_code_controller.validate_access_code(data.code)
