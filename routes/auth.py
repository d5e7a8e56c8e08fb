from fastapi import APIRouter, Depends, UploadFile, File
from models.auth import UserLogin, RegisterRequest, Token, Profile, ProfileUpdate, PasswordChange, SessionContext
from core.auth import get_current_user, get_session
from controllers import auth_controller

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin):
    return await auth_controller.login(credentials)


@router.post("/register", response_model=Token)
async def register(data: RegisterRequest):
    return await auth_controller.register(data)


@router.get("/session", response_model=SessionContext)
async def session(current_session: SessionContext = Depends(get_session)):
    return current_session


@router.get("/me", response_model=Profile)
async def get_me(current_user: Profile = Depends(get_current_user)):
    return current_user


@router.patch("/profile", response_model=Profile)
async def update_profile(data: ProfileUpdate, current_user: Profile = Depends(get_current_user)):
    return await auth_controller.update_profile(current_user, data)


@router.post("/change-password")
async def change_password(data: PasswordChange, current_user: Profile = Depends(get_current_user)):
    return await auth_controller.change_password(current_user, data)


@router.post("/avatar", response_model=Profile)
async def update_avatar(file: UploadFile = File(...), current_user: Profile = Depends(get_current_user)):
    file_bytes = await file.read()
    return await auth_controller.update_avatar(current_user, file_bytes, file.content_type)


@router.delete("/avatar", response_model=Profile)
async def remove_avatar(current_user: Profile = Depends(get_current_user)):
    return await auth_controller.remove_avatar(current_user)
