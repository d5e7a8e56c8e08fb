from fastapi import HTTPException
import base64
import logging
import uuid

from pymongo.errors import DuplicateKeyError

from config import ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE
from database import db
from models.auth import UserLogin, RegisterRequest, Token, Profile, ProfileUpdate, PasswordChange
from models.access_code import EntityType
from core.auth import verify_password, get_password_hash, create_access_token, load_profile
from controllers import access_code_controller

logger = logging.getLogger(__name__)


async def login(credentials: UserLogin) -> Token:
    auth_doc = await db.auth_users.find_one({"email": credentials.email})
    if not auth_doc or not verify_password(credentials.password, auth_doc['password']):
        raise HTTPException(status_code=401, detail="Credenziali non valide")

    profile = await load_profile(auth_doc["id"])
    if profile is None:
        raise HTTPException(status_code=401, detail="Profilo non trovato")
    access_token = create_access_token({"sub": profile.id, "role": profile.role})
    return Token(access_token=access_token, profile=profile)


async def register(data: RegisterRequest) -> Token:
    if len(data.password) < 6:
        raise HTTPException(status_code=400, detail="La password deve contenere almeno 6 caratteri")
    if await db.auth_users.find_one({"email": data.email}):
        raise HTTPException(status_code=400, detail="Email già registrata")

    # the unique email index claims the address before the code is spent
    user_id = str(uuid.uuid4())
    try:
        await db.auth_users.insert_one({"id": user_id, "email": data.email, "password": get_password_hash(data.password)})
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email già registrata")

    try:
        code = await access_code_controller.redeem_access_code(data.access_code)
    except HTTPException:
        await db.auth_users.delete_one({"id": user_id})
        raise

    profile = Profile(
        id=user_id,
        email=data.email,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        role=code.assigned_role,
        company_id=code.entity_id if code.entity_type == EntityType.COMPANY else None,
        association_id=code.entity_id if code.entity_type == EntityType.ASSOCIATION else None,
    )
    await db.profiles.insert_one(profile.model_dump(exclude={"company", "association"}))
    logger.info(f"Registered {data.email} as {code.assigned_role} of {code.entity_type} {code.entity_id}")

    profile = await load_profile(profile.id)
    access_token = create_access_token({"sub": profile.id, "role": profile.role})
    return Token(access_token=access_token, profile=profile)


async def update_profile(current_user: Profile, data: ProfileUpdate) -> Profile:
    updates = {k: v for k, v in data.model_dump().items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="Nessun campo da aggiornare")
    if "email" in updates:
        existing = await db.auth_users.find_one({"email": updates["email"], "id": {"$ne": current_user.id}})
        if existing:
            raise HTTPException(status_code=400, detail="Email già in uso")
        await db.auth_users.update_one({"id": current_user.id}, {"$set": {"email": updates["email"]}})
    await db.profiles.update_one({"id": current_user.id}, {"$set": updates})
    return await load_profile(current_user.id)


async def change_password(current_user: Profile, data: PasswordChange) -> dict:
    auth_doc = await db.auth_users.find_one({"id": current_user.id})
    if not auth_doc or not verify_password(data.current_password, auth_doc["password"]):
        raise HTTPException(status_code=400, detail="La password attuale non è corretta")
    if len(data.new_password) < 6:
        raise HTTPException(status_code=400, detail="La nuova password deve contenere almeno 6 caratteri")
    hashed = get_password_hash(data.new_password)
    await db.auth_users.update_one({"id": current_user.id}, {"$set": {"password": hashed}})
    return {"message": "Password aggiornata"}


def image_data_url(file_bytes: bytes, content_type: str) -> str:
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Formato immagine non supportato")
    if len(file_bytes) > MAX_IMAGE_SIZE:
        raise HTTPException(status_code=400, detail="L'immagine supera il limite di 2MB")
    b64 = base64.b64encode(file_bytes).decode()
    return f"data:{content_type};base64,{b64}"


async def update_avatar(current_user: Profile, file_bytes: bytes, content_type: str) -> Profile:
    avatar_url = image_data_url(file_bytes, content_type)
    await db.profiles.update_one({"id": current_user.id}, {"$set": {"avatar_url": avatar_url}})
    return await load_profile(current_user.id)


async def remove_avatar(current_user: Profile) -> Profile:
    await db.profiles.update_one({"id": current_user.id}, {"$set": {"avatar_url": None}})
    return await load_profile(current_user.id)
