from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from datetime import datetime, timezone, timedelta
from typing import List, Optional
import jwt

from config import JWT_SECRET, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_HOURS
from database import db
from models.auth import Profile, SessionContext

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_user_id(token: str) -> str:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


async def load_profile(user_id: str) -> Optional[Profile]:
    """Profile with its company / association records nested in."""
    doc = await db.profiles.find_one({"id": user_id}, {"_id": 0})
    if doc is None:
        return None
    if doc.get("company_id"):
        doc["company"] = await db.companies.find_one({"id": doc["company_id"]}, {"_id": 0})
    if doc.get("association_id"):
        doc["association"] = await db.associations.find_one({"id": doc["association_id"]}, {"_id": 0})
    return Profile(**doc)


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Profile:
    user_id = decode_user_id(credentials.credentials)
    profile = await load_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Profile not found")
    return profile


async def get_session(credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)) -> SessionContext:
    """Session as the gate sees it; a missing or bad token is simply an anonymous session."""
    if credentials is None:
        return SessionContext()
    try:
        user_id = decode_user_id(credentials.credentials)
    except HTTPException:
        return SessionContext()
    profile = await load_profile(user_id)
    if profile is None:
        return SessionContext()
    return SessionContext(user_id=user_id, profile=profile)


def check_role(allowed_roles: List[str]):
    async def role_checker(current_user: Profile = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user
    return role_checker
