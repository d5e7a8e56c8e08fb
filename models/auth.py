from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, Dict, Any
import uuid
from datetime import datetime, timezone


class UserRole:
    EMPLOYEE = "employee"
    HR_ADMIN = "hr_admin"
    ASSOCIATION_ADMIN = "association_admin"
    SUPER_ADMIN = "super_admin"


class Profile(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = UserRole.EMPLOYEE
    company_id: Optional[str] = None
    association_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    # nested tenant records, filled on read
    company: Optional[Dict[str, Any]] = None
    association: Optional[Dict[str, Any]] = None


class SessionContext(BaseModel):
    user_id: Optional[str] = None
    loading: bool = False
    profile: Optional[Profile] = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    access_code: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    profile: Profile


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
