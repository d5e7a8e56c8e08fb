from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
import uuid
from datetime import datetime, timezone


class EntityType:
    COMPANY = "company"
    ASSOCIATION = "association"


class AccessCode(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    code: str
    entity_type: str = EntityType.COMPANY
    entity_id: str
    assigned_role: str = "employee"
    is_active: bool = True
    max_uses: Optional[int] = None
    use_count: int = 0
    expires_at: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class AccessCodeCheck(BaseModel):
    code: str


class AccessCodeValidation(BaseModel):
    entity_type: str
    entity_id: str
    entity_name: str
    assigned_role: str
