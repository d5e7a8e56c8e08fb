from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime, timezone


class BookingStatus:
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingCreate(BaseModel):
    experience_date_id: str


class Booking(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    experience_date_id: str
    status: str = BookingStatus.CONFIRMED
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class SDGImpact(BaseModel):
    code: str
    hours: float


class HRDashboard(BaseModel):
    employees_count: int
    completed_bookings: int
    participating_employees: int
    participation_rate: int
    total_volunteer_hours: float
    total_beneficiaries: int
    sdg_impacts: List[SDGImpact]
    company_name: Optional[str] = None
