from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
import uuid
from datetime import datetime, timezone


class EmailType:
    BOOKING_CONFIRMATION = "booking_confirmation"
    BOOKING_REMINDER = "booking_reminder"


class EmailStatus:
    SENT = "sent"
    SIMULATED = "simulated"
    FAILED = "failed"


class EmailLog(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    booking_id: str
    email_type: str
    status: str
    error: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class BookingConfirmationRequest(BaseModel):
    booking_id: str


class EmailResult(BaseModel):
    success: bool
    status: str
    to: Optional[str] = None
    message: Optional[str] = None


class ReminderRunResult(BaseModel):
    success: bool = True
    emails_sent: int = 0
    emails_skipped: int = 0
