from fastapi import APIRouter, Depends
from models.auth import Profile, UserRole
from models.email import BookingConfirmationRequest, EmailResult, ReminderRunResult
from core.auth import check_role, get_current_user
from controllers import email_controller

router = APIRouter(prefix="/emails", tags=["emails"])


@router.post("/booking-confirmation", response_model=EmailResult)
async def send_booking_confirmation(data: BookingConfirmationRequest, current_user: Profile = Depends(get_current_user)):
    return await email_controller.send_booking_confirmation(data.booking_id, current_user)


@router.post("/reminders", response_model=ReminderRunResult)
async def send_booking_reminders(current_user: Profile = Depends(check_role([UserRole.SUPER_ADMIN]))):
    return await email_controller.send_booking_reminders()
