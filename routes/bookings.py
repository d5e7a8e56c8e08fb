from fastapi import APIRouter, BackgroundTasks, Depends
from models.auth import Profile
from models.booking import BookingCreate
from core.auth import get_current_user
from controllers import booking_controller, email_controller

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/mine")
async def list_my_bookings(current_user: Profile = Depends(get_current_user)):
    return await booking_controller.list_my_bookings(current_user)


@router.post("")
async def create_booking(data: BookingCreate, background_tasks: BackgroundTasks, current_user: Profile = Depends(get_current_user)):
    booking = await booking_controller.create_booking(current_user, data)
    background_tasks.add_task(email_controller.send_booking_confirmation, booking["id"])
    return booking


@router.post("/{booking_id}/cancel")
async def cancel_booking(booking_id: str, current_user: Profile = Depends(get_current_user)):
    return await booking_controller.cancel_booking(current_user, booking_id)
