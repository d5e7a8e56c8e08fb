from fastapi import HTTPException
from datetime import datetime, timezone
from typing import Optional
import logging

from pymongo.errors import DuplicateKeyError

from database import db
from models.auth import Profile
from models.booking import Booking, BookingCreate, BookingStatus

logger = logging.getLogger(__name__)

ALREADY_BOOKED = "Sei già prenotato per questa data"
FULLY_BOOKED = "Posti esauriti"


def parse_datetime(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_date_visible(exp_date: dict, company_id: Optional[str]) -> bool:
    # company_id on a date reserves it for that company's employees
    return exp_date.get("company_id") in (None, company_id)


def is_booking_cancellable(booking: dict, experience_date: Optional[dict], now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    if booking.get("status") != BookingStatus.CONFIRMED or not experience_date:
        return False
    return parse_datetime(experience_date["start_datetime"]) > now


async def list_my_bookings(current_user: Profile) -> list:
    bookings = await db.bookings.find({"user_id": current_user.id}, {"_id": 0}).sort("created_at", -1).to_list(1000)
    date_ids = list({b["experience_date_id"] for b in bookings})
    dates = await db.experience_dates.find({"id": {"$in": date_ids}}, {"_id": 0}).to_list(len(date_ids) or 1)
    exp_ids = list({d["experience_id"] for d in dates})
    experiences = await db.experiences.find({"id": {"$in": exp_ids}}, {"_id": 0}).to_list(len(exp_ids) or 1)

    experience_map = {e["id"]: e for e in experiences}
    date_map = {}
    for d in dates:
        d["experience"] = experience_map.get(d["experience_id"])
        date_map[d["id"]] = d

    now = datetime.now(timezone.utc)
    for b in bookings:
        b["experience_date"] = date_map.get(b["experience_date_id"])
        b["cancellable"] = is_booking_cancellable(b, b["experience_date"], now)
    return bookings


async def create_booking(current_user: Profile, data: BookingCreate) -> dict:
    exp_date = await db.experience_dates.find_one({"id": data.experience_date_id}, {"_id": 0})
    experience = await db.experiences.find_one({"id": exp_date["experience_id"]}, {"_id": 0, "status": 1}) if exp_date else None
    if not exp_date or not experience or experience.get("status") != "published" \
            or not is_date_visible(exp_date, current_user.company_id):
        raise HTTPException(status_code=404, detail="Data non trovata")
    if parse_datetime(exp_date["start_datetime"]) <= datetime.now(timezone.utc):
        raise HTTPException(status_code=400, detail="Questa data non è più prenotabile")

    confirmed_filter = {"experience_date_id": data.experience_date_id, "status": BookingStatus.CONFIRMED}
    existing = await db.bookings.find_one({**confirmed_filter, "user_id": current_user.id})
    if existing:
        raise HTTPException(status_code=400, detail=ALREADY_BOOKED)

    max_participants = exp_date.get("max_participants", 0)
    if await db.bookings.count_documents(confirmed_filter) >= max_participants:
        raise HTTPException(status_code=400, detail=FULLY_BOOKED)

    booking = Booking(user_id=current_user.id, experience_date_id=data.experience_date_id)
    try:
        await db.bookings.insert_one(booking.model_dump())
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=ALREADY_BOOKED)

    # concurrent requests may all pass the count above; the earliest max_participants bookings win
    confirmed = await db.bookings.find(confirmed_filter, {"_id": 0, "id": 1}).sort([("created_at", 1), ("id", 1)]).to_list(max_participants + 1)
    if booking.id not in [b["id"] for b in confirmed[:max_participants]]:
        await db.bookings.delete_one({"id": booking.id})
        raise HTTPException(status_code=400, detail=FULLY_BOOKED)

    logger.info(f"Booking {booking.id} confirmed for user {current_user.id}")
    return booking.model_dump()


async def cancel_booking(current_user: Profile, booking_id: str) -> dict:
    booking = await db.bookings.find_one({"id": booking_id, "user_id": current_user.id}, {"_id": 0})
    if not booking:
        raise HTTPException(status_code=404, detail="Prenotazione non trovata")
    exp_date = await db.experience_dates.find_one({"id": booking["experience_date_id"]}, {"_id": 0})
    if not is_booking_cancellable(booking, exp_date):
        raise HTTPException(status_code=400, detail="La prenotazione non può essere annullata")
    await db.bookings.update_one({"id": booking_id}, {"$set": {"status": BookingStatus.CANCELLED}})
    return {"message": "Prenotazione annullata"}
