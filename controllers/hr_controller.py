from fastapi import HTTPException
from datetime import datetime, timezone
from typing import Optional

from database import db
from models.auth import Profile
from models.booking import BookingStatus, HRDashboard, SDGImpact
from controllers.booking_controller import parse_datetime


def compute_dashboard(employees_count: int, bookings: list, now: Optional[datetime] = None) -> HRDashboard:
    """Aggregate company bookings. Each booking carries its experience_date, which carries its experience.

    A booking counts as completed when it is confirmed and its date has ended.
    """
    now = now or datetime.now(timezone.utc)
    completed = [
        b for b in bookings
        if b.get("status") == BookingStatus.CONFIRMED
        and b.get("experience_date")
        and parse_datetime(b["experience_date"]["end_datetime"]) < now
    ]

    participants = {b["user_id"] for b in completed}
    participation_rate = round(len(participants) / employees_count * 100) if employees_count > 0 else 0

    total_hours = 0.0
    total_beneficiaries = 0
    sdg_hours = {}
    for b in completed:
        exp_date = b["experience_date"]
        hours = float(exp_date.get("volunteer_hours") or 0)
        total_hours += hours
        total_beneficiaries += exp_date.get("beneficiaries_count") or 0
        for sdg in (exp_date.get("experience") or {}).get("sdgs") or []:
            sdg_hours[sdg] = sdg_hours.get(sdg, 0) + hours

    impacts = sorted((SDGImpact(code=code, hours=hours) for code, hours in sdg_hours.items()), key=lambda i: i.hours, reverse=True)
    return HRDashboard(
        employees_count=employees_count,
        completed_bookings=len(completed),
        participating_employees=len(participants),
        participation_rate=participation_rate,
        total_volunteer_hours=total_hours,
        total_beneficiaries=total_beneficiaries,
        sdg_impacts=impacts,
    )


async def get_dashboard(current_user: Profile) -> HRDashboard:
    if not current_user.company_id:
        raise HTTPException(status_code=400, detail="Nessuna azienda associata al profilo")

    employees = await db.profiles.find({"company_id": current_user.company_id}, {"_id": 0, "id": 1}).to_list(10000)
    employee_ids = [e["id"] for e in employees]
    bookings = await db.bookings.find({"user_id": {"$in": employee_ids}}, {"_id": 0}).to_list(10000)

    date_ids = list({b["experience_date_id"] for b in bookings})
    dates = await db.experience_dates.find({"id": {"$in": date_ids}}, {"_id": 0}).to_list(len(date_ids) or 1)
    exp_ids = list({d["experience_id"] for d in dates})
    experiences = await db.experiences.find({"id": {"$in": exp_ids}}, {"_id": 0, "id": 1, "title": 1, "sdgs": 1}).to_list(len(exp_ids) or 1)
    experience_map = {e["id"]: e for e in experiences}
    date_map = {}
    for d in dates:
        d["experience"] = experience_map.get(d["experience_id"])
        date_map[d["id"]] = d
    for b in bookings:
        b["experience_date"] = date_map.get(b["experience_date_id"])

    dashboard = compute_dashboard(len(employee_ids), bookings)
    if current_user.company:
        dashboard.company_name = current_user.company.get("name")
    return dashboard
