from datetime import datetime, timezone
from typing import Optional

from database import db
from models.auth import Profile
from models.booking import BookingStatus
from controllers.booking_controller import is_date_visible


async def list_experiences(current_user: Profile, search: Optional[str] = None) -> list:
    """Published experiences with their upcoming dates visible to the caller's company."""
    experiences = await db.experiences.find({"status": "published"}, {"_id": 0}).sort("created_at", -1).to_list(1000)
    if search and search.strip():
        needle = search.strip().lower()
        experiences = [
            e for e in experiences
            if any(needle in str(e.get(f) or "").lower() for f in ("title", "city", "association_name", "category"))
        ]
    if not experiences:
        return []

    association_ids = list({e["association_id"] for e in experiences if e.get("association_id")})
    associations = await db.associations.find({"id": {"$in": association_ids}}, {"_id": 0, "id": 1, "name": 1, "logo_url": 1}).to_list(1000)
    association_map = {a["id"]: a for a in associations}

    now = datetime.now(timezone.utc).isoformat()
    dates = await db.experience_dates.find(
        {"experience_id": {"$in": [e["id"] for e in experiences]}, "start_datetime": {"$gte": now}},
        {"_id": 0},
    ).sort("start_datetime", 1).to_list(5000)

    dates_by_experience = {}
    for d in dates:
        if is_date_visible(d, current_user.company_id):
            dates_by_experience.setdefault(d["experience_id"], []).append(d)

    for e in experiences:
        association = association_map.get(e.get("association_id"))
        if association:
            e["association_name"] = association.get("name") or e.get("association_name")
        e["association_logo_url"] = association.get("logo_url") if association else None
        e["sdgs"] = e.get("sdgs") or []
        e["experience_dates"] = dates_by_experience.get(e["id"], [])
    return experiences


async def list_experience_dates(current_user: Profile, experience_id: str) -> list:
    """Upcoming dates of one experience with the number of confirmed bookings on each."""
    now = datetime.now(timezone.utc).isoformat()
    dates = await db.experience_dates.find(
        {"experience_id": experience_id, "start_datetime": {"$gte": now}},
        {"_id": 0},
    ).sort("start_datetime", 1).to_list(1000)
    result = []
    for d in dates:
        if not is_date_visible(d, current_user.company_id):
            continue
        d["confirmed_count"] = await db.bookings.count_documents({"experience_date_id": d["id"], "status": BookingStatus.CONFIRMED})
        result.append(d)
    return result
