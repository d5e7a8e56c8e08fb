import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from config import ACCESS_CODE_ALPHABET, ACCESS_CODE_LENGTH
from database import db
from models.access_code import AccessCodeValidation, EntityType

INVALID_CODE = "Codice di accesso non valido o scaduto"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def generate_code(length: int = ACCESS_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


async def generate_unique_code() -> dict:
    for _ in range(10):
        code = generate_code()
        if not await db.access_codes.find_one({"code": code}):
            return {"code": code}
    raise HTTPException(status_code=500, detail="Impossibile generare un codice univoco")


def is_code_usable(doc: dict, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    if not doc.get("is_active"):
        return False
    expires_at = doc.get("expires_at")
    if expires_at:
        expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        if expiry <= now:
            return False
    max_uses = doc.get("max_uses")
    if max_uses is not None and doc.get("use_count", 0) >= max_uses:
        return False
    return True


async def _entity_name(entity_type: str, entity_id: str) -> str:
    collection = db.companies if entity_type == EntityType.COMPANY else db.associations
    entity = await collection.find_one({"id": entity_id}, {"_id": 0, "name": 1})
    return entity["name"] if entity else "Sconosciuto"


async def validate_access_code(code: str) -> AccessCodeValidation:
    doc = await db.access_codes.find_one({"code": normalize_code(code)}, {"_id": 0})
    if not doc or not is_code_usable(doc):
        raise HTTPException(status_code=400, detail=INVALID_CODE)
    return AccessCodeValidation(
        entity_type=doc["entity_type"],
        entity_id=doc["entity_id"],
        entity_name=await _entity_name(doc["entity_type"], doc["entity_id"]),
        assigned_role=doc["assigned_role"],
    )


async def redeem_access_code(code: str) -> AccessCodeValidation:
    """Validate and count one use; the increment only applies while the code is under its cap."""
    validation = await validate_access_code(code)
    normalized = normalize_code(code)
    result = await db.access_codes.update_one(
        {
            "code": normalized,
            "is_active": True,
            "$or": [
                {"max_uses": None},
                {"$expr": {"$lt": ["$use_count", "$max_uses"]}},
            ],
        },
        {"$inc": {"use_count": 1}, "$set": {"updated_at": datetime.now(timezone.utc).isoformat()}},
    )
    if result.modified_count == 0:
        raise HTTPException(status_code=400, detail=INVALID_CODE)
    return validation
