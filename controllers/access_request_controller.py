import re
import logging
from typing import Any, Optional

from config import ACCESS_REQUEST_TYPES, ACCESS_REQUEST_FIELD_LIMITS, EMAIL_MAX_LENGTH
from core.table_store import DataServiceError, TableStore
from models.access_request import AccessRequest

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AccessRequestError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_client_ip(request) -> str:
    """First X-Forwarded-For hop, then Cloudflare's header, else 'unknown'."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()
    return "unknown"


def validate_string(value: Any, max_len: int) -> Optional[str]:
    """Trimmed string, or None for blank/non-string input. Too long raises."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if len(trimmed) > max_len:
        raise AccessRequestError(f"Campo troppo lungo (max {max_len} caratteri)")
    return trimmed


def validate_access_request(body: Any) -> AccessRequest:
    if not isinstance(body, dict):
        raise AccessRequestError("Tipo di richiesta non valido")

    request_type = body.get("request_type")
    if not request_type or request_type not in ACCESS_REQUEST_TYPES:
        raise AccessRequestError("Tipo di richiesta non valido")

    email = validate_string(body.get("email"), EMAIL_MAX_LENGTH)
    if not email or not EMAIL_REGEX.match(email):
        raise AccessRequestError("Email non valida")

    fields = {name: validate_string(body.get(name), limit) for name, limit in ACCESS_REQUEST_FIELD_LIMITS.items()}
    return AccessRequest(request_type=request_type, email=email, **fields)


async def submit_access_request(store: TableStore, body: Any) -> dict:
    access_request = validate_access_request(body)
    try:
        await store.insert("access_requests", access_request.model_dump())
    except DataServiceError as e:
        logger.error(f"Insert error: {e}")
        raise AccessRequestError("Errore durante l'invio della richiesta", status_code=500)
    logger.info(f"Access request '{access_request.request_type}' received from {access_request.email}")
    return {"success": True}
