import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from config import ACCESS_REQUEST_MAX_REQUESTS, ACCESS_REQUEST_WINDOW_SECONDS
from core.rate_limit import InMemoryRateLimiter, RateLimiter
from core.table_store import TableStore
from database import get_table_store
from controllers import access_request_controller
from controllers.access_request_controller import AccessRequestError, get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(tags=["access-requests"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

access_request_limiter = InMemoryRateLimiter(ACCESS_REQUEST_MAX_REQUESTS, ACCESS_REQUEST_WINDOW_SECONDS)


def get_rate_limiter() -> RateLimiter:
    return access_request_limiter


def _json(content: dict, status_code: int) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


@router.api_route("/access-requests", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def submit_access_request(
    request: Request,
    store: TableStore = Depends(get_table_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    if request.method != "POST":
        return _json({"error": "Method not allowed"}, 405)

    ip = get_client_ip(request)
    if not limiter.increment(ip):
        logger.warning(f"Access request rate limit hit for {ip}")
        return _json({"error": "Troppe richieste. Riprova tra qualche minuto."}, 429)

    try:
        body = await request.json()
    except ValueError:
        return _json({"error": "Richiesta non valida"}, 400)

    try:
        result = await access_request_controller.submit_access_request(store, body)
    except AccessRequestError as e:
        return _json({"error": e.message}, e.status_code)
    return _json(result, 200)
