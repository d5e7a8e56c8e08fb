from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from datetime import datetime, timezone

# Load config first (triggers dotenv)
from config import CORS_ORIGINS
from database import db, client
from core.table_store import DataServiceError

# Import all routers
from routes.auth import router as auth_router
from routes.navigation import router as navigation_router
from routes.access_requests import router as access_requests_router
from routes.access_codes import router as access_codes_router
from routes.tables import router as tables_router
from routes.experiences import router as experiences_router
from routes.bookings import router as bookings_router
from routes.hr import router as hr_router
from routes.emails import router as emails_router

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Create the main app
app = FastAPI(title="Volunteering Platform API")

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers under /api prefix
API_PREFIX = "/api"
app.include_router(auth_router,            prefix=API_PREFIX)
app.include_router(navigation_router,      prefix=API_PREFIX)
app.include_router(access_requests_router, prefix=API_PREFIX)
app.include_router(access_codes_router,    prefix=API_PREFIX)
app.include_router(tables_router,          prefix=API_PREFIX)
app.include_router(experiences_router,     prefix=API_PREFIX)
app.include_router(bookings_router,        prefix=API_PREFIX)
app.include_router(hr_router,              prefix=API_PREFIX)
app.include_router(emails_router,          prefix=API_PREFIX)


@app.exception_handler(DataServiceError)
async def data_service_error_handler(request: Request, exc: DataServiceError):
    logger.error(f"Data service error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": "Errore del servizio dati"})


# ── Root / Health ──────────────────────────────────────────

@app.get("/api/")
async def root():
    return {"message": "Volunteering Platform API", "version": "1.0.0"}


@app.get("/api/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# ── Startup / Shutdown ─────────────────────────────────────

@app.on_event("startup")
async def ensure_indexes():
    await db.auth_users.create_index("email", unique=True)
    await db.profiles.create_index("id", unique=True)
    await db.access_codes.create_index("code", unique=True)
    await db.bookings.create_index([("experience_date_id", 1), ("status", 1)])
    await db.bookings.create_index(
        [("user_id", 1), ("experience_date_id", 1)],
        unique=True,
        partialFilterExpression={"status": "confirmed"},
    )
    await db.email_logs.create_index([("booking_id", 1), ("email_type", 1)])
    logger.info("Database indexes ensured")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
