from pathlib import Path
from dotenv import load_dotenv
import os

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# JWT Config
JWT_SECRET = os.environ.get('JWT_SECRET', 'volunteering_secret_key')
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

# Roles
ROLES = ["employee", "hr_admin", "association_admin", "super_admin"]

# Tables exposed through the generic table API.
# key: unique field, order: default (column, ascending), search: fields scanned by ?search=
TABLES = {
    "companies":        {"key": "id", "order": ("name", True),            "search": ["name"]},
    "associations":     {"key": "id", "order": ("name", True),            "search": ["name", "contact_name", "contact_email"]},
    "access_codes":     {"key": "id", "order": ("created_at", False),     "search": ["code", "entity_type", "assigned_role"]},
    "categories":       {"key": "id", "order": ("name", True),            "search": ["name", "description"]},
    "cities":           {"key": "id", "order": ("name", True),            "search": ["name", "province", "region"]},
    "experiences":      {"key": "id", "order": ("created_at", False),     "search": ["title", "city", "association_name", "category"]},
    "experience_dates": {"key": "id", "order": ("start_datetime", True),  "search": ["experience_id"]},
    "access_requests":  {"key": "id", "order": ("created_at", False),     "search": ["email", "first_name", "last_name", "company_name", "association_name"]},
    "profiles":         {"key": "id", "order": ("created_at", False),     "search": ["email", "first_name", "last_name", "role"]},
    "bookings":         {"key": "id", "order": ("created_at", False),     "search": ["status", "user_id"]},
    "email_settings":   {"key": "id", "order": ("company_id", True),      "search": ["company_id"]},
    "email_templates":  {"key": "id", "order": ("template_type", True),   "search": ["template_type", "subject"]},
    "email_logs":       {"key": "id", "order": ("created_at", False),     "search": ["booking_id", "email_type", "status"]},
}
LOGO_TABLES = ["companies", "associations"]

# Access requests
ACCESS_REQUEST_TYPES = [
    "employee_needs_code", "company_lead",
    "association_lead", "individual_waitlist",
]
ACCESS_REQUEST_MAX_REQUESTS = int(os.environ.get('ACCESS_REQUEST_MAX_REQUESTS', 3))
ACCESS_REQUEST_WINDOW_SECONDS = int(os.environ.get('ACCESS_REQUEST_WINDOW_SECONDS', 15 * 60))
ACCESS_REQUEST_FIELD_LIMITS = {
    "first_name": 100,
    "last_name": 100,
    "phone": 30,
    "city": 100,
    "company_name": 200,
    "association_name": 200,
    "role_in_company": 100,
    "message": 1000,
}
EMAIL_MAX_LENGTH = 255

# Access codes (no I/O/0/1 to avoid ambiguity when read aloud)
ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 8

# Image uploads (avatars, logos)
ALLOWED_IMAGE_TYPES = {'image/png', 'image/jpeg', 'image/webp', 'image/gif'}
MAX_IMAGE_SIZE = 2 * 1024 * 1024  # 2MB

# Booking emails (confirmation / reminder). Without SMTP_HOST emails are only logged as simulated.
SMTP_HOST = os.environ.get('SMTP_HOST', '')
SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
SMTP_USERNAME = os.environ.get('SMTP_USERNAME', '')
SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD', '')
SMTP_USE_TLS = os.environ.get('SMTP_USE_TLS', 'true').lower() == 'true'
SMTP_FROM_EMAIL = os.environ.get('SMTP_FROM_EMAIL', 'noreply@volontariato.it')
SMTP_FROM_NAME = os.environ.get('SMTP_FROM_NAME', 'Bravo!')
REMINDER_DEFAULT_HOURS = 24
REMINDER_LOOKAHEAD_HOURS = 48
