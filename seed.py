"""
Seed script for the volunteering platform - creates the super admin and base data
Run: python seed.py
"""
import asyncio
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient
from passlib.context import CryptContext

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

mongo_url = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
client = AsyncIOMotorClient(mongo_url)
db = client[os.environ.get('DB_NAME', 'volunteering')]

ADMIN_EMAIL = os.environ.get('SEED_ADMIN_EMAIL', 'admin@volontariato.it')
ADMIN_PASSWORD = os.environ.get('SEED_ADMIN_PASSWORD', 'admin123')

CITIES = [
    ("Milano", "MI", "Lombardia"),
    ("Roma", "RM", "Lazio"),
    ("Torino", "TO", "Piemonte"),
    ("Bologna", "BO", "Emilia-Romagna"),
]

CATEGORIES = [
    ("Ambiente", "Cura del territorio e del verde", ["13", "15"]),
    ("Sociale", "Supporto a persone in difficoltà", ["1", "10"]),
    ("Educazione", "Attività con bambini e ragazzi", ["4"]),
]


def _now():
    return datetime.now(timezone.utc).isoformat()


async def seed():
    print("Starting seed...")

    # ==================== SUPER ADMIN ====================
    existing = await db.auth_users.find_one({"email": ADMIN_EMAIL})
    if existing:
        print("Super admin already exists, skipping...")
    else:
        admin_id = str(uuid.uuid4())
        await db.auth_users.insert_one({"id": admin_id, "email": ADMIN_EMAIL, "password": pwd_context.hash(ADMIN_PASSWORD)})
        await db.profiles.insert_one({
            "id": admin_id,
            "email": ADMIN_EMAIL,
            "first_name": "Super",
            "last_name": "Admin",
            "role": "super_admin",
            "company_id": None,
            "association_id": None,
            "avatar_url": None,
            "created_at": _now(),
        })
        print(f"Super admin created: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")

    # ==================== CITIES ====================
    for name, province, region in CITIES:
        if await db.cities.find_one({"name": name}):
            continue
        await db.cities.insert_one({
            "id": str(uuid.uuid4()), "name": name, "province": province, "region": region,
            "created_at": _now(), "updated_at": _now(),
        })
        print(f"City created: {name}")

    # ==================== CATEGORIES ====================
    for name, description, sdgs in CATEGORIES:
        if await db.categories.find_one({"name": name}):
            continue
        await db.categories.insert_one({
            "id": str(uuid.uuid4()), "name": name, "description": description, "default_sdgs": sdgs,
            "created_at": _now(), "updated_at": _now(),
        })
        print(f"Category created: {name}")

    print("\n--- Seed complete! ---")
    print("Login credentials:")
    print(f"  Super admin: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")
    print("\nNote:")
    print("  - Companies, associations and access codes are created from the super admin area")
    print("  - Employees and admins sign up with an access code")

    client.close()


if __name__ == "__main__":
    asyncio.run(seed())
