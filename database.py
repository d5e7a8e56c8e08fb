import os
from motor.motor_asyncio import AsyncIOMotorClient
from config import ROOT_DIR
from dotenv import load_dotenv

from core.table_store import MongoTableStore

load_dotenv(ROOT_DIR / '.env')

client = AsyncIOMotorClient(os.environ.get('MONGO_URL', 'mongodb://localhost:27017'))
db = client[os.environ.get('DB_NAME', 'volunteering')]

table_store = MongoTableStore(db)


def get_table_store() -> MongoTableStore:
    return table_store
