from motor.motor_asyncio import AsyncIOMotorClient
from .config import settings


def get_database(uri: str = settings.mongo_uri, name: str = settings.mongo_db):
    client = AsyncIOMotorClient(uri, tz_aware=True)
    return client[name]


def trending_collections(db):
    return db["trending_products"], db["fire_badges"], db["trending_config"]
