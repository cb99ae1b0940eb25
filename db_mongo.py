from functools import lru_cache
from pymongo import MongoClient, ASCENDING
from pymongo.database import Database
from settings import settings
import re

DEFAULT_DB_NAME = "realms"


def norm_key(s: str) -> str:
    return re.sub(r"\s+", " ", (s or "").strip()).lower()

@lru_cache
def get_client() -> MongoClient:
    uri = settings.mongodb_uri
    if not uri or "xxxx.mongodb.net" in uri or "example.com" in uri:
        raise RuntimeError("MONGODB_URI is missing or still a placeholder.")
    if uri.startswith("mongomock://"):
        import mongomock
        return mongomock.MongoClient("mongodb://" + uri[len("mongomock://"):])
    return MongoClient(uri)

def get_db() -> Database:
    client = get_client()
    return client.get_default_database(default=DEFAULT_DB_NAME)

def get_col(name: str):
    return get_db()[name]

def ensure_indexes() -> None:
    db = get_db()
    db.abilities.create_index([("universe", ASCENDING), ("id", ASCENDING)], unique=True)
    db.abilities.create_index([("universe", ASCENDING), ("name_key", ASCENDING)])
    db.effects.create_index([("universe", ASCENDING), ("id", ASCENDING)], unique=True)
