import os
import tempfile

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="realms-tests-")

os.environ.setdefault("CORS_ORIGINS", "http://localhost")
os.environ.setdefault("MONGODB_URI", "mongomock://localhost/realms_test")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/realms_test.db")
os.environ.setdefault("GOR_UNIVERSE_SECRET_KEY", "gor-test-secret")
os.environ.setdefault("ARKANA_UNIVERSE_SECRET_KEY", "arkana-test-secret")

from sqlalchemy import create_engine

from db_mongo import get_db
from main import app
from server.src.modules.catalog import invalidate_catalog_cache
from server.src.modules.realm_db import Base, DATABASE_URL

_sync_engine = create_engine(DATABASE_URL.replace("+aiosqlite", "", 1))


@pytest.fixture(autouse=True)
def clean_state():
    Base.metadata.drop_all(_sync_engine)
    Base.metadata.create_all(_sync_engine)
    db = get_db()
    for name in db.list_collection_names():
        db.drop_collection(name)
    invalidate_catalog_cache()
    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()
    invalidate_catalog_cache()

