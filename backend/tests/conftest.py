import os

# Окружение должно быть задано до импорта database / auth
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest

import database
from bridge import DataBridge
from fakes import FakeRemote, RecordingNavigator
from local_store import MemoryLocalStore


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def store():
    return MemoryLocalStore()


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def bridge(remote, store, navigator):
    return DataBridge(remote, store, navigator=navigator)


@pytest.fixture
def db_session():
    database.init_schema()
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
        database.Base.metadata.drop_all(bind=database.engine)
