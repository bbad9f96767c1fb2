"""Shared fixtures: an in-memory Mongo (mongomock) behind the real Store."""
import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from context import AppContext
from database import Store


@pytest.fixture
def store():
    client = mongomock.MongoClient()
    store = Store(client["rovel_test"])
    store.ensure_indexes()
    yield store
    client.close()


@pytest.fixture
def ctx(store):
    return AppContext(store=store)


@pytest.fixture
def client(ctx):
    app = main.create_app(ctx)
    with TestClient(app) as test_client:
        yield test_client
