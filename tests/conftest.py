import uuid

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from product_api.config import Settings
from product_api.main import create_app

API_KEY = "test-api-key"
AUTH = {"x-api-key": API_KEY}


@pytest.fixture
def settings():
    return Settings(
        MONGO_DB=f"products_test_{uuid.uuid4().hex}",
        API_KEY=API_KEY,
        PYTHON_ENV="test",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture
def app(settings, mongo_client):
    return create_app(settings, mongo_client=mongo_client)


@pytest.fixture
def client(app):
    # Context manager runs the lifespan, which binds the collection
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_product(client):
    def _create(**overrides):
        payload = {
            "name": "Widget",
            "description": "A useful widget",
            "price": 9.99,
            "category": "tools",
            "inStock": True,
        }
        payload.update(overrides)
        res = client.post("/api/products", json=payload, headers=AUTH)
        assert res.status_code == 201, res.text
        return res.json()["product"]

    return _create


@pytest.fixture
def seeded(create_product):
    """The three-product catalogue: A/B in category x, C in category y."""
    return [
        create_product(name="A", description="first", price=10, category="x", inStock=True),
        create_product(name="B", description="second", price=20, category="x", inStock=False),
        create_product(name="C", description="third", price=30, category="y", inStock=True),
    ]
