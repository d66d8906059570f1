import types

from bson import ObjectId
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from pymongo.errors import DuplicateKeyError

from product_api.database import get_products_collection
from product_api.keygen import generate_api_key

from .conftest import AUTH

PAYLOAD = {"name": "Lamp", "description": "Desk lamp", "price": 5, "category": "home"}


class FailingCollection:
    """Stands in for the Motor collection and fails every call."""

    def __init__(self, exc):
        self.exc = exc

    def find(self, *args, **kwargs):
        raise self.exc

    async def insert_one(self, *args, **kwargs):
        raise self.exc


class VanishingCollection:
    """Every document disappears before the write lands."""

    async def find_one_and_update(self, *args, **kwargs):
        return None

    async def find_one_and_delete(self, *args, **kwargs):
        return None


def _ping_collection(result=None, exc=None):
    async def command(name):
        if exc is not None:
            raise exc
        return result

    return types.SimpleNamespace(database=types.SimpleNamespace(command=command))


def test_root(client):
    res = client.get("/")
    assert res.status_code == 200
    assert "/api/products" in res.json()["message"]


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "OK"
    assert data["service"] == "Product API"
    assert data["timestamp"]


def test_ready(app, client):
    app.dependency_overrides[get_products_collection] = lambda: _ping_collection({"ok": 1.0})
    res = client.get("/ready")
    assert res.status_code == 200
    assert res.json()["db"] == "connected"


def test_ready_reports_unreachable_db(app, client):
    app.dependency_overrides[get_products_collection] = lambda: _ping_collection(
        exc=RuntimeError("connection refused")
    )
    res = client.get("/ready")
    assert res.status_code == 503
    assert res.json()["db"] == "connection refused"


def test_metrics(client):
    client.get("/health")
    res = client.get("/metrics")
    assert res.status_code == 200
    assert "product_api_http_requests_total" in res.text


def test_duplicate_key(app, client):
    exc = DuplicateKeyError("E11000 duplicate key", 11000, {"keyValue": {"name": "Lamp"}})
    app.dependency_overrides[get_products_collection] = lambda: FailingCollection(exc)
    res = client.post("/api/products", json=PAYLOAD, headers=AUTH)
    assert res.status_code == 400
    assert res.json() == {"message": "Duplicate field value entered", "error": {"name": "Lamp"}}


def test_unhandled_error_includes_detail_outside_production(app):
    app.dependency_overrides[get_products_collection] = lambda: FailingCollection(RuntimeError("boom"))
    with TestClient(app, raise_server_exceptions=False) as client:
        res = client.get("/api/products")
    assert res.status_code == 500
    assert res.json() == {"message": "Something went wrong!", "error": "boom"}


def test_unhandled_error_hides_detail_in_production(app):
    app.state.settings.PYTHON_ENV = "production"
    app.dependency_overrides[get_products_collection] = lambda: FailingCollection(RuntimeError("boom"))
    with TestClient(app, raise_server_exceptions=False) as client:
        res = client.get("/api/products/search?q=lamp")
    assert res.status_code == 500
    assert res.json() == {"message": "Something went wrong!", "error": {}}


def test_settings_from_environment(monkeypatch):
    from product_api.config import Settings

    monkeypatch.setenv("API_KEY", "from-env")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("PYTHON_ENV", "production")
    settings = Settings()
    assert settings.API_KEY == "from-env"
    assert settings.PORT == 8080
    assert settings.is_production


def test_docs_disabled_in_production(mongo_client):
    from product_api.config import Settings
    from product_api.main import create_app

    app = create_app(Settings(PYTHON_ENV="production"), mongo_client=mongo_client)
    assert app.docs_url is None


def test_generate_api_key():
    key = generate_api_key()
    assert len(key) == 36
    assert key != generate_api_key()


def _request_count(method, endpoint, status_code):
    value = REGISTRY.get_sample_value(
        "product_api_http_requests_total",
        {"method": method, "endpoint": endpoint, "status_code": str(status_code)},
    )
    return value or 0.0


def test_unhandled_error_is_counted(app):
    before = _request_count("GET", "/api/products", 500)
    app.dependency_overrides[get_products_collection] = lambda: FailingCollection(RuntimeError("boom"))
    with TestClient(app, raise_server_exceptions=False) as client:
        assert client.get("/api/products").status_code == 500
    assert _request_count("GET", "/api/products", 500) == before + 1


def test_metrics_label_with_route_template(client):
    first, second = ObjectId(), ObjectId()
    before = _request_count("GET", "/api/products/{product_id}", 404)
    assert client.get(f"/api/products/{first}").status_code == 404
    assert client.get(f"/api/products/{second}").status_code == 404

    assert _request_count("GET", "/api/products/{product_id}", 404) == before + 2
    assert _request_count("GET", f"/api/products/{first}", 404) == 0.0
    assert f"/api/products/{second}" not in client.get("/metrics").text


def test_unknown_path_is_labelled_unmatched(client):
    before = _request_count("GET", "unmatched", 404)
    assert client.get("/no/such/path").status_code == 404
    assert _request_count("GET", "unmatched", 404) == before + 1


def test_update_of_product_deleted_mid_request(app, client):
    app.dependency_overrides[get_products_collection] = lambda: VanishingCollection()
    res = client.put(f"/api/products/{ObjectId()}", json={"price": 1}, headers=AUTH)
    assert res.status_code == 404
    assert res.json() == {"message": "Product not found"}


def test_delete_of_product_deleted_mid_request(app, client):
    app.dependency_overrides[get_products_collection] = lambda: VanishingCollection()
    res = client.delete(f"/api/products/{ObjectId()}", headers=AUTH)
    assert res.status_code == 404
