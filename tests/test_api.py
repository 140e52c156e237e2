"""
Tests for the HTTP API.
"""

import json
import os
import shutil
import tempfile
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from cakecraft.api.app import create_app
from cakecraft.config.loader import AdminConfig, AppSettings, StorageConfig
from cakecraft.demo.seed_pricing import default_pricing_document
from cakecraft.storage.document_store import PricingDocumentStore


def _pricing() -> dict:
    document = default_pricing_document()
    document["basePrices"]["6inch"] = 9000
    document["templatePrices"]["fathers-day"] = 1000
    return document


@pytest.fixture
def workspace():
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def settings(workspace):
    settings = AppSettings(
        storage=StorageConfig(
            pricing_path=os.path.join(workspace, "pricing-structure.json"),
            backup_dir=os.path.join(workspace, "backups"),
            db_path=os.path.join(workspace, "orders.db"),
        ),
        admin=AdminConfig(username="admin", password="s3cret"),
    )
    store = PricingDocumentStore(settings.storage.pricing_path, settings.storage.backup_dir)
    store.ensure_document(_pricing())
    return settings


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.send_order_emails.return_value = True
    return mock


@pytest.fixture
def client(settings, notifier):
    with TestClient(create_app(settings, notifier=notifier)) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    response = client.post("/api/admin-auth/verify", json={"username": "admin", "password": "s3cret"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['sessionToken']}"}


BASIC_CAKE = {
    "sixInchCakes": 1,
    "eightInchCakes": 0,
    "layers": 1,
    "shape": "round",
    "flavors": ["butter"],
    "icingType": "butter",
    "decorations": [],
    "dietaryRestrictions": [],
}


class TestCalculatePrice:
    """Test POST /api/calculate-price."""

    def test_basic_cake(self, client):
        response = client.post("/api/calculate-price", json=BASIC_CAKE)
        assert response.status_code == 200
        data = response.json()
        assert data["totalPrice"] == 9000
        assert data["basePrice"] == 9000
        assert data["cakeQuantity"] == 1
        assert data["breakdown"]["base"] == 9000

    def test_three_layers(self, client):
        response = client.post("/api/calculate-price", json={**BASIC_CAKE, "layers": 3})
        assert response.json()["totalPrice"] == 12000

    def test_fathers_day(self, client):
        payload = {**BASIC_CAKE, "template": "fathers-day", "sixInchCakes": 2, "eightInchCakes": 1}
        data = client.post("/api/calculate-price", json=payload).json()
        assert data["basePrice"] == 33500
        assert data["templatePrice"] == 3000
        assert data["totalPrice"] == 36500
        assert data["layerPrice"] == 0
        assert data["decorationTotal"] == 0

    def test_zero_cakes(self, client):
        response = client.post("/api/calculate-price", json={**BASIC_CAKE, "sixInchCakes": 0})
        assert response.status_code == 400
        assert response.json() == {"message": "Must select at least one cake"}

    def test_garbage_counts_coerce(self, client):
        payload = {**BASIC_CAKE, "sixInchCakes": "abc", "eightInchCakes": "1"}
        data = client.post("/api/calculate-price", json=payload).json()
        assert data["basePrice"] == 15500

    def test_reflects_pricing_update(self, client, auth_headers):
        document = _pricing()
        document["basePrices"]["6inch"] = 9500
        assert client.put("/api/admin/pricing", json=document, headers=auth_headers).status_code == 200

        data = client.post("/api/calculate-price", json=BASIC_CAKE).json()
        assert data["totalPrice"] == 9500


class TestPricingStructure:
    """Test public and admin pricing reads."""

    def test_public_read(self, client):
        response = client.get("/api/pricing-structure")
        assert response.status_code == 200
        assert response.json() == _pricing()

    def test_admin_read_requires_auth(self, client):
        assert client.get("/api/admin/pricing").status_code == 401

    def test_admin_read(self, client, auth_headers):
        response = client.get("/api/admin/pricing", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["layerPrice"] == 1500

    def test_admin_session_header(self, client, auth_headers):
        token = auth_headers["Authorization"].split(" ", 1)[1]
        response = client.get("/api/admin/pricing", headers={"X-Admin-Session": token})
        assert response.status_code == 200

    def test_missing_document_is_server_error(self, client, settings):
        os.remove(settings.storage.pricing_path)
        response = client.get("/api/pricing-structure")
        assert response.status_code == 500
        assert "message" in response.json()


class TestAdminAuth:
    """Test POST /api/admin-auth/verify."""

    def test_invalid_credentials(self, client):
        response = client.post("/api/admin-auth/verify", json={"username": "wrong", "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_missing_fields(self, client):
        response = client.post("/api/admin-auth/verify", json={"username": "admin"})
        assert response.status_code == 400
        assert response.json()["message"] == "Username and password required"

    def test_forged_token(self, client):
        response = client.get("/api/admin/pricing", headers={"Authorization": "Bearer admin_1_forged"})
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid or expired session"}


class TestPricingUpdate:
    """Test PUT /api/admin/pricing and backup listing."""

    def test_update_requires_auth(self, client):
        response = client.put("/api/admin/pricing", json=_pricing())
        assert response.status_code == 401

    def test_update_creates_backup(self, client, auth_headers, settings):
        document = _pricing()
        document["layerPrice"] = 1600
        response = client.put("/api/admin/pricing", json=document, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Pricing updated successfully"
        with open(body["backup"], "r", encoding="utf-8") as f:
            assert json.load(f) == _pricing()

        assert client.get("/api/pricing-structure").json()["layerPrice"] == 1600

    def test_missing_section_rejected(self, client, auth_headers):
        response = client.put(
            "/api/admin/pricing", json={"basePrices": {"6inch": 9000}}, headers=auth_headers
        )
        assert response.status_code == 400
        assert "Missing required field" in response.json()["message"]
        assert client.get("/api/pricing-structure").json() == _pricing()

    def test_negative_price_rejected(self, client, auth_headers):
        document = _pricing()
        document["basePrices"]["6inch"] = -1000
        response = client.put("/api/admin/pricing", json=document, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "basePrices.6inch must be a non-negative number"

    def test_infinite_price_rejected(self, client, auth_headers):
        body = json.dumps(_pricing()).replace('"layerPrice": 1500', '"layerPrice": Infinity')
        response = client.put(
            "/api/admin/pricing",
            content=body,
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "layerPrice must be a non-negative number"

        assert client.get("/api/pricing-structure").status_code == 200
        data = client.post("/api/calculate-price", json={**BASIC_CAKE, "layers": 2}).json()
        assert data["totalPrice"] == 10500

    def test_fractional_price_rejected(self, client, auth_headers):
        document = _pricing()
        document["basePrices"]["6inch"] = 9000.75
        response = client.put("/api/admin/pricing", json=document, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "basePrices.6inch must be a non-negative number"

    def test_list_backups(self, client, auth_headers):
        assert client.get("/api/admin/pricing/backups", headers=auth_headers).json() == []

        client.put("/api/admin/pricing", json=_pricing(), headers=auth_headers)
        client.put("/api/admin/pricing", json=_pricing(), headers=auth_headers)

        backups = client.get("/api/admin/pricing/backups", headers=auth_headers).json()
        assert len(backups) == 2
        assert set(backups[0]) == {"filename", "timestamp", "size"}
        assert backups[0]["timestamp"] >= backups[1]["timestamp"]

    def test_list_backups_requires_auth(self, client):
        assert client.get("/api/admin/pricing/backups").status_code == 401


ORDER = {
    "customerName": "Aina Rahman",
    "customerEmail": "aina@example.com",
    "deliveryMethod": "pickup",
    **BASIC_CAKE,
    "layers": 2,
    "decorations": ["sprinkles"],
}


class TestOrders:
    """Test checkout and order administration."""

    def test_create_order_stamps_price(self, client, notifier):
        response = client.post("/api/orders", json={**ORDER, "totalPrice": 1})
        assert response.status_code == 201
        data = response.json()
        # 9000 base + 1500 layer + 500 sprinkles; client price ignored
        assert data["totalPrice"] == 11000
        assert data["status"] == "pending"
        notifier.send_order_emails.assert_called_once()

    def test_order_placed_when_email_fails(self, client, notifier):
        notifier.send_order_emails.return_value = False
        response = client.post("/api/orders", json=ORDER)
        assert response.status_code == 201

    def test_create_order_zero_cakes(self, client):
        response = client.post("/api/orders", json={**ORDER, "sixInchCakes": 0})
        assert response.status_code == 400
        assert response.json()["message"] == "Must select at least one cake"

    def test_create_order_invalid_payload(self, client):
        response = client.post("/api/orders", json={**ORDER, "customerEmail": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request data"

    def test_get_order(self, client):
        created = client.post("/api/orders", json=ORDER).json()
        response = client.get(f"/api/orders/{created['id']}")
        assert response.status_code == 200
        assert response.json()["customerName"] == "Aina Rahman"

    def test_get_missing_order(self, client):
        response = client.get("/api/orders/9999")
        assert response.status_code == 404
        assert response.json() == {"message": "Order not found"}

    def test_list_orders_requires_auth(self, client):
        assert client.get("/api/orders").status_code == 401

    def test_list_orders(self, client, auth_headers):
        client.post("/api/orders", json=ORDER)
        response = client.get("/api/orders", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_update_status(self, client, auth_headers):
        created = client.post("/api/orders", json=ORDER).json()
        response = client.patch(
            f"/api/orders/{created['id']}/status", json={"status": "confirmed"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

    def test_update_status_invalid(self, client, auth_headers):
        created = client.post("/api/orders", json=ORDER).json()
        response = client.patch(
            f"/api/orders/{created['id']}/status", json={"status": "eaten"}, headers=auth_headers
        )
        assert response.status_code == 400


CUSTOMER = {
    "customerName": "Aina Rahman",
    "customerEmail": "aina@example.com",
    "deliveryMethod": "delivery",
}


class TestCheckout:
    """Test POST /api/checkout with multiple line items."""

    def test_mixed_cart_priced_server_side(self, client, notifier):
        payload = {
            "customer": CUSTOMER,
            "items": [
                {
                    "type": "custom",
                    "quantity": 1,
                    "unitPrice": 1,
                    "totalPrice": 1,
                    "cakeConfig": {**BASIC_CAKE, "layers": 2, "decorations": ["sprinkles"]},
                },
                {"type": "specialty", "quantity": 2, "specialtyId": "burnt-cheesecake", "unitPrice": 1},
                {"type": "slice", "quantity": 3, "specialtyId": "chocolate-slice"},
            ],
            "totalPrice": 1,
        }
        response = client.post("/api/checkout", json=payload)

        assert response.status_code == 201
        data = response.json()
        # 11000 custom + 2 x 9000 cheesecake + 3 x 1200 slices
        assert data["totalPrice"] == 32600
        assert [item["totalPrice"] for item in data["items"]] == [11000, 18000, 3600]
        assert data["items"][1]["itemName"] == "Burnt Cheesecake"
        assert data["deliveryMethod"] == "delivery"
        notifier.send_order_emails.assert_called_once()

    def test_order_persisted_with_items(self, client):
        payload = {"customer": CUSTOMER, "items": [{"type": "candy", "specialtyId": "coconut-candy-og"}]}
        created = client.post("/api/checkout", json=payload).json()

        fetched = client.get(f"/api/orders/{created['id']}").json()
        assert fetched["totalPrice"] == 4200
        assert fetched["items"][0]["itemType"] == "candy"
        assert fetched["items"][0]["quantity"] == 1

    def test_uses_current_catalogue_price(self, client, auth_headers):
        document = _pricing()
        document["cakes"]["specialty"]["burnt-cheesecake"]["price"] = 9900
        client.put("/api/admin/pricing", json=document, headers=auth_headers)

        payload = {"customer": CUSTOMER, "items": [{"type": "specialty", "specialtyId": "burnt-cheesecake"}]}
        assert client.post("/api/checkout", json=payload).json()["totalPrice"] == 9900

    def test_unknown_catalogue_item(self, client, notifier):
        payload = {"customer": CUSTOMER, "items": [{"type": "specialty", "specialtyId": "tiramisu"}]}
        response = client.post("/api/checkout", json=payload)
        assert response.status_code == 400
        assert response.json() == {"message": "Unknown specialty item: tiramisu"}
        notifier.send_order_emails.assert_not_called()

    def test_custom_item_without_config(self, client):
        payload = {"customer": CUSTOMER, "items": [{"type": "custom"}]}
        response = client.post("/api/checkout", json=payload)
        assert response.status_code == 400
        assert "cake configuration" in response.json()["message"]

    def test_custom_item_zero_cakes(self, client):
        payload = {
            "customer": CUSTOMER,
            "items": [{"type": "custom", "cakeConfig": {**BASIC_CAKE, "sixInchCakes": 0}}],
        }
        response = client.post("/api/checkout", json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "Must select at least one cake"

    def test_empty_cart(self, client):
        response = client.post("/api/checkout", json={"customer": CUSTOMER, "items": []})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request data"

    def test_unknown_item_type(self, client):
        payload = {"customer": CUSTOMER, "items": [{"type": "cookie", "specialtyId": "x"}]}
        assert client.post("/api/checkout", json=payload).status_code == 400

    def test_listed_with_items_for_admin(self, client, auth_headers):
        payload = {"customer": CUSTOMER, "items": [{"type": "slice", "specialtyId": "chocolate-slice"}]}
        client.post("/api/checkout", json=payload)

        orders = client.get("/api/orders", headers=auth_headers).json()
        assert orders[0]["items"][0]["specialtyId"] == "chocolate-slice"


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
