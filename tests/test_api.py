"""End-to-end tests through the HTTP layer with an in-memory store."""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode

API = "/api/v1"


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


def add_to_cart(client, product_id="prod-2", quantity=2, customer_id="cust-1"):
    response = client.post(
        f"{API}/customers/{customer_id}/cart/items",
        json={"product_id": product_id, "quantity": quantity},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_health_and_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.json()["data"] == {"status": "healthy"}
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/").json()["code"] == BusinessCode.SUCCESS


def test_products(client):
    products = client.get(f"{API}/products").json()["data"]
    assert [p["id"] for p in products] == ["prod-1", "prod-2", "prod-3", "prod-4", "prod-5"]

    laptop = client.get(f"{API}/products/prod-1").json()["data"]
    assert Decimal(laptop["price"]) == Decimal("999.99")

    missing = client.get(f"{API}/products/prod-404")
    assert missing.status_code == 404
    body = missing.json()
    assert body["code"] == BusinessCode.NOT_FOUND
    assert body["error"]["type"] == "NotFound"
    assert body["error"]["request_id"]


def test_customer_registration(client):
    payload = {"email": "ada@example.com", "name": "Ada", "address": {"state": "NY"}}
    created = client.post(f"{API}/customers", json=payload)
    assert created.status_code == 201
    customer_id = created.json()["data"]["id"]

    assert client.get(f"{API}/customers/{customer_id}").json()["data"]["address"]["state"] == "NY"
    by_email = client.get(f"{API}/customers/by-email", params={"email": "ada@example.com"})
    assert by_email.json()["data"]["id"] == customer_id
    assert len(client.get(f"{API}/customers").json()["data"]) == 2

    duplicate = client.post(f"{API}/customers", json=payload)
    assert duplicate.status_code == 409

    invalid = client.post(f"{API}/customers", json={"email": "nope", "name": "X"})
    assert invalid.status_code == 422
    assert invalid.json()["code"] == BusinessCode.PARAM_VALIDATION_ERROR
    assert invalid.json()["error"]["field"] == "email"


def test_cart_lifecycle(client):
    cart = add_to_cart(client, "prod-2", 2)
    assert Decimal(cart["total"]) == Decimal("59.98")
    assert cart["item_count"] == 2

    cart = client.patch(f"{API}/customers/cust-1/cart/items/prod-2", json={"quantity": 5}).json()["data"]
    assert cart["items"][0]["quantity"] == 5

    too_many = client.post(f"{API}/customers/cust-1/cart/items", json={"product_id": "prod-1", "quantity": 11})
    assert too_many.status_code == 409
    assert too_many.json()["code"] == PaymentCode.INVENTORY_ERROR

    cart = client.delete(f"{API}/customers/cust-1/cart/items/prod-2").json()["data"]
    assert cart["items"] == []
    assert client.delete(f"{API}/customers/cust-1/cart/items/prod-2").status_code == 404
    assert client.delete(f"{API}/customers/cust-1/cart").json()["data"]["items"] == []


def test_checkout_refund_flow(client):
    add_to_cart(client, "prod-2", 2)

    response = client.post(f"{API}/customers/cust-1/checkout", json={"decorators": ["tax", "discount"]})
    assert response.status_code == 200, response.text
    receipt = response.json()["data"]
    assert Decimal(receipt["total"]) == Decimal("57.90")
    assert Decimal(receipt["tax"]) == Decimal("4.35")
    assert receipt["applied_decorators"] == ["discount", "tax"]
    assert receipt["created_at"].endswith("Z")

    assert client.get(f"{API}/customers/cust-1/cart").json()["data"]["items"] == []
    assert client.get(f"{API}/products/prod-2").json()["data"]["stock"] == 48

    history = client.get(f"{API}/customers/cust-1/transactions").json()["data"]
    assert [tx["id"] for tx in history] == [receipt["transaction_id"]]
    assert history[0]["status"] == "completed"

    refund = client.post(f"{API}/transactions/{receipt['transaction_id']}/refund", json={"reason": "changed mind"})
    assert refund.status_code == 200
    assert refund.json()["data"]["status"] == "refunded"

    again = client.post(f"{API}/transactions/{receipt['transaction_id']}/refund")
    assert again.status_code == 422


def test_checkout_failures_carry_cause(client):
    empty = client.post(f"{API}/customers/cust-1/checkout", json={})
    assert empty.status_code == 422

    add_to_cart(client, "prod-3", 1)
    bad_card = client.post(
        f"{API}/customers/cust-1/checkout",
        json={"payment_details": {"card_number": "1234567890123456"}},
    )
    assert bad_card.status_code == 402
    body = bad_card.json()
    assert body["code"] == PaymentCode.PAYMENT_FAILED
    assert body["error"]["details"]["stage"] == "payment setup failed"
    assert body["error"]["details"]["cause"]["code"] == PaymentCode.INVALID_PAYMENT

    assert client.get(f"{API}/products/prod-3").json()["data"]["stock"] == 100
    history = client.get(f"{API}/customers/cust-1/transactions").json()["data"]
    assert history[0]["status"] == "failed"


def test_checkout_rejects_unknown_fields(client):
    add_to_cart(client, "prod-3", 1)
    response = client.post(
        f"{API}/customers/cust-1/checkout",
        json={"payment_details": {"pin": "0000"}},
    )
    assert response.status_code == 422


def test_debit(client):
    add_to_cart(client, "prod-2", 1)
    response = client.post(f"{API}/customers/cust-1/debit", json={"balance": "20000"})
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert Decimal(data["converted_total"]) == Decimal("16134.62")

    add_to_cart(client, "prod-1", 1)
    poor = client.post(f"{API}/customers/cust-1/debit", json={"balance": "10"})
    assert poor.status_code == 402
    assert poor.json()["code"] == PaymentCode.INSUFFICIENT_FUNDS


def test_metrics_endpoint(client):
    metrics = client.get(f"{API}/metrics")
    assert metrics.status_code == 200
    assert set(metrics.json()["data"]) >= {"success_count", "failure_count", "success_rate", "total_amount"}

    reset = client.post(f"{API}/metrics/reset").json()["data"]
    assert reset["success_count"] == 0


def test_metrics_disabled(app_settings):
    app_settings.metrics.enabled = False
    with TestClient(create_app(app_settings)) as client:
        assert client.get(f"{API}/metrics").status_code == 404
