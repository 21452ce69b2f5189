"""Integration tests for online payment routes."""

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from sacmtb.services.payment_gateway import PaymentGateway

SHIPPING_ADDRESS = {
    "fullName": "Asha Rao",
    "phoneNumber": "9876543210",
    "address": "12 Hill Road",
    "city": "Pune",
    "state": "Maharashtra",
    "postalCode": "411001",
}


@pytest.fixture
def customer(seed_user: Any) -> dict:
    return seed_user(email="asha@example.com")


@pytest.fixture
def placed(client: TestClient, customer: dict, seed_product: Any, auth_headers: Callable) -> dict:
    product = seed_product()
    response = client.post(
        "/api/payments/create-order",
        json={
            "orderItems": [{"product": product["id"], "qty": 1}],
            "shippingAddress": SHIPPING_ADDRESS,
            "itemsPrice": 1000,
            "totalPrice": 1000,
        },
        headers=auth_headers(customer),
    )
    assert response.status_code == 201
    return response.json()


class TestCreatePaymentOrder:
    """Tests for POST /api/payments/create-order."""

    def test_opens_intent(self, placed: dict, stripe_intents: list, test_settings: Any) -> None:
        """Test that an ONLINE order starts in cart with a payment intent."""
        assert placed["order"]["status"] == "cart"
        assert placed["order"]["paymentMethod"] == "ONLINE"
        assert placed["order"]["gatewayOrderId"] == "pi_test_1"
        assert placed["payment"]["intentId"] == "pi_test_1"
        assert placed["payment"]["amount"] == 100000
        assert placed["payment"]["clientSecret"] == "pi_test_1_secret_abc"
        assert placed["payment"]["publishableKey"] == test_settings.stripe_publishable_key
        assert stripe_intents[0]["metadata"]["order_id"] == placed["order"]["id"]

    def test_stock_untouched_until_paid(self, placed: dict, fake_db: Any) -> None:
        """Test that opening a payment does not reserve stock."""
        product_id = placed["order"]["orderItems"][0]["product"]

        assert fake_db.get("products", product_id)["stock"] == 5


class TestVerifyPayment:
    """Tests for POST /api/payments/verify."""

    def _confirmation(self, placed: dict, signature: str | None = None) -> dict:
        intent_id = placed["payment"]["intentId"]
        return {
            "gatewayOrderId": intent_id,
            "gatewayPaymentId": "ch_test_1",
            "signature": signature or PaymentGateway().sign(intent_id, "ch_test_1"),
            "orderId": placed["order"]["id"],
        }

    def test_settles_order(
        self, client: TestClient, placed: dict, customer: dict, auth_headers: Callable, fake_db: Any
    ) -> None:
        """Test that a valid confirmation pays the order and takes stock."""
        response = client.post("/api/payments/verify", json=self._confirmation(placed), headers=auth_headers(customer))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "waiting"
        assert data["isPaid"] is True
        assert data["paymentInfo"]["gatewayPaymentId"] == "ch_test_1"
        assert data["paymentInfo"]["status"] == "Paid"
        product_id = data["orderItems"][0]["product"]
        assert fake_db.get("products", product_id)["stock"] == 4

    def test_repeat_confirmation(
        self, client: TestClient, placed: dict, customer: dict, auth_headers: Callable, fake_db: Any
    ) -> None:
        """Test that confirming twice does not take stock twice."""
        headers = auth_headers(customer)
        client.post("/api/payments/verify", json=self._confirmation(placed), headers=headers)

        response = client.post("/api/payments/verify", json=self._confirmation(placed), headers=headers)

        assert response.status_code == 200
        assert response.json()["isPaid"] is True
        product_id = placed["order"]["orderItems"][0]["product"]
        assert fake_db.get("products", product_id)["stock"] == 4

    def test_bad_signature(
        self, client: TestClient, placed: dict, customer: dict, auth_headers: Callable, fake_db: Any
    ) -> None:
        """Test that a forged confirmation is rejected."""
        response = client.post(
            "/api/payments/verify",
            json=self._confirmation(placed, signature="0" * 64),
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"
        assert fake_db.get("orders", placed["order"]["id"])["is_paid"] is False
