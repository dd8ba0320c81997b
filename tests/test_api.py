"""Tests for the HTTP surface via TestClient."""

import json
import logging

import httpx
from fastapi.testclient import TestClient

from order_edit_service.clients import CommerceClient
from order_edit_service.main import create_app


class TestModifyEndpoint:
    def test_discount_scenario(self, client, store, owned_order):
        response = client.post("/orders/modify", json={"orderId": owned_order["id"], "action": "discount"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Discount applied (Klaviyo event sent)"
        assert body["klaviyoStatus"] == 202
        assert body["klaviyoEventId"] == "evt-1"
        assert body["klaviyoError"] is None
        assert body["orderName"] == owned_order["name"]
        assert store.orders[owned_order["id"]]["lineItems"][0]["discountPercent"] == 10

    def test_remove_scenario(self, client, store, owned_order):
        target = owned_order["lineItems"][0]["id"]

        response = client.post("/orders/modify", json={
            "orderId": owned_order["id"], "action": "remove", "lineItemId": target,
        })

        assert response.status_code == 200
        assert response.json()["message"] == "Item removed (Klaviyo event sent)"
        assert store.orders[owned_order["id"]]["lineItems"][0]["quantity"] == 0

    def test_add_without_variant(self, client, owned_order):
        response = client.post("/orders/modify", json={"orderId": owned_order["id"], "action": "add"})

        assert response.status_code == 400
        assert response.json() == {"error": "variantId is required for add"}

    def test_foreign_order_forbidden(self, client, store, foreign_order):
        response = client.post("/orders/modify", json={"orderId": foreign_order["id"], "action": "discount"})

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden: not your order"}
        assert store.operations() == ["OrderTags"]

    def test_unknown_order(self, client):
        response = client.post("/orders/modify", json={"orderId": "gid://shopify/Order/404", "action": "remove"})

        assert response.status_code == 404
        assert response.json() == {"error": "Order not found"}

    def test_missing_fields(self, client):
        response = client.post("/orders/modify", json={"action": "remove"})

        assert response.status_code == 400
        assert response.json() == {"error": "orderId and action are required"}

    def test_invalid_action(self, client, owned_order):
        response = client.post("/orders/modify", json={"orderId": owned_order["id"], "action": "cancel"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid action"}

    def test_user_errors_are_passed_verbatim(self, client, owned_order):
        payload = {"orderId": owned_order["id"], "action": "remove", "lineItemId": owned_order["lineItems"][0]["id"]}
        client.post("/orders/modify", json=payload)

        response = client.post("/orders/modify", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": [{"field": ["lineItemId"], "message": "Line item has already been removed"}]}

    def test_commit_failure_has_no_notification_fields(self, client, store, events, owned_order):
        store.user_errors["OrderEditCommit"] = [{"field": None, "message": "Commit rejected"}]

        response = client.post("/orders/modify", json={"orderId": owned_order["id"], "action": "discount"})

        assert response.status_code == 400
        assert response.json() == {"error": [{"field": None, "message": "Commit rejected"}]}
        assert events.requests == []

    def test_notification_failure_is_soft(self, client, events, owned_order):
        events.fail_with = 503

        response = client.post("/orders/modify", json={"orderId": owned_order["id"], "action": "discount"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Discount applied (Klaviyo event failed)"
        assert body["klaviyoError"].startswith("Klaviyo error 503")

    def test_malformed_quantity(self, client, owned_order):
        response = client.post("/orders/modify", json={
            "orderId": owned_order["id"], "action": "add", "variantId": "v", "quantity": "many",
        })

        assert response.status_code == 400
        assert "quantity" in response.json()["error"]


class TestOrdersEndpoints:
    def test_create_order(self, client, store, variant_id):
        response = client.post("/orders", json={"items": [{"variantId": variant_id, "quantity": 2}]})

        assert response.status_code == 200
        body = response.json()
        assert body["orderId"] in store.orders
        assert body["financialStatus"] == "PAID"
        assert body["klaviyoStatus"] == 202
        assert body["klaviyoEventId"] == "evt-1"

    def test_create_order_requires_items(self, client):
        response = client.post("/orders", json={"items": []})

        assert response.status_code == 400
        assert response.json() == {"error": "items[] is required"}

    def test_create_order_rejects_zero_quantity(self, client, variant_id):
        response = client.post("/orders", json={"items": [{"variantId": variant_id, "quantity": 0}]})

        assert response.status_code == 400

    def test_create_order_platform_rejection(self, client):
        response = client.post("/orders", json={"items": [{"variantId": "gid://shopify/ProductVariant/404", "quantity": 1}]})

        assert response.status_code == 400
        assert response.json() == {"error": [{"field": ["lineItems"], "message": "Variant does not exist"}]}

    def test_list_orders(self, client, owned_order, foreign_order):
        response = client.get("/orders")

        assert response.status_code == 200
        names = [e["node"]["name"] for e in response.json()["orders"]["edges"]]
        assert names == [owned_order["name"]]

    def test_verify_requires_id(self, client):
        response = client.get("/orders/verify")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing id"}

    def test_verify_returns_detail(self, client, owned_order):
        response = client.get("/orders/verify", params={"id": owned_order["id"]})

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["id"] == owned_order["id"]
        assert order["currentTotalPriceSet"]["shopMoney"]["amount"] == "120.00"
        assert len(order["lineItems"]["edges"]) == 2

    def test_verify_foreign_order(self, client, foreign_order):
        response = client.get("/orders/verify", params={"id": foreign_order["id"]})

        assert response.status_code == 403


class TestMiscEndpoints:
    def test_products(self, client, store):
        response = client.get("/products")

        assert response.status_code == 200
        titles = [e["node"]["title"] for e in response.json()["products"]["edges"]]
        assert titles == ["Snowboard", "Wax"]

    def test_whoami(self, client):
        assert client.get("/whoami").json() == {"identityTag": "tester"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_upstream_http_failure(self, settings, marketing):
        commerce = CommerceClient(
            settings, transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"errors": "boom"}))
        )
        app = create_app(settings, commerce=commerce, marketing=marketing)

        with TestClient(app) as client:
            response = client.get("/products")

        assert response.status_code == 500
        assert response.json()["error"].startswith("Shopify HTTP error 500")


class TestUnexpectedFailures:
    def _app_with_commit_payload(self, settings, store, marketing, commit_payload):
        def handler(request):
            body = json.loads(request.content)
            if body["query"].lstrip().startswith("mutation OrderEditCommit"):
                return httpx.Response(200, json={"data": {"orderEditCommit": commit_payload}})
            return store.handle_request(request)

        commerce = CommerceClient(settings, transport=httpx.MockTransport(handler))
        return create_app(settings, commerce=commerce, marketing=marketing)

    def test_null_commit_payload_returns_json_error(self, settings, store, marketing, events, owned_order, caplog):
        app = self._app_with_commit_payload(settings, store, marketing, None)

        with caplog.at_level(logging.WARNING):
            with TestClient(app, raise_server_exceptions=False) as client:
                response = client.post("/orders/modify", json={"orderId": owned_order["id"], "action": "discount"})

        assert response.status_code == 500
        assert response.json()["error"]
        assert events.requests == []
        assert any("Kompensation" in r.getMessage() for r in caplog.records)
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)
