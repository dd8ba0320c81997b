"""Tests for the commerce gateway and the marketing event sink."""

import json
import uuid

import httpx
import pytest

from order_edit_service.clients import CommerceClient, MarketingClient
from order_edit_service.errors import (
    EmptyPayloadError,
    GraphError,
    HttpError,
    MarketingApiError,
    TransportError,
)


def _commerce(settings, handler):
    return CommerceClient(settings, transport=httpx.MockTransport(handler))


def _marketing(settings, handler):
    return MarketingClient(settings, transport=httpx.MockTransport(handler))


class TestCommerceClient:
    def test_posts_document_to_versioned_endpoint(self, settings):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["token"] = request.headers["X-Shopify-Access-Token"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"shop": {"name": "x"}}})

        data = _commerce(settings, handler).request("query Shop { shop { name } }", {"a": 1})

        assert data == {"shop": {"name": "x"}}
        assert seen["url"] == "https://mock-store.example.com/admin/api/2024-10/graphql.json"
        assert seen["token"] == "shpat_test_token"
        assert seen["body"] == {"query": "query Shop { shop { name } }", "variables": {"a": 1}}

    def test_network_failure_raises_transport_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            _commerce(settings, handler).request("query Shop { shop { name } }")

    def test_non_2xx_raises_http_error_with_status(self, settings):
        client = _commerce(settings, lambda request: httpx.Response(503, json={"errors": "unavailable"}))

        with pytest.raises(HttpError) as exc_info:
            client.request("query Shop { shop { name } }")

        assert exc_info.value.status == 503
        assert exc_info.value.status_code == 500
        assert "503" in str(exc_info.value)

    def test_non_json_error_body(self, settings):
        client = _commerce(settings, lambda request: httpx.Response(502, text="<html>bad gateway</html>"))

        with pytest.raises(HttpError) as exc_info:
            client.request("query Shop { shop { name } }")

        assert exc_info.value.body == {}

    def test_graphql_errors_raise_graph_error(self, settings):
        errors = [{"message": "Field 'nope' doesn't exist on type 'Shop'"}]
        client = _commerce(settings, lambda request: httpx.Response(200, json={"errors": errors}))

        with pytest.raises(GraphError) as exc_info:
            client.request("query Shop { nope }")

        assert exc_info.value.errors == errors

    def test_missing_data_raises_empty_payload_error(self, settings):
        client = _commerce(settings, lambda request: httpx.Response(200, json={}))

        with pytest.raises(EmptyPayloadError):
            client.request("query Shop { shop { name } }")

    def test_no_retry_on_failure(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={})

        with pytest.raises(HttpError):
            _commerce(settings, handler).request("query Shop { shop { name } }")

        assert len(calls) == 1

    def test_fetch_order_tags_returns_none_for_unknown_order(self, commerce):
        assert commerce.fetch_order_tags("gid://shopify/Order/404") is None


class TestMarketingClient:
    def test_event_payload_and_headers(self, settings):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, json={"data": {"id": "evt-42"}})

        result = _marketing(settings, handler).send_event(
            "Order Modified", {"action": "remove"}, "tester@example.com", unique_id="o-1-remove-1"
        )

        assert result.status == 202
        assert result.eventId == "evt-42"
        assert seen["url"] == "https://a.klaviyo.com/api/events/"
        assert seen["headers"]["Authorization"] == "Klaviyo-API-Key pk_test_key"
        assert seen["headers"]["revision"] == "2025-10-15"
        attributes = seen["body"]["data"]["attributes"]
        assert seen["body"]["data"]["type"] == "event"
        assert attributes["unique_id"] == "o-1-remove-1"
        assert attributes["properties"] == {"action": "remove"}
        assert attributes["metric"]["data"]["attributes"]["name"] == "Order Modified"
        assert attributes["profile"]["data"]["attributes"]["email"] == "tester@example.com"

    def test_generates_random_unique_id_when_missing(self, settings):
        unique_ids = []

        def handler(request):
            unique_ids.append(json.loads(request.content)["data"]["attributes"]["unique_id"])
            return httpx.Response(202)

        client = _marketing(settings, handler)
        client.send_event("Order Created", {}, "tester@example.com")
        client.send_event("Order Created", {}, "tester@example.com")

        assert unique_ids[0] != unique_ids[1]
        uuid.UUID(unique_ids[0])

    def test_empty_accepted_body_has_no_event_id(self, settings):
        result = _marketing(settings, lambda request: httpx.Response(202)).send_event(
            "Order Created", {}, "tester@example.com"
        )

        assert result.status == 202
        assert result.eventId is None

    def test_error_status_raises_marketing_api_error(self, settings):
        body = {"errors": [{"detail": "Incorrect authentication credentials."}]}
        client = _marketing(settings, lambda request: httpx.Response(401, json=body))

        with pytest.raises(MarketingApiError) as exc_info:
            client.send_event("Order Created", {}, "tester@example.com")

        assert exc_info.value.status == 401
        assert exc_info.value.body == body
        assert str(exc_info.value).startswith("Klaviyo error 401:")

    def test_network_failure_raises_transport_error(self, settings):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError):
            _marketing(settings, handler).send_event("Order Created", {}, "tester@example.com")
