"""
This module provides communication clients for the external systems used by the order edit service:
- Commerce platform (Shopify Admin GraphQL API)
- Marketing event pipeline (Klaviyo events API)
Each class encapsulates its protocol logic, error handling, and connection management.
"""

import logging
import uuid

import httpx

from . import queries
from .config import Settings
from .errors import (
    EmptyPayloadError,
    GraphError,
    HttpError,
    MarketingApiError,
    TransportError,
)
from .models import MarketingResult

log = logging.getLogger(__name__)

TIMEOUT_CONFIG = httpx.Timeout(5.0, read=8.0)


def _json_or_empty(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return {}


# --- Commerce Client (GraphQL) ---
class CommerceClient:
    """
    Client for the commerce platform's single GraphQL endpoint.
    Every call is one fresh round trip: no retries, no caching.
    """
    def __init__(self, settings: Settings, transport: httpx.BaseTransport = None):
        """
        Initializes the HTTP client for the Admin GraphQL endpoint.

        Args:
            settings (Settings): Resolved service configuration.
            transport (httpx.BaseTransport, optional): Custom transport, used by tests.
        """
        self.settings = settings
        self.client = httpx.Client(
            timeout=TIMEOUT_CONFIG,
            transport=transport,
            headers={
                "X-Shopify-Access-Token": settings.access_token,
                "Content-Type": "application/json",
            },
        )

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def request(self, document: str, variables: dict = None) -> dict:
        """
        Sends a query or mutation document to the commerce platform.

        Args:
            document (str): GraphQL query or mutation.
            variables (dict, optional): Variables for the document.
        Returns:
            dict: The `data` member of the response payload.
        Raises:
            TransportError: If no HTTP response was received.
            HttpError: If the platform returns a non-2xx status.
            GraphError: If the payload carries an `errors` list.
            EmptyPayloadError: If a 2xx payload carries no `data`.
        """
        try:
            response = self.client.post(
                self.settings.graphql_endpoint,
                json={"query": document, "variables": variables or {}},
            )
        except httpx.TransportError as e:
            log.error(f"Shopify nicht erreichbar: {e}")
            raise TransportError(f"Shopify request failed: {e}") from e

        payload = _json_or_empty(response)

        if not response.is_success:
            log.error(f"Shopify HTTP-Fehler {response.status_code}: {payload}")
            raise HttpError(response.status_code, payload)
        if payload.get("errors"):
            log.error(f"Shopify GraphQL-Fehler: {payload['errors']}")
            raise GraphError(payload["errors"])
        if not payload.get("data"):
            raise EmptyPayloadError()

        return payload["data"]

    # --- Ownership ---
    def fetch_order_tags(self, order_id: str):
        """Returns `{id, tags}` for the order, or None if the platform does not know it."""
        return self.request(queries.ORDER_TAGS, {"id": order_id}).get("order")

    # --- Edit session ---
    def begin_edit(self, order_id: str) -> dict:
        return self.request(queries.ORDER_EDIT_BEGIN, {"id": order_id})["orderEditBegin"]

    def add_line_item_discount(self, calculated_order_id: str, line_item_id: str, percent) -> dict:
        discount = {
            "percentValue": percent,
            "description": f"{percent}% Discount (manual apply)",
        }
        data = self.request(queries.ORDER_EDIT_ADD_LINE_ITEM_DISCOUNT, {
            "id": calculated_order_id,
            "lineItemId": line_item_id,
            "discount": discount,
        })
        return data["orderEditAddLineItemDiscount"]

    def set_line_item_quantity(self, calculated_order_id: str, line_item_id: str, quantity: int) -> dict:
        data = self.request(queries.ORDER_EDIT_SET_QUANTITY, {
            "id": calculated_order_id,
            "lineItemId": line_item_id,
            "quantity": quantity,
        })
        return data["orderEditSetQuantity"]

    def add_variant(self, calculated_order_id: str, variant_id: str, quantity: int) -> dict:
        data = self.request(queries.ORDER_EDIT_ADD_VARIANT, {
            "id": calculated_order_id,
            "variantId": variant_id,
            "quantity": quantity,
        })
        return data["orderEditAddVariant"]

    def commit_edit(self, calculated_order_id: str) -> dict:
        return self.request(queries.ORDER_EDIT_COMMIT, {"id": calculated_order_id})["orderEditCommit"]

    # --- Order creation ---
    def create_order(self, items: list, email: str) -> dict:
        order = {
            "lineItems": [{"variantId": i["variantId"], "quantity": i["quantity"]} for i in items],
            "email": email,
            "test": True,
        }
        return self.request(queries.CREATE_ORDER, {"order": order})["orderCreate"]

    def add_tags(self, node_id: str, tags: list) -> dict:
        return self.request(queries.ADD_TAG, {"id": node_id, "tags": tags})["tagsAdd"]

    def mark_as_paid(self, order_id: str) -> dict:
        return self.request(queries.MARK_PAID, {"input": {"id": order_id}})["orderMarkAsPaid"]

    # --- Read-only listings ---
    def list_orders(self, search: str, first: int = 25) -> dict:
        return self.request(queries.MY_ORDERS, {"first": first, "q": search})

    def get_order(self, order_id: str) -> dict:
        return self.request(queries.ORDER_DETAIL, {"id": order_id})

    def list_products(self, first: int = 10) -> dict:
        return self.request(queries.PRODUCTS, {"first": first})


# --- Marketing Client (REST) ---
class MarketingClient:
    """
    Client for the marketing events API.
    Submits one metric event per call; a single attempt, no retries.
    """
    def __init__(self, settings: Settings, transport: httpx.BaseTransport = None):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            settings (Settings): Resolved service configuration.
            transport (httpx.BaseTransport, optional): Custom transport, used by tests.
        """
        self.client = httpx.Client(
            base_url=settings.marketing_api_url,
            timeout=TIMEOUT_CONFIG,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Authorization": f"Klaviyo-API-Key {settings.marketing_api_key}",
                "revision": settings.marketing_api_revision,
            },
        )

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def send_event(self, metric_name: str, properties: dict, profile_email: str,
                   unique_id: str = None) -> MarketingResult:
        """
        Submits a metric event tied to a profile email.
        Args:
            metric_name (str): "Order Created" or "Order Modified".
            properties (dict): Event properties (scalars or None).
            profile_email (str): Email identifying the profile.
            unique_id (str, optional): Idempotency token. A random UUID is used when omitted,
                which gives no deduplication across retries.
        Returns:
            MarketingResult: HTTP status and the event id, if the API returned one.
        Raises:
            TransportError: If the API is unreachable.
            MarketingApiError: If the API returns an error status (4xx or 5xx).
        """
        payload = {
            "data": {
                "type": "event",
                "attributes": {
                    "properties": properties,
                    "unique_id": unique_id or str(uuid.uuid4()),
                    "metric": {
                        "data": {"type": "metric", "attributes": {"name": metric_name}},
                    },
                    "profile": {
                        "data": {"type": "profile", "attributes": {"email": profile_email}},
                    },
                },
            }
        }

        try:
            response = self.client.post("/api/events/", json=payload)
        except httpx.TransportError as e:
            log.error(f"Klaviyo nicht erreichbar: {e}")
            raise TransportError(f"Klaviyo request failed: {e}") from e

        body = _json_or_empty(response)
        log.info(f"[Klaviyo] Status {response.status_code} für '{metric_name}'")

        if not response.is_success:
            raise MarketingApiError(response.status_code, body)

        event_id = (body.get("data") or {}).get("id") if isinstance(body, dict) else None
        return MarketingResult(status=response.status_code, eventId=event_id)
