"""
mock_commerce.py — Mock Implementation of the Commerce Platform (GraphQL Admin API)

This module provides a simulated commerce platform for local runs and for the
test-suite. It understands the named GraphQL operations sent by the order edit
service and keeps orders, products and edit sessions in memory.

The mock simulates:
    • Order creation, tagging and mark-as-paid
    • Edit sessions (calculated orders) with discount, set-quantity and add-variant
    • Commit of an edit session back into the order
    • User errors, either injected per operation or raised for conflicts
      (e.g. removing a line item that was already removed)

Endpoints:
    POST /admin/api/{version}/graphql.json

Port:
    Default: 8002 (HTTP)
"""

import copy
import itertools
import json
import logging
import re
from decimal import Decimal

import httpx
from fastapi import FastAPI, Header, HTTPException, Request

logging.basicConfig(level=logging.INFO)

OPERATION_NAME = re.compile(r"^\s*(?:query|mutation)\s+(\w+)")
GID = "gid://shopify"


def _money(amount: Decimal, currency: str = "USD") -> dict:
    return {"shopMoney": {"amount": str(amount.quantize(Decimal("0.01"))), "currencyCode": currency}}


def _numeric_id(gid: str) -> str:
    return gid.rsplit("/", 1)[-1]


class MockCommerceStore:
    """
    In-memory commerce platform.

    Attributes:
        orders (dict): Order id → order record.
        products (list): Product records with variants.
        sessions (dict): Calculated order id → open edit session.
        calls (list): `(operation, variables)` for every executed document.
        user_errors (dict): Operation name → userErrors to return once.
    """

    def __init__(self):
        self.orders = {}
        self.products = []
        self.sessions = {}
        self.calls = []
        self.user_errors = {}
        self._ids = itertools.count(1)
        self._order_numbers = itertools.count(1001)

    # --- Fixtures ---
    def add_product(self, title: str, variants: list) -> dict:
        product = {
            "id": f"{GID}/Product/{next(self._ids)}",
            "title": title,
            "variants": [
                {"id": f"{GID}/ProductVariant/{next(self._ids)}", "title": v_title, "price": price}
                for v_title, price in variants
            ],
        }
        self.products.append(product)
        return product

    def add_order(self, tags: list, items: list, name: str = None) -> dict:
        """
        Adds a committed order directly.

        Args:
            tags (list): Order tags.
            items (list): `(title, quantity, unit_price)` tuples.
            name (str, optional): Display name, generated when omitted.
        """
        order_id = f"{GID}/Order/{next(self._ids)}"
        order = {
            "id": order_id,
            "name": name or f"#{next(self._order_numbers)}",
            "createdAt": "2025-01-01T00:00:00Z",
            "displayFinancialStatus": "PENDING",
            "tags": list(tags),
            "email": None,
            "lineItems": [self._new_line_item(title, qty, price) for title, qty, price in items],
        }
        self.orders[order_id] = order
        return order

    @classmethod
    def with_demo_data(cls, identity_tag: str = "demo-user") -> "MockCommerceStore":
        store = cls()
        store.add_product("Snowboard", [("Default", "699.95")])
        store.add_product("Wax", [("Hot", "12.50"), ("Cold", "14.00")])
        store.add_order([identity_tag], [("Snowboard", 1, "699.95"), ("Wax - Hot", 2, "12.50")])
        return store

    def _new_line_item(self, title, quantity, unit_price, variant_id=None) -> dict:
        return {
            "id": f"{GID}/LineItem/{next(self._ids)}",
            "title": title,
            "quantity": quantity,
            "unitPrice": Decimal(unit_price),
            "variantId": variant_id,
            "discountPercent": None,
            "discountDescription": None,
        }

    def find_variant(self, variant_id: str):
        for product in self.products:
            for variant in product["variants"]:
                if variant["id"] == variant_id:
                    return product, variant
        return None, None

    # --- GraphQL dispatch ---
    def execute(self, query: str, variables: dict = None) -> dict:
        """Runs one document and returns the full GraphQL response payload."""
        match = OPERATION_NAME.match(query or "")
        if not match:
            return {"errors": [{"message": "Anonymous operations are not supported"}]}

        operation = match.group(1)
        variables = variables or {}
        self.calls.append((operation, copy.deepcopy(variables)))

        handler = getattr(self, f"_op_{operation}", None)
        if handler is None:
            return {"errors": [{"message": f"Unknown operation {operation}"}]}

        injected = self.user_errors.pop(operation, None)
        data = handler(variables, injected)
        logging.info(f"[Commerce] {operation} ausgeführt.")
        return {"data": data}

    def operations(self) -> list:
        return [operation for operation, _ in self.calls]

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """httpx.MockTransport handler."""
        body = json.loads(request.content or b"{}")
        return httpx.Response(200, json=self.execute(body.get("query"), body.get("variables")))

    # --- Order presentation ---
    def _line_item_node(self, item: dict, calculated: bool = False) -> dict:
        original = item["unitPrice"] * item["quantity"]
        discounted = original
        if item["discountPercent"]:
            discounted = original * (Decimal(100) - Decimal(str(item["discountPercent"]))) / Decimal(100)
        item_id = item["id"]
        if calculated:
            item_id = f"{GID}/CalculatedLineItem/{_numeric_id(item_id)}"
        return {
            "id": item_id,
            "title": item["title"],
            "quantity": item["quantity"],
            "originalTotalSet": _money(original),
            "discountedTotalSet": _money(discounted),
        }

    def _order_node(self, order: dict) -> dict:
        nodes = [self._line_item_node(item) for item in order["lineItems"]]
        original = sum((item["unitPrice"] * item["quantity"] for item in order["lineItems"]), Decimal(0))
        current = sum((Decimal(n["discountedTotalSet"]["shopMoney"]["amount"]) for n in nodes), Decimal(0))
        return {
            "id": order["id"],
            "name": order["name"],
            "createdAt": order["createdAt"],
            "displayFinancialStatus": order["displayFinancialStatus"],
            "tags": list(order["tags"]),
            "totalPriceSet": _money(original),
            "totalDiscountsSet": _money(original - current),
            "currentTotalPriceSet": _money(current),
            "lineItems": {"edges": [{"node": n} for n in nodes[:20]]},
        }

    # --- Queries ---
    def _op_OrderTags(self, variables, injected):
        order = self.orders.get(variables.get("id"))
        return {"order": {"id": order["id"], "tags": list(order["tags"])} if order else None}

    def _op_OrderDetail(self, variables, injected):
        order = self.orders.get(variables.get("id"))
        return {"order": self._order_node(order) if order else None}

    def _op_MyOrders(self, variables, injected):
        search = variables.get("q", "")
        tag = search[len("tag:"):] if search.startswith("tag:") else None
        orders = [o for o in reversed(list(self.orders.values())) if tag is None or tag in o["tags"]]
        first = variables.get("first", 25)
        return {"orders": {"edges": [{"node": self._order_node(o)} for o in orders[:first]]}}

    def _op_Products(self, variables, injected):
        first = variables.get("first", 10)
        edges = []
        for product in self.products[:first]:
            variants = [{"node": dict(v)} for v in product["variants"][:20]]
            edges.append({"node": {"id": product["id"], "title": product["title"],
                                   "variants": {"edges": variants}}})
        return {"products": {"edges": edges}}

    # --- Order creation ---
    def _op_CreateOrder(self, variables, injected):
        if injected:
            return {"orderCreate": {"userErrors": injected, "order": None}}
        order_input = variables.get("order") or {}
        items = []
        for line in order_input.get("lineItems") or []:
            product, variant = self.find_variant(line["variantId"])
            if variant is None:
                return {"orderCreate": {
                    "userErrors": [{"field": ["lineItems"], "message": "Variant does not exist"}],
                    "order": None,
                }}
            items.append((f"{product['title']} - {variant['title']}", line["quantity"], variant["price"]))
        order = self.add_order([], items)
        order["email"] = order_input.get("email")
        return {"orderCreate": {"userErrors": [], "order": {"id": order["id"], "name": order["name"]}}}

    def _op_AddTag(self, variables, injected):
        order = self.orders.get(variables.get("id"))
        if injected or order is None:
            errors = injected or [{"field": ["id"], "message": "Resource not found"}]
            return {"tagsAdd": {"userErrors": errors, "node": None}}
        for tag in variables.get("tags") or []:
            if tag not in order["tags"]:
                order["tags"].append(tag)
        return {"tagsAdd": {"userErrors": [], "node": {"id": order["id"]}}}

    def _op_MarkPaid(self, variables, injected):
        order = self.orders.get((variables.get("input") or {}).get("id"))
        if injected or order is None:
            errors = injected or [{"field": ["id"], "message": "Order does not exist"}]
            return {"orderMarkAsPaid": {"userErrors": errors, "order": None}}
        order["displayFinancialStatus"] = "PAID"
        return {"orderMarkAsPaid": {"userErrors": [], "order": {"id": order["id"], "displayFinancialStatus": "PAID"}}}

    # --- Edit sessions ---
    def _op_OrderEditBegin(self, variables, injected):
        order = self.orders.get(variables.get("id"))
        if injected or order is None:
            errors = injected or [{"field": ["id"], "message": "The order does not exist."}]
            return {"orderEditBegin": {"calculatedOrder": None, "userErrors": errors}}

        calculated_id = f"{GID}/CalculatedOrder/{next(self._ids)}"
        self.sessions[calculated_id] = {
            "orderId": order["id"],
            "lineItems": copy.deepcopy(order["lineItems"]),
        }
        nodes = [
            {"node": {k: v for k, v in self._line_item_node(item, calculated=True).items()
                      if k in ("id", "title", "quantity")}}
            for item in order["lineItems"][:50]
        ]
        return {"orderEditBegin": {
            "calculatedOrder": {"id": calculated_id, "lineItems": {"edges": nodes}},
            "userErrors": [],
        }}

    def _session_item(self, session, calculated_line_item_id):
        for item in session["lineItems"]:
            if f"{GID}/CalculatedLineItem/{_numeric_id(item['id'])}" == calculated_line_item_id:
                return item
        return None

    def _edit_result(self, field, calculated_id, errors):
        calculated = {"id": calculated_id} if not errors else None
        return {field: {"calculatedOrder": calculated, "userErrors": errors}}

    def _op_OrderEditAddLineItemDiscount(self, variables, injected):
        field = "orderEditAddLineItemDiscount"
        session = self.sessions.get(variables.get("id"))
        if injected:
            return self._edit_result(field, variables.get("id"), injected)
        if session is None:
            return self._edit_result(field, None, [{"field": ["id"], "message": "Calculated order does not exist"}])
        item = self._session_item(session, variables.get("lineItemId"))
        if item is None:
            return self._edit_result(field, None, [{"field": ["lineItemId"], "message": "Line item does not exist"}])
        discount = variables.get("discount") or {}
        item["discountPercent"] = discount.get("percentValue")
        item["discountDescription"] = discount.get("description")
        return self._edit_result(field, variables["id"], [])

    def _op_OrderEditSetQuantity(self, variables, injected):
        field = "orderEditSetQuantity"
        session = self.sessions.get(variables.get("id"))
        if injected:
            return self._edit_result(field, variables.get("id"), injected)
        if session is None:
            return self._edit_result(field, None, [{"field": ["id"], "message": "Calculated order does not exist"}])
        item = self._session_item(session, variables.get("lineItemId"))
        if item is None:
            return self._edit_result(field, None, [{"field": ["lineItemId"], "message": "Line item does not exist"}])
        if item["quantity"] == 0 and variables.get("quantity") == 0:
            return self._edit_result(field, None, [{"field": ["lineItemId"], "message": "Line item has already been removed"}])
        item["quantity"] = variables.get("quantity")
        return self._edit_result(field, variables["id"], [])

    def _op_OrderEditAddVariant(self, variables, injected):
        field = "orderEditAddVariant"
        session = self.sessions.get(variables.get("id"))
        if injected:
            return self._edit_result(field, variables.get("id"), injected)
        if session is None:
            return self._edit_result(field, None, [{"field": ["id"], "message": "Calculated order does not exist"}])
        product, variant = self.find_variant(variables.get("variantId"))
        if variant is None:
            return self._edit_result(field, None, [{"field": ["variantId"], "message": "Variant does not exist"}])
        session["lineItems"].append(self._new_line_item(
            f"{product['title']} - {variant['title']}", variables.get("quantity"), variant["price"], variant["id"]
        ))
        return self._edit_result(field, variables["id"], [])

    def _op_OrderEditCommit(self, variables, injected):
        session = self.sessions.get(variables.get("id"))
        if injected or session is None:
            errors = injected or [{"field": ["id"], "message": "Calculated order does not exist"}]
            return {"orderEditCommit": {"order": None, "userErrors": errors}}
        del self.sessions[variables["id"]]
        order = self.orders[session["orderId"]]
        order["lineItems"] = session["lineItems"]
        return {"orderEditCommit": {"order": {"id": order["id"], "name": order["name"]}, "userErrors": []}}


app = FastAPI(title="Mock Commerce Platform")
store = MockCommerceStore.with_demo_data()


@app.post("/admin/api/{version}/graphql.json")
async def graphql(
        version: str,
        request: Request,
        access_token: str = Header(None, alias="X-Shopify-Access-Token")
):
    """
    Executes one GraphQL document against the in-memory store.

    Raises:
        HTTPException(401): If no access token header is present.
    """
    if not access_token:
        raise HTTPException(status_code=401, detail={"errors": "[API] Invalid API key or access token"})
    body = await request.json()
    logging.info(f"[Commerce] Anfrage gegen API-Version {version}")
    return store.execute(body.get("query"), body.get("variables"))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
