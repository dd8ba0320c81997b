"""
listing.py — Order listing projection for the presentation layer.

Filters the caller's tagged orders down to the ones worth displaying. This is
a display concern only; ownership is already enforced by the tag search.
"""

from .clients import CommerceClient
from .config import Settings

ORDER_PAGE_SIZE = 25


def _amount(money_bag) -> str:
    return ((money_bag or {}).get("shopMoney") or {}).get("amount") or ""


def order_total(order: dict) -> float:
    """Current total, or the original total if the current one is absent."""
    raw = _amount(order.get("currentTotalPriceSet")) or _amount(order.get("totalPriceSet")) or "0"
    try:
        return float(raw)
    except ValueError:
        return 0.0


def is_visible(order: dict, hidden_names) -> bool:
    edges = (order.get("lineItems") or {}).get("edges") or []
    has_items = any((edge["node"].get("quantity") or 0) > 0 for edge in edges)
    return has_items and order_total(order) > 0 and order.get("name") not in hidden_names


def filter_visible_orders(data: dict, hidden_names) -> dict:
    """Drops empty, zero-total and hidden orders from a `MyOrders` payload, in place."""
    orders = data.get("orders") or {}
    orders["edges"] = [e for e in orders.get("edges") or [] if is_visible(e["node"], hidden_names)]
    data["orders"] = orders
    return data


def list_visible_orders(commerce: CommerceClient, settings: Settings) -> dict:
    data = commerce.list_orders(f"tag:{settings.identity_tag}", first=ORDER_PAGE_SIZE)
    return filter_visible_orders(data, set(settings.hidden_order_names))
