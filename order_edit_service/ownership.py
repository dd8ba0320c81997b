"""
ownership.py — Tag-based order ownership guard.

An order belongs to exactly the identities present in its tag set. The guard
must run before any read of a single order and before any edit step.
"""

import logging

from .clients import CommerceClient
from .errors import Forbidden, NotFound

log = logging.getLogger(__name__)


def ensure_order_owned(commerce: CommerceClient, order_id: str, identity_tag: str) -> dict:
    """
    Verifies that `identity_tag` is one of the order's tags.

    Args:
        commerce (CommerceClient): Gateway used for the single read.
        order_id (str): Commerce platform order id.
        identity_tag (str): The caller's ownership tag.
    Returns:
        dict: The `{id, tags}` record of the order.
    Raises:
        NotFound: If the platform reports no such order.
        Forbidden: If the tag is absent from the order's tags.
    """
    order = commerce.fetch_order_tags(order_id)
    if not order:
        log.warning(f"[Order: {order_id}] Bestellung nicht gefunden.")
        raise NotFound("Order not found")

    if identity_tag not in (order.get("tags") or []):
        log.warning(f"[Order: {order_id}] Zugriff verweigert: Tag '{identity_tag}' fehlt.")
        raise Forbidden("Forbidden: not your order")

    return order
