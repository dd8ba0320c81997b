"""
workflow.py — Core Orchestration Logic for Order Creation and Order Editing

This module contains the workflows that change orders on the commerce platform.
It coordinates all service interactions (commerce platform, marketing pipeline)
in the correct sequence.

Edit Workflow Overview:
1. Verify the order carries the caller's ownership tag
2. Open an edit session (calculated order) on the commerce platform
3. Resolve the targeted line item inside the session
4. Apply exactly one mutation (discount, remove, add)
5. Commit the session without notifying the customer
6. Notify the marketing pipeline (best effort, never fails the request)
"""

import logging
import time

from .clients import CommerceClient, MarketingClient
from .config import Settings
from .errors import (
    AddFailed,
    CommitFailed,
    DiscountFailed,
    EditBeginFailed,
    InvalidAction,
    MarkPaidFailed,
    MissingEmail,
    MissingOrderItems,
    MissingVariant,
    NoTargetLineItem,
    OrderCreateFailed,
    RemoveFailed,
    TagFailed,
    ValidationError,
)
from .models import (
    AddAction,
    CalculatedOrder,
    DiscountAction,
    EditAction,
    ModifyOrderRequest,
    ModifyOrderResponse,
    NewOrderRequest,
    NewOrderResponse,
    NotificationOutcome,
    RemoveAction,
)
from .ownership import ensure_order_owned

log = logging.getLogger(__name__)

DEFAULT_DISCOUNT_PERCENT = 10

SUCCESS_MESSAGES = {
    "discount": "Discount applied",
    "remove": "Item removed",
    "add": "Item added",
}


def to_calculated_line_item_id(line_item_id):
    """
    Rewrites an order line item id into the edit-session namespace.

    `gid://shopify/LineItem/5` becomes `gid://shopify/CalculatedLineItem/5`.
    Ids already in the calculated namespace, and ids of any other form, are
    returned unchanged, so applying the rewrite twice is a no-op.
    """
    if not line_item_id:
        return None
    if "/CalculatedLineItem/" in line_item_id:
        return line_item_id
    if "/LineItem/" in line_item_id:
        return line_item_id.replace("/LineItem/", "/CalculatedLineItem/")
    return line_item_id


def parse_edit_action(request: ModifyOrderRequest) -> EditAction:
    """
    Turns the raw request into one of the three edit actions.

    Raises:
        InvalidAction: If action is not discount, remove or add.
        MissingVariant: If an add request carries no variantId.
    """
    if request.action == "discount":
        percent = request.discountPercent
        return DiscountAction(percent=DEFAULT_DISCOUNT_PERCENT if percent is None else percent)
    if request.action == "remove":
        return RemoveAction()
    if request.action == "add":
        if not request.variantId:
            raise MissingVariant("variantId is required for add")
        quantity = request.quantity if request.quantity and request.quantity > 0 else 1
        return AddAction(variantId=request.variantId, quantity=quantity)

    raise InvalidAction("Invalid action")


def resolve_profile_email(email, settings: Settings) -> str:
    resolved = email or settings.default_profile_email
    if not resolved:
        raise MissingEmail("Missing Klaviyo profile email")
    return resolved


def validate_modify_request(request: ModifyOrderRequest, settings: Settings):
    """Fail-fast checks in caller-visible order; returns the edit action and the profile email."""
    if not request.orderId or not request.action:
        raise ValidationError("orderId and action are required")
    if request.action not in SUCCESS_MESSAGES:
        raise InvalidAction("Invalid action")
    email = resolve_profile_email(request.email, settings)
    return parse_edit_action(request), email


def _raise_on_user_errors(result: dict, error_cls):
    user_errors = result.get("userErrors") or []
    if user_errors:
        raise error_cls(user_errors)


def _apply_edit(commerce: CommerceClient, calculated_order_id: str, action: EditAction, line_item_id):
    """Dispatches exactly one mutation inside the open edit session."""
    match action:
        case DiscountAction(percent=percent):
            result = commerce.add_line_item_discount(calculated_order_id, line_item_id, percent)
            _raise_on_user_errors(result, DiscountFailed)
        case RemoveAction():
            # Die Plattform kennt kein Entfernen während einer Edit-Session, nur Menge 0
            result = commerce.set_line_item_quantity(calculated_order_id, line_item_id, 0)
            _raise_on_user_errors(result, RemoveFailed)
        case AddAction(variantId=variant_id, quantity=quantity):
            result = commerce.add_variant(calculated_order_id, variant_id, quantity)
            _raise_on_user_errors(result, AddFailed)


def _release_edit_session(log_prefix: str, calculated_order_id: str, error: Exception):
    """
    Compensation for a failed edit after the session was opened.

    The Admin API has no mutation to discard a calculated order; the platform
    expires it. The orphaned session is logged so it can be traced.
    """
    log.warning(
        f"{log_prefix} Kompensation: Edit-Session {calculated_order_id} wird verworfen "
        f"(nicht committed, Grund: {error})."
    )


def build_modified_event_properties(request: ModifyOrderRequest, action: EditAction, identity_tag: str) -> dict:
    """Order Modified event properties; fields that do not apply to the action are None."""
    return {
        "shopifyOrderId": request.orderId,
        "username": identity_tag,
        "action": action.name,
        "discountPercent": action.percent if isinstance(action, DiscountAction) else None,
        "lineItemId": request.lineItemId if isinstance(action, (DiscountAction, RemoveAction)) else None,
        "variantId": action.variantId if isinstance(action, AddAction) else None,
        "quantity": action.quantity if isinstance(action, AddAction) else None,
    }


def notify_marketing(marketing: MarketingClient, log_prefix: str, metric_name: str,
                     properties: dict, profile_email: str, unique_id: str) -> NotificationOutcome:
    """
    Sends one marketing event and captures the outcome instead of raising.

    The commerce-side change is already durable when this runs, so any failure
    is logged and returned as `NotificationOutcome.error`.
    """
    try:
        result = marketing.send_event(metric_name, properties, profile_email, unique_id=unique_id)
    except Exception as e:
        log.error(f"{log_prefix} Klaviyo-Event '{metric_name}' fehlgeschlagen: {e}")
        return NotificationOutcome(error=str(e) or "Unknown Klaviyo error")

    log.info(f"{log_prefix} Klaviyo-Event '{metric_name}' gesendet (Status: {result.status}, ID: {result.eventId}).")
    return NotificationOutcome(status=result.status, eventId=result.eventId)


def modify_order_workflow(
        request: ModifyOrderRequest,
        commerce: CommerceClient,
        marketing: MarketingClient,
        settings: Settings,
        clock=time.time
) -> ModifyOrderResponse:
    """
    Executes one edit (discount, remove or add) against an order owned by the caller.

    Args:
        request (ModifyOrderRequest): The edit request from the presentation layer.
        commerce (CommerceClient): Commerce platform gateway.
        marketing (MarketingClient): Marketing event sink.
        settings (Settings): Provides the identity tag and the fallback profile email.
        clock (callable): Returns the current time in seconds; used for the event uniqueId.

    Returns:
        ModifyOrderResponse: Success message, notification outcome and committed order name.

    Raises:
        ValidationError: Before any network call, for incomplete requests.
        NotFound / Forbidden: From the ownership check; no edit step runs.
        UpstreamUserError: If the platform rejects begin, mutation or commit.
        UpstreamTransportError: On network, HTTP or payload failures.

    Workflow Steps:
        Step 1 – Ownership check via the order's tag set.
        Step 2 – Begin edit session (calculated order with up to 50 line items).
        Step 3 – Resolve the target line item (supplied id, else the first one).
        Step 4 – Apply the mutation.
        Step 5 – Commit without customer notification.
        Step 6 – Send "Order Modified" to the marketing pipeline (best effort).

    Compensation:
        - Failure after step 2 → the open edit session is logged as abandoned.
        - Failure in step 6 → reported as klaviyoError, the request still succeeds.
    """
    action, email = validate_modify_request(request, settings)

    order_id = request.orderId
    log_prefix = f"[Order: {order_id}]"
    log.info(f"{log_prefix} Starte Bearbeitung (Aktion: {action.name}).")

    # --- 1. Ownership ---
    ensure_order_owned(commerce, order_id, settings.identity_tag)

    # --- 2. Edit-Session starten ---
    begin = commerce.begin_edit(order_id)
    _raise_on_user_errors(begin, EditBeginFailed)
    if not (begin.get("calculatedOrder") or {}).get("id"):
        raise EditBeginFailed("Failed to start edit session")

    calculated_order = CalculatedOrder.from_payload(begin["calculatedOrder"])
    log.info(f"{log_prefix} Edit-Session geöffnet: {calculated_order.id} ({len(calculated_order.lineItems)} Positionen).")

    try:
        # --- 3. Ziel-Position bestimmen ---
        target_line_item_id = to_calculated_line_item_id(request.lineItemId)
        if not target_line_item_id and calculated_order.lineItems:
            target_line_item_id = calculated_order.lineItems[0].id

        if isinstance(action, (DiscountAction, RemoveAction)) and not target_line_item_id:
            raise NoTargetLineItem("No line items found for modification")

        # --- 4. Änderung anwenden ---
        _apply_edit(commerce, calculated_order.id, action, target_line_item_id)
        log.info(f"{log_prefix} Änderung '{action.name}' angewendet (Position: {target_line_item_id}).")

        # --- 5. Commit ---
        commit = commerce.commit_edit(calculated_order.id)
        _raise_on_user_errors(commit, CommitFailed)

    except Exception as e:
        _release_edit_session(log_prefix, calculated_order.id, e)
        raise

    order_name = (commit.get("order") or {}).get("name")
    log.info(f"{log_prefix} Änderung committed ({order_name}).")

    # --- 6. Klaviyo (best effort) ---
    unique_id = f"{order_id}-{action.name}-{int(clock() * 1000)}"
    outcome = notify_marketing(
        marketing,
        log_prefix,
        "Order Modified",
        build_modified_event_properties(request, action, settings.identity_tag),
        email,
        unique_id,
    )

    message = SUCCESS_MESSAGES[action.name]
    suffix = "(Klaviyo event failed)" if outcome.failed else "(Klaviyo event sent)"

    return ModifyOrderResponse(
        success=True,
        message=f"{message} {suffix}",
        klaviyoStatus=outcome.status,
        klaviyoEventId=outcome.eventId,
        klaviyoError=outcome.error,
        orderName=order_name,
    )


def create_order_workflow(
        request: NewOrderRequest,
        commerce: CommerceClient,
        marketing: MarketingClient,
        settings: Settings
) -> NewOrderResponse:
    """
    Places a test order for the caller's cart and tags it with the caller identity.

    Workflow Steps:
        Step 1 – Create the order (flagged as test order).
        Step 2 – Add the identity tag (data isolation).
        Step 3 – Mark the order as paid.
        Step 4 – Send "Order Created" with uniqueId = order id (best effort).

    Raises:
        MissingOrderItems / MissingEmail: Before any network call.
        OrderCreateFailed / TagFailed / MarkPaidFailed: On platform user errors.
        UpstreamTransportError: On network, HTTP or payload failures.
    """
    if not request.items:
        raise MissingOrderItems("items[] is required")

    email = request.email or settings.default_profile_email
    if not email:
        raise MissingEmail(
            "Missing KLAVIYO_PROFILE_EMAIL (set it in the environment) or pass email in request body."
        )

    # --- 1. Bestellung anlegen ---
    created = commerce.create_order([item.model_dump() for item in request.items], email)
    _raise_on_user_errors(created, OrderCreateFailed)

    order_id = created["order"]["id"]
    log_prefix = f"[Order: {order_id}]"
    log.info(f"{log_prefix} Bestellung angelegt ({created['order'].get('name')}).")

    # --- 2. Besitz-Tag setzen ---
    tagged = commerce.add_tags(order_id, [settings.identity_tag])
    if tagged.get("userErrors"):
        # Ohne Tag ist die Bestellung für niemanden sichtbar oder editierbar
        log.critical(f"{log_prefix} Tag konnte nicht gesetzt werden: {tagged['userErrors']}. BENÖTIGT MANUELLE AKTION!")
        raise TagFailed(tagged["userErrors"])

    # --- 3. Als bezahlt markieren ---
    paid = commerce.mark_as_paid(order_id)
    _raise_on_user_errors(paid, MarkPaidFailed)
    financial_status = (paid.get("order") or {}).get("displayFinancialStatus")
    log.info(f"{log_prefix} Als bezahlt markiert (Status: {financial_status}).")

    # --- 4. Klaviyo (best effort) ---
    outcome = notify_marketing(
        marketing,
        log_prefix,
        "Order Created",
        {"shopifyOrderId": order_id, "username": settings.identity_tag},
        email,
        order_id,
    )

    return NewOrderResponse(
        orderId=order_id,
        name=created["order"].get("name"),
        financialStatus=financial_status,
        klaviyoEventId=outcome.eventId,
        klaviyoStatus=outcome.status,
        klaviyoError=outcome.error,
    )
