"""
models.py — Data Models for Order Creation and Order Editing

This module defines the data structures exchanged with the presentation layer
and the edit actions the orchestrator dispatches on. It uses Pydantic models
to ensure type safety and automatic validation of incoming data.

Models:
    - OrderItem / NewOrderRequest: Cart checkout payload (POST /orders).
    - ModifyOrderRequest: Raw edit request (POST /orders/modify).
    - DiscountAction / RemoveAction / AddAction: The closed set of edit actions.
    - CalculatedLineItem / CalculatedOrder: Edit-session snapshot returned by "begin edit".
    - MarketingResult: Outcome of one marketing event submission.
    - NotificationOutcome: Marketing result or the error text of a failed submission.
    - ModifyOrderResponse / NewOrderResponse: Success payloads.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

Number = Union[int, float]


class OrderItem(BaseModel):
    """
    Represents a single cart line submitted for checkout.

    Attributes:
        variantId (str): Commerce platform id of the product variant.
        quantity (int): The quantity to order. Must be greater than zero.
    """
    variantId: str
    quantity: int = Field(..., gt=0)


class NewOrderRequest(BaseModel):
    """
    Represents a checkout request from the presentation layer.

    Attributes:
        items (List[OrderItem]): Cart lines. An empty list is rejected by the workflow.
        email (Optional[str]): Customer email, falls back to the configured profile email.
    """
    items: List[OrderItem] = []
    email: Optional[str] = None


class ModifyOrderRequest(BaseModel):
    """
    Represents an edit request for an existing order.

    All fields are optional at the schema level; which ones are required depends
    on `action` and is checked by `parse_edit_action()` so that the caller gets
    the service's own error messages.
    """
    orderId: Optional[str] = None
    action: Optional[str] = None
    email: Optional[str] = None
    lineItemId: Optional[str] = None
    variantId: Optional[str] = None
    quantity: Optional[int] = None
    discountPercent: Optional[Number] = None


class DiscountAction(BaseModel):
    name: str = "discount"
    percent: Number = 10


class RemoveAction(BaseModel):
    name: str = "remove"


class AddAction(BaseModel):
    name: str = "add"
    variantId: str
    quantity: int = 1


EditAction = Union[DiscountAction, RemoveAction, AddAction]


class CalculatedLineItem(BaseModel):
    id: str
    title: Optional[str] = None
    quantity: int = 0


class CalculatedOrder(BaseModel):
    """Edit session snapshot: the calculated order id and its line items."""
    id: str
    lineItems: List[CalculatedLineItem] = []

    @classmethod
    def from_payload(cls, payload: dict) -> "CalculatedOrder":
        edges = (payload.get("lineItems") or {}).get("edges") or []
        return cls(id=payload["id"], lineItems=[edge["node"] for edge in edges])


class MarketingResult(BaseModel):
    status: int
    eventId: Optional[str] = None


class NotificationOutcome(BaseModel):
    """Result-or-error of the advisory notification step; never raised."""
    status: Optional[int] = None
    eventId: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ModifyOrderResponse(BaseModel):
    success: bool = True
    message: str
    klaviyoStatus: Optional[int] = None
    klaviyoEventId: Optional[str] = None
    klaviyoError: Optional[str] = None
    orderName: Optional[str] = None


class NewOrderResponse(BaseModel):
    orderId: str
    name: Optional[str] = None
    financialStatus: Optional[str] = None
    klaviyoEventId: Optional[str] = None
    klaviyoStatus: Optional[int] = None
    klaviyoError: Optional[str] = None
