"""
errors.py — Error Taxonomy for the Order Edit Service

Every failure the service reports to a caller is an `OrderEditError`. Each
subclass knows its HTTP status code and the value of the JSON `error` field:
either a plain message or the commerce platform's user-error list, passed
through verbatim.

Groups:
    - ValidationError (400): malformed or incomplete request
    - Forbidden (403) / NotFound (404): ownership guard results
    - UpstreamUserError (400): the commerce platform rejected a mutation step
    - UpstreamTransportError (500): network / HTTP / payload failures upstream
"""

import json


class OrderEditError(Exception):
    """Base class for all errors that are turned into an `{error}` response."""

    status_code = 500

    def __init__(self, error):
        self.error = error
        super().__init__(error if isinstance(error, str) else json.dumps(error))


class ConfigurationError(OrderEditError):
    """A required setting is missing from the process environment."""


# --- Request validation (400) ---
class ValidationError(OrderEditError):
    status_code = 400


class InvalidAction(ValidationError):
    pass


class MissingEmail(ValidationError):
    pass


class MissingVariant(ValidationError):
    pass


class NoTargetLineItem(ValidationError):
    pass


class MissingOrderItems(ValidationError):
    pass


# --- Ownership ---
class Forbidden(OrderEditError):
    status_code = 403


class NotFound(OrderEditError):
    status_code = 404


# --- Commerce platform user errors (400) ---
class UpstreamUserError(OrderEditError):
    """
    The commerce platform answered, but reported `userErrors` for a step.

    Attributes:
        user_errors (list[dict]): The platform's `{field, message}` list, unchanged.
    """

    status_code = 400

    def __init__(self, user_errors):
        self.user_errors = user_errors
        super().__init__(user_errors)


class EditBeginFailed(UpstreamUserError):
    pass


class DiscountFailed(UpstreamUserError):
    pass


class RemoveFailed(UpstreamUserError):
    pass


class AddFailed(UpstreamUserError):
    pass


class CommitFailed(UpstreamUserError):
    pass


class OrderCreateFailed(UpstreamUserError):
    pass


class TagFailed(UpstreamUserError):
    pass


class MarkPaidFailed(UpstreamUserError):
    pass


# --- Upstream transport failures (500) ---
class UpstreamTransportError(OrderEditError):
    status_code = 500


class TransportError(UpstreamTransportError):
    """The request never produced an HTTP response (DNS, connect, timeout...)."""


class HttpError(UpstreamTransportError):
    def __init__(self, status: int, body):
        self.status = status
        self.body = body
        super().__init__(f"Shopify HTTP error {status}: {json.dumps(body)}")


class GraphError(UpstreamTransportError):
    def __init__(self, errors: list):
        self.errors = errors
        super().__init__(f"Shopify GraphQL errors: {json.dumps(errors)}")


class EmptyPayloadError(UpstreamTransportError):
    def __init__(self):
        super().__init__("Shopify: missing data in response")


class MarketingApiError(UpstreamTransportError):
    def __init__(self, status: int, body):
        self.status = status
        self.body = body
        super().__init__(f"Klaviyo error {status}: {json.dumps(body)}")
