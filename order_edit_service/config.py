"""
config.py — Process Configuration for the Order Edit Service

All environment access happens here. `Settings.from_env()` is called once at
process start; the resulting object is handed to the clients and the app
factory. Missing required variables fail fast with a `ConfigurationError`.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, field_validator

from .errors import ConfigurationError

DEFAULT_HIDDEN_ORDER_NAMES = ["#1087", "#1067", "#1036", "#1016", "#1015", "#1006", "#1004", "#1003"]


class Settings(BaseModel):
    """
    Resolved service configuration.

    Attributes:
        store_url (str): Commerce store base URL, without trailing slash.
        access_token (str): Commerce Admin API access token.
        api_version (str): Commerce Admin API version used in the endpoint path.
        marketing_api_key (str): Private key for the marketing events API.
        marketing_api_url (str): Base URL of the marketing events API.
        marketing_api_revision (str): Value of the `revision` header.
        identity_tag (str): The caller identity tag (ownership tag on orders).
        default_profile_email (Optional[str]): Fallback email for marketing events.
        hidden_order_names (List[str]): Order names never shown in the listing.
        log_file (str): Path of the persistent log file.
    """
    store_url: str
    access_token: str
    api_version: str = "2024-10"
    marketing_api_key: str
    marketing_api_url: str = "https://a.klaviyo.com"
    marketing_api_revision: str = "2025-10-15"
    identity_tag: str
    default_profile_email: Optional[str] = None
    hidden_order_names: List[str] = DEFAULT_HIDDEN_ORDER_NAMES
    log_file: str = "order_edit.log"

    @field_validator("store_url", "marketing_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def graphql_endpoint(self) -> str:
        return f"{self.store_url}/admin/api/{self.api_version}/graphql.json"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """
        Builds the settings from environment variables.

        Args:
            environ (Mapping[str, str], optional): Source mapping, defaults to `os.environ`.

        Raises:
            ConfigurationError: If a required variable is missing or empty.
        """
        env = os.environ if environ is None else environ

        def required(name):
            value = env.get(name)
            if not value:
                raise ConfigurationError(f"Missing env var: {name}")
            return value

        values = {
            "store_url": required("Shopify_Development_Store_URL"),
            "access_token": required("Shopify_Admin_GraphQL_API_Access_Token"),
            "marketing_api_key": required("Klaviyo_Private_API_Key"),
            "identity_tag": required("ASSESSMENT_USERNAME"),
            "default_profile_email": env.get("KLAVIYO_PROFILE_EMAIL") or None,
        }
        optional = {
            "api_version": "SHOPIFY_API_VERSION",
            "marketing_api_url": "KLAVIYO_API_URL",
            "marketing_api_revision": "KLAVIYO_API_REVISION",
            "log_file": "LOG_FILE",
        }
        for field, name in optional.items():
            if env.get(name):
                values[field] = env[name]

        hidden = env.get("HIDDEN_ORDER_NAMES")
        if hidden is not None:
            values["hidden_order_names"] = [n.strip() for n in hidden.split(",") if n.strip()]

        return cls(**values)
