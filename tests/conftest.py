import httpx
import pytest
from fastapi.testclient import TestClient

from mock_services.mock_commerce import MockCommerceStore
from mock_services.mock_marketing import MockEventsApi
from order_edit_service.clients import CommerceClient, MarketingClient
from order_edit_service.config import Settings
from order_edit_service.main import create_app

IDENTITY = "tester"
MARKETING_KEY = "pk_test_key"


@pytest.fixture()
def settings():
    return Settings(
        store_url="https://mock-store.example.com/",
        access_token="shpat_test_token",
        marketing_api_key=MARKETING_KEY,
        identity_tag=IDENTITY,
        default_profile_email="tester@example.com",
        hidden_order_names=["#0999"],
    )


@pytest.fixture()
def store():
    store = MockCommerceStore()
    store.add_product("Snowboard", [("Default", "100.00")])
    store.add_product("Wax", [("Hot", "10.00")])
    return store


@pytest.fixture()
def variant_id(store):
    return store.products[1]["variants"][0]["id"]


@pytest.fixture()
def owned_order(store):
    return store.add_order([IDENTITY], [("Snowboard", 1, "100.00"), ("Wax", 2, "10.00")])


@pytest.fixture()
def foreign_order(store):
    return store.add_order(["someone-else"], [("Snowboard", 1, "100.00")])


@pytest.fixture()
def events():
    return MockEventsApi(api_key=MARKETING_KEY)


@pytest.fixture()
def commerce(settings, store):
    client = CommerceClient(settings, transport=httpx.MockTransport(store.handle_request))
    yield client
    client.close()


@pytest.fixture()
def marketing(settings, events):
    client = MarketingClient(settings, transport=httpx.MockTransport(events.handle_request))
    yield client
    client.close()


@pytest.fixture()
def client(settings, commerce, marketing):
    app = create_app(settings, commerce=commerce, marketing=marketing)
    with TestClient(app) as test_client:
        yield test_client
