import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Select the gateway configuration overlay before any application module
    reads it.
    """
    os.environ["GATEWAY_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Upstream fakes and shared collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    from shared.config import load_settings

    return load_settings(env="test")


@pytest.fixture()
def commerce():
    from upstream.fake_adapter import FakeCommerce

    return FakeCommerce()


@pytest.fixture()
def store_cart():
    from upstream.fake_adapter import FakeStoreCart

    return FakeStoreCart()


@pytest.fixture()
def sessions():
    from sessions.store import InMemorySessionStore

    return InMemorySessionStore()


@pytest.fixture()
def parents(commerce):
    from ordering.cart.variations import ParentResolver
    from shared.cache import TTLCache

    return ParentResolver(commerce, TTLCache())


@pytest.fixture()
def request_context():
    from ordering.cart.repository import RequestContext

    return RequestContext(ip_address="203.0.113.7", user_agent="pytest-agent")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
@pytest.fixture()
def app(settings, commerce, store_cart, sessions):
    from app import create_app

    return create_app(settings, commerce=commerce, store_cart=store_cart, sessions=sessions, configure_logs=False)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def make_token(settings):
    """Build a signed bearer token for ``customer_id``."""

    def _make(customer_id, expires_in=timedelta(hours=1), secret=None):
        claims = {"userId": customer_id, "exp": datetime.now(UTC) + expires_in}
        return jwt.encode(claims, secret or settings.auth.jwt_secret, algorithm=settings.auth.jwt_algorithm)

    return _make


@pytest.fixture()
def auth_headers(make_token):
    def _headers(customer_id):
        return {"Authorization": f"Bearer {make_token(customer_id)}"}

    return _headers
