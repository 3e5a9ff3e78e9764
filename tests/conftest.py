"""
Pytest configuration and fixtures for the donation line test suite.

Provides:
- In-memory store / event log fixtures
- Cardknox clients backed by httpx.MockTransport
- TwiML parsing helpers
- FastAPI test client with global state reset
"""

import os
import xml.etree.ElementTree as ET
from typing import Callable
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["CARDKNOX_API_KEY"] = "test-key"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ.pop("TWILIO_AUTH_TOKEN", None)
os.environ.pop("WEBHOOK_BASE_URL", None)

from donation_server.integrations.cardknox import (  # noqa: E402
    CardknoxClient,
    PaymentOutcome,
    PaymentResult,
)
from donation_server.storage import EventLog, SessionStore  # noqa: E402

GATEWAY_URL = "https://gateway.test/gatewayjson"


# ─────────────────────────────────────────────────────────────────────────────
# Storage Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def event_log() -> EventLog:
    """Fresh event log with default capacity and redaction on."""
    return EventLog(capacity=100, redact_payment_data=True)


@pytest.fixture
def session_store() -> SessionStore:
    """Fresh session store."""
    return SessionStore(timeout_minutes=30)


# ─────────────────────────────────────────────────────────────────────────────
# Gateway Fixtures
# ─────────────────────────────────────────────────────────────────────────────

def make_gateway_client(handler: Callable[[httpx.Request], httpx.Response]) -> CardknoxClient:
    """Cardknox client whose HTTP calls are answered by handler."""
    return CardknoxClient(
        api_key="test-key",
        gateway_url=GATEWAY_URL,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def gateway_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], CardknoxClient]:
    """Factory for Cardknox clients with a custom gateway handler."""
    return make_gateway_client


@pytest.fixture
def gateway_requests() -> list[httpx.Request]:
    """Requests seen by the mocked gateway."""
    return []


@pytest.fixture
def approving_gateway(gateway_requests) -> CardknoxClient:
    """Gateway that approves every sale with reference A1B2."""
    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append(request)
        return httpx.Response(200, json={"xResult": "A", "xStatus": "Approved", "xRefNum": "A1B2"})

    return make_gateway_client(handler)


@pytest.fixture
def declining_gateway(gateway_requests) -> CardknoxClient:
    """Gateway that declines every sale."""
    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append(request)
        return httpx.Response(
            200,
            json={"xResult": "D", "xStatus": "Declined", "xError": "Card declined", "xRefNum": "9001"},
        )

    return make_gateway_client(handler)


@pytest.fixture
def unreachable_gateway(gateway_requests) -> CardknoxClient:
    """Gateway that cannot be reached."""
    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append(request)
        raise httpx.ConnectError("Connection refused", request=request)

    return make_gateway_client(handler)


@pytest.fixture
def mock_payment_client() -> MagicMock:
    """Payment client mock; set charge.return_value per test."""
    client = MagicMock(spec=CardknoxClient)
    client.charge = AsyncMock(
        return_value=PaymentResult(outcome=PaymentOutcome.APPROVED, reference_number="A1B2")
    )
    return client


# ─────────────────────────────────────────────────────────────────────────────
# TwiML Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _parse_twiml(twiml: str) -> ET.Element:
    # ElementTree rejects str input carrying an encoding declaration
    return ET.fromstring(twiml.encode("utf-8"))


def _split_callback(url: str) -> tuple[str, dict[str, str]]:
    parts = urlsplit(url)
    return parts.path, {k: v[0] for k, v in parse_qs(parts.query).items()}


@pytest.fixture
def parse_twiml() -> Callable[[str], ET.Element]:
    """Parse a TwiML document into an Element."""
    return _parse_twiml


@pytest.fixture
def split_callback() -> Callable[[str], tuple[str, dict[str, str]]]:
    """Split a callback address into (path, query dict)."""
    return _split_callback


# ─────────────────────────────────────────────────────────────────────────────
# API Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def reset_global_state():
    """Clear process-wide sessions, event log and call tracker."""
    from donation_server.api import deps
    from donation_server.storage import event_log, session_store

    session_store.clear()
    event_log.clear()
    deps._call_tracker.clear()
    yield
    session_store.clear()
    event_log.clear()
    deps._call_tracker.clear()


@pytest.fixture
def test_client(reset_global_state):
    """Create FastAPI test client."""
    from fastapi.testclient import TestClient

    from donation_server.api.main import app

    return TestClient(app)


@pytest.fixture
def use_gateway():
    """Route the API's payment client to a given CardknoxClient."""
    patchers = []

    def _use(client: CardknoxClient) -> None:
        patcher = patch("donation_server.api.deps.get_payment_client", return_value=client)
        patcher.start()
        patchers.append(patcher)

    yield _use

    for patcher in patchers:
        patcher.stop()
