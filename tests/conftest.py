"""
Shared fixtures: an in-memory backend served through httpx.MockTransport.
"""

import json

import httpx
import pytest

from subscription_desk.core.notifications import Notifier
from subscription_desk.sdk.gateway import RemoteGateway
from subscription_desk.storage.backends import InMemoryStorage
from subscription_desk.storage.ledger import LedgerCache

BASE_URL = "https://api.test/api"


class FakeBackend:
    """Minimal stand-in for the customer subscription endpoints."""

    def __init__(self):
        self.publications = []
        self.subscriptions = {}
        self.failures = {}
        self.requests = []

    def fail(self, endpoint, status=500, message=None):
        """Make ``endpoint`` ("publications", "subscriptions", "subscribe") fail."""
        body = {"message": message} if message else None
        self.failures[endpoint] = (status, body)

    def calls(self, endpoint):
        return [r for r in self.requests if _endpoint(r) == endpoint]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = _endpoint(request)

        if endpoint in self.failures:
            status, body = self.failures[endpoint]
            if body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=body)

        if endpoint == "publications":
            return httpx.Response(200, json=self.publications)
        if endpoint == "subscriptions":
            name = request.url.params.get("customerName")
            return httpx.Response(200, json=self.subscriptions.get(name, []))
        if endpoint == "subscribe":
            payload = json.loads(request.content)
            self.subscriptions.setdefault(payload["customerName"], []).append({
                "publication": {"_id": payload["publicationId"]},
                "customerName": payload["customerName"],
            })
            return httpx.Response(201, json={"message": "Subscribed"})
        return httpx.Response(404, json={"message": "Not found"})


def _endpoint(request: httpx.Request) -> str:
    path = request.url.path
    if path.endswith("/customer/subscriptions/subscribe"):
        return "subscribe"
    if path.endswith("/customer/subscriptions"):
        return "subscriptions"
    if path.endswith("/customer/publications"):
        return "publications"
    return path


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def gateway(backend, storage):
    return RemoteGateway(
        base_url=BASE_URL,
        storage=storage,
        transport=httpx.MockTransport(backend.handler)
    )


@pytest.fixture
def ledger(storage):
    return LedgerCache(storage)
