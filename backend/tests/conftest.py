import asyncio
import hashlib

import httpx
import pytest
import pytest_asyncio

from txwatch.gateway.client import GatewayClient
from txwatch.main import create_app
from txwatch.notifications import Notifier
from txwatch.simulator.store import SimulatorStore
from txwatch.watcher.registry import TxWatchRegistry, set_watch_registry

BASE_URL = "http://testserver/api/v2"


class RecordingNotifier(Notifier):
    """Keeps every notification as (kind, title-or-key, description)"""

    def __init__(self):
        self.events = []

    def pending(self, key, title, description):
        self.events.append(("pending", title, description))

    def success(self, title, description, link=None):
        self.events.append(("success", title, description))

    def warning(self, title, description):
        self.events.append(("warning", title, description))

    def error(self, title, description):
        self.events.append(("error", title, description))

    def dismiss(self, key):
        self.events.append(("dismiss", key, None))

    def of_kind(self, kind):
        return [event for event in self.events if event[0] == kind]


class FakeWallet:
    def __init__(self, tx_hash=None, connected=True, sign_error=None, submit_error=None):
        self.tx_hash = tx_hash
        self.connected = connected
        self.sign_error = sign_error
        self.submit_error = submit_error
        self.signed = []
        self.submitted = []

    async def sign_tx(self, unsigned_tx, partial=True):
        if self.sign_error:
            raise self.sign_error
        self.signed.append((unsigned_tx, partial))
        return unsigned_tx + "a100"

    async def submit_tx(self, signed_tx):
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(signed_tx)
        return self.tx_hash or hashlib.sha256(signed_tx.encode("utf-8")).hexdigest()


async def wait_for(predicate, timeout=3.0):
    """Yield to the event loop until `predicate()` holds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def store():
    return SimulatorStore()


@pytest.fixture
def app(store):
    return create_app(store)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def gateway(app):
    client = GatewayClient(
        base_url=BASE_URL,
        api_key="test-api-key",
        transport=httpx.ASGITransport(app=app),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def registry(gateway, notifier):
    registry = TxWatchRegistry(gateway, notifier=notifier, poll_interval=0.01, max_polls=200)
    set_watch_registry(registry)
    yield registry
    await registry.shutdown()
    set_watch_registry(None)
