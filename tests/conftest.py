"""Shared fakes for wallet-bridge tests."""

import asyncio
from typing import Any, Callable, Optional

import pytest
import pytest_asyncio

from wallet_bridge import BridgeSettings, WalletBridge

PROTOCOL_URI = "wc:" + "a" * 64 + "@2?relay-protocol=irn&symKey=" + "b" * 64


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSignClient:
    """In-memory SignClient. Tests resolve approvals and wallet answers by hand."""

    def __init__(self, chain_answer: Any = "0x61"):
        self.chain_answer = chain_answer
        self.fail_connect: Optional[Exception] = None
        self.fail_initialize: Optional[Exception] = None
        self.initialized = False
        self.closed = False
        self.namespaces: list[dict[str, Any]] = []
        self.approvals: list[asyncio.Future] = []
        self.requests: list[tuple[str, dict[str, Any], Optional[str]]] = []
        self.tx_futures: list[asyncio.Future] = []
        self.disconnected: list[str] = []

    async def initialize(self) -> None:
        if self.fail_initialize:
            raise self.fail_initialize
        self.initialized = True

    async def connect(self, required_namespaces: dict[str, Any]):
        if self.fail_connect:
            raise self.fail_connect
        self.namespaces.append(required_namespaces)
        approval = asyncio.get_running_loop().create_future()
        self.approvals.append(approval)
        return PROTOCOL_URI, approval

    async def request(self, topic: str, request: dict[str, Any], chain_id: Optional[str] = None) -> Any:
        self.requests.append((topic, request, chain_id))
        if request["method"] == "eth_chainId":
            if isinstance(self.chain_answer, Exception):
                raise self.chain_answer
            return self.chain_answer
        future = asyncio.get_running_loop().create_future()
        self.tx_futures.append(future)
        return await future

    async def disconnect(self, topic: str, reason: dict[str, Any]) -> None:
        self.disconnected.append(topic)

    async def close(self) -> None:
        self.closed = True


def approval_payload(address: str = "0xAAA", chain_id: int = 97, topic: str = "topic-1") -> dict[str, Any]:
    return {
        "topic": topic,
        "namespaces": {
            "eip155": {
                "accounts": [f"eip155:{chain_id}:{address}"],
                "chains": [f"eip155:{chain_id}"],
            }
        },
    }


async def approve(bridge: WalletBridge, client: FakeSignClient, user_id: Any, **kwargs: Any) -> None:
    """Resolve the user's latest approval and wait for it to be applied."""
    session = bridge.registry.get(user_id)
    client.approvals[-1].set_result(approval_payload(**kwargs))
    await session.handle.approval_task


async def wait_until(predicate: Callable[[], bool], attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def make_settings(**overrides: Any) -> BridgeSettings:
    values: dict[str, Any] = {
        "walletconnect_project_id": "test-project",
        "chain_id": 97,
        "gas_limit": 1_000_000,
        "gas_price": "20000000000",
        "session_timeout": 1_800_000,
        "request_timeout_s": 0.05,
        "connection_timeout_s": 0.2,
        "poll_interval_s": 0.01,
        "sweep_interval_s": 600.0,
    }
    values.update(overrides)
    return BridgeSettings(_env_file=None, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sign_client() -> FakeSignClient:
    return FakeSignClient()


@pytest.fixture
def settings() -> BridgeSettings:
    return make_settings()


@pytest.fixture
def events() -> list[tuple[str, Any]]:
    return []


@pytest_asyncio.fixture
async def bridge(settings, sign_client, clock, events):
    b = WalletBridge(settings=settings, sign_client=sign_client, clock=clock)
    b.add_event_handler(lambda event, data: events.append((event, data)))
    yield b
    await b.shutdown()
