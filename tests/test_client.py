import asyncio

import pytest

from wallet_bridge import (
    BridgeEvent,
    ChainMismatch,
    ConnectionTimeout,
    SessionExpired,
    SessionNotFound,
    TransactionTimeout,
    WalletBridge,
)
from wallet_bridge.handles import ManualFallbackHandle, ProtocolBackedHandle
from wallet_bridge.transport.socketio import SocketIOSignClient

from conftest import approve, make_settings, wait_until


class TestEventHandlers:
    @pytest.mark.asyncio
    async def test_remove_handler(self, bridge, sign_client):
        seen = []
        remove = bridge.add_event_handler(lambda event, data: seen.append(event))
        remove()
        remove()
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1)
        assert seen == []

    @pytest.mark.asyncio
    async def test_on_event_replaces_handlers(self, bridge, sign_client, events):
        seen = []
        bridge.on_event(lambda event, data: seen.append(event))
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1)
        assert seen == [BridgeEvent.WALLET_CONNECTED]
        assert events == []

    @pytest.mark.asyncio
    async def test_async_handler_is_scheduled(self, bridge, sign_client):
        seen = []

        async def handler(event, data):
            await asyncio.sleep(0)
            seen.append((event, data.address))

        bridge.add_event_handler(handler)
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1, address="0xBEEF")
        await wait_until(lambda: bool(seen))
        assert seen == [(BridgeEvent.WALLET_CONNECTED, "0xBEEF")]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self, bridge, sign_client, events):
        def broken(event, data):
            raise RuntimeError("handler bug")

        bridge.on_event(broken)
        bridge.add_event_handler(lambda event, data: events.append((event, data)))
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1)
        assert [event for event, _ in events] == [BridgeEvent.WALLET_CONNECTED]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_initializes_client(self, bridge, sign_client):
        await bridge.start()
        assert sign_client.initialized
        assert bridge.protocol_available
        await bridge.start()

    @pytest.mark.asyncio
    async def test_start_falls_back_when_client_fails(self, bridge, sign_client):
        sign_client.fail_initialize = RuntimeError("relay down")
        await bridge.start()
        assert not bridge.protocol_available

        result = await bridge.create_session(1)
        assert isinstance(result.handle, ManualFallbackHandle)
        assert sign_client.namespaces == []

    @pytest.mark.asyncio
    async def test_shutdown_closes_client_and_sessions(self, settings, sign_client, clock):
        bridge = WalletBridge(settings=settings, sign_client=sign_client, clock=clock)
        await bridge.start()
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1)

        await bridge.shutdown()
        assert sign_client.closed
        assert sign_client.disconnected == ["topic-1"]
        assert bridge.get_stats().total_sessions == 0

    def test_from_settings_without_relay(self):
        bridge = WalletBridge.from_settings(make_settings())
        assert bridge.negotiator.sign_client is None

    def test_from_settings_with_relay(self):
        bridge = WalletBridge.from_settings(make_settings(wallet_relay_url="http://localhost:8080"))
        assert isinstance(bridge.negotiator.sign_client, SocketIOSignClient)

    def test_from_settings_needs_project_id(self):
        settings = make_settings(wallet_relay_url="http://localhost:8080", walletconnect_project_id="")
        assert WalletBridge.from_settings(settings).negotiator.sign_client is None


class TestWaitForConnection:
    @pytest.mark.asyncio
    async def test_returns_once_approved(self, bridge, sign_client, events):
        await bridge.create_session(1)
        waiter = asyncio.ensure_future(bridge.wait_for_connection(1))
        await asyncio.sleep(0.02)
        assert not waiter.done()

        await approve(bridge, sign_client, 1, address="0xAAA")
        status = await waiter
        assert status.connected
        assert status.address == "0xAAA"
        assert [event for event, _ in events] == [BridgeEvent.WALLET_CONNECTED]

    @pytest.mark.asyncio
    async def test_times_out(self, bridge):
        await bridge.create_session(1)
        with pytest.raises(ConnectionTimeout) as info:
            await bridge.wait_for_connection(1, timeout=0.03, poll_interval=0.01)
        assert info.value.details["user_id"] == 1

        status = await bridge.check_connection(1)
        assert status.connected is False
        assert status.reason is None

    @pytest.mark.asyncio
    async def test_without_session(self, bridge):
        with pytest.raises(ConnectionTimeout) as info:
            await bridge.wait_for_connection(1, timeout=0.01, poll_interval=0.01)
        assert info.value.details["reason"] == "No session found"


class TestSessions:
    @pytest.mark.asyncio
    async def test_get_session(self, bridge, sign_client, clock):
        with pytest.raises(SessionNotFound):
            bridge.get_session(1)

        result = await bridge.create_session(1)
        assert bridge.get_session(1).id == result.session_id

        clock.advance(1801)
        with pytest.raises(SessionExpired):
            bridge.get_session(1)

    @pytest.mark.asyncio
    async def test_ensure_chain(self, bridge, sign_client):
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1, chain_id=97)
        assert bridge.ensure_chain(1) == 97

    @pytest.mark.asyncio
    async def test_chain_mismatch_is_advisory(self, bridge, sign_client, events):
        sign_client.chain_answer = "0x38"
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1, chain_id=56)

        status = await bridge.check_connection(1)
        assert status.connected
        assert status.chain_id == 56
        assert "chain 56" in status.warning
        assert events[0][1].chain_mismatch is True

        with pytest.raises(ChainMismatch) as info:
            bridge.ensure_chain(1)
        assert info.value.details == {"connected_chain_id": 56, "required_chain_id": 97}

    @pytest.mark.asyncio
    async def test_deep_links(self, bridge):
        assert bridge.deep_links(1) is None
        result = await bridge.create_session(1)
        links = bridge.deep_links(1)
        assert set(links) == {"metamask", "trust", "rainbow", "coinbase", "imtoken", "universal"}
        assert isinstance(result.handle, ProtocolBackedHandle)

    def test_detect_platform(self):
        assert WalletBridge.detect_platform("private").is_mobile
        assert WalletBridge.detect_platform("group").is_desktop


class TestTransactionsAndStats:
    @pytest.mark.asyncio
    async def test_pending_transaction_lifecycle(self, bridge, sign_client):
        assert bridge.get_pending_transaction(1) is None
        await bridge.create_session(1)
        await approve(bridge, sign_client, 1)

        with pytest.raises(TransactionTimeout):
            await bridge.send_transaction(1, {"to": "0xC0"}, "Mint")
        pending = bridge.get_pending_transaction(1)
        assert pending.description == "Mint"
        assert pending.status == "failed"

        bridge.clear_pending_transaction(1)
        assert bridge.get_pending_transaction(1) is None
        bridge.clear_pending_transaction(2)

    @pytest.mark.asyncio
    async def test_stats(self, bridge, sign_client):
        await bridge.create_session(1)
        await bridge.create_session(2)
        await approve(bridge, sign_client, 2)

        stats = bridge.get_stats()
        assert stats.total_sessions == 2
        assert stats.connected_sessions == 1
        assert stats.active_sessions == 2
        assert stats.pending_transactions == 0
        assert stats.model_dump(by_alias=True)["connectedSessions"] == 1
