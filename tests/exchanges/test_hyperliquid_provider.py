"""
Hyperliquid Provider Tests

Shared socket subscriptions, bbo/l2Book parsing and /info funding polling.
"""

import asyncio
import json
import logging
from unittest.mock import AsyncMock, patch

import msgspec
import pytest

from config.structs import ProviderSettings
from exchanges.hyperliquid.provider import HyperliquidProvider
from exchanges.structs.enums import DataType
from infrastructure.exceptions.exchange import ExchangeServerError, SymbolResolutionError
from infrastructure.exceptions.system import ConfigurationError
from tests.conftest import MINUTE_47_TIMESTAMP, settle
from utils.task_utils import TimerKey, TimerPurpose

BOTH = [DataType.ORDERBOOK, DataType.FUNDING]

META_AND_CTXS = [
    {"universe": [{"name": "BTC", "szDecimals": 5}, {"name": "ETH", "szDecimals": 4}]},
    [
        {"funding": "0.0000125", "openInterest": "100.0", "markPx": "100.2"},
        {"funding": "-0.00002", "openInterest": "50.0", "markPx": "2000.1"},
    ],
]


def bbo_message(coin="BTC", bid="100.5", ask="101.0", time_ms=1704106020000):
    return msgspec.json.encode({
        "channel": "bbo",
        "data": {
            "coin": coin,
            "time": time_ms,
            "bbo": [{"px": bid, "sz": "1.5", "n": 3}, {"px": ask, "sz": "0.7", "n": 2}],
        },
    })


@pytest.fixture
def rest_client():
    client = AsyncMock()
    client.post.return_value = META_AND_CTXS
    return client


def make_provider(data_bus, symbol_mapper, connector, clock, rest_client, **settings):
    settings.setdefault("reconnect_delay", 0.01)
    return HyperliquidProvider(
        data_bus,
        symbol_mapper,
        settings=ProviderSettings(**settings),
        rest_client=rest_client,
        connect_method_factory=connector,
        clock=clock,
    )


@pytest.fixture
def provider(data_bus, symbol_mapper, connector, clock, rest_client):
    return make_provider(data_bus, symbol_mapper, connector, clock, rest_client)


def sent_json(ws):
    return [json.loads(message) for message in ws.sent]


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_subscribe_sends_bbo_request(self, provider, connector):
        await provider.connect()
        await provider.subscribe("BTC", [DataType.ORDERBOOK])

        assert provider.is_connected()
        assert connector.last.url == "wss://api.hyperliquid.xyz/ws"
        assert sent_json(connector.last) == [
            {"method": "subscribe", "subscription": {"type": "bbo", "coin": "BTC"}}
        ]
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_l2_book_channel(self, data_bus, symbol_mapper, connector, clock, rest_client):
        provider = make_provider(data_bus, symbol_mapper, connector, clock, rest_client,
                                 orderbook_channel="l2Book", stream_funding=True)
        await provider.connect()
        await provider.subscribe("ETH", BOTH)

        assert [m["subscription"]["type"] for m in sent_json(connector.last)] == ["l2Book", "activeAssetCtx"]
        await provider.disconnect()

    def test_unknown_channel_rejected(self, data_bus, symbol_mapper, connector, clock, rest_client):
        with pytest.raises(ConfigurationError):
            make_provider(data_bus, symbol_mapper, connector, clock, rest_client, orderbook_channel="trades")

    def test_non_websocket_url_rejected(self, data_bus, symbol_mapper, connector, clock, rest_client):
        with pytest.raises(ConfigurationError):
            make_provider(data_bus, symbol_mapper, connector, clock, rest_client,
                          ws_url="https://api.hyperliquid.xyz/ws")

    @pytest.mark.asyncio
    async def test_unmapped_symbol_rejected(self, provider, connector):
        await provider.connect()

        with pytest.raises(SymbolResolutionError):
            await provider.subscribe("DOGE", [DataType.ORDERBOOK])

        assert connector.last.sent == []
        assert provider.subscriptions == {}
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_subscriptions_replayed_after_reconnect(self, provider, connector):
        await provider.connect()
        await provider.subscribe("BTC", [DataType.ORDERBOOK])
        await provider.subscribe("ETH", [DataType.ORDERBOOK])

        connector.last.drop()
        await asyncio.sleep(0.03)

        assert len(connector.sockets) == 2
        assert [m["subscription"]["coin"] for m in sent_json(connector.last)] == ["BTC", "ETH"]
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_subscribe_before_connect_is_deferred(self, provider, connector):
        await provider.subscribe("BTC", [DataType.ORDERBOOK])
        await provider.connect()

        assert sent_json(connector.last) == [
            {"method": "subscribe", "subscription": {"type": "bbo", "coin": "BTC"}}
        ]
        await provider.disconnect()


class TestMessages:

    @pytest.mark.asyncio
    async def test_bbo_published_to_store(self, provider, connector, store):
        await provider.connect()
        await provider.subscribe("BTC", [DataType.ORDERBOOK])

        connector.last.feed(bbo_message())
        await settle()

        book = store.get_orderbook_data("BTC")["hyperliquid"]
        assert book.best_bid == 100.5
        assert book.best_ask == 101.0
        assert book.timestamp == 1704106020.0
        assert book.bids is None
        assert book.funding_rate is None
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_l2_book_carries_depth(self, data_bus, symbol_mapper, connector, clock, rest_client, store):
        provider = make_provider(data_bus, symbol_mapper, connector, clock, rest_client, orderbook_channel="l2Book")
        await provider.connect()
        await provider.subscribe("ETH", [DataType.ORDERBOOK])

        connector.last.feed(msgspec.json.encode({
            "channel": "l2Book",
            "data": {
                "coin": "ETH",
                "time": 1704106020000,
                "levels": [
                    [{"px": "2000.1", "sz": "3", "n": 4}, {"px": "2000.0", "sz": "1", "n": 1}],
                    [{"px": "2000.5", "sz": "2", "n": 2}],
                ],
            },
        }))
        await settle()

        book = store.get_orderbook_data("ETH")["hyperliquid"]
        assert book.best_bid == 2000.1
        assert book.best_ask == 2000.5
        assert [level.price for level in book.bids] == [2000.1, 2000.0]
        assert book.bids[0].order_count == 4
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_cached_funding_merged_into_book(self, provider, connector, store):
        await provider.connect()
        await provider.subscribe("BTC", BOTH)

        connector.last.feed(bbo_message())
        await settle()

        assert store.get_orderbook_data("BTC")["hyperliquid"].funding_rate == 0.0000125
        await provider.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        b"not json",
        b'{"channel": "subscriptionResponse", "data": {"method": "subscribe"}}',
        b'{"channel": "bbo", "data": {"coin": "BTC", "bbo": [{"px": "abc"}]}}',
        b'{"channel": "trades", "data": [{"coin": "BTC"}]}',
        b'[1, 2, 3]',
    ])
    async def test_malformed_or_unknown_messages_dropped(self, provider, connector, store, payload):
        await provider.connect()
        await provider.subscribe("BTC", [DataType.ORDERBOOK])

        connector.last.feed(payload)
        connector.last.feed(bbo_message())
        await settle()

        assert provider.is_connected()
        assert store.get_orderbook_data("BTC")["hyperliquid"].best_bid == 100.5
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_streamed_funding(self, data_bus, symbol_mapper, connector, clock, rest_client, store):
        provider = make_provider(data_bus, symbol_mapper, connector, clock, rest_client, stream_funding=True)
        await provider.connect()
        await provider.subscribe("BTC", BOTH)

        connector.last.feed(msgspec.json.encode({
            "channel": "activeAssetCtx",
            "data": {"coin": "BTC", "ctx": {"funding": "0.0001", "openInterest": "1"}},
        }))
        await settle()

        funding = store.get_funding_data("BTC")["hyperliquid"]
        assert funding.funding_rate == 0.0001
        assert funding.apy == pytest.approx(87.6)
        await provider.disconnect()


class TestFunding:

    @pytest.mark.asyncio
    async def test_immediate_fetch_and_hour_aligned_schedule(self, provider, rest_client, store):
        with patch.object(provider.timers, "call_every") as call_every:
            await provider.subscribe("BTC", [DataType.FUNDING])

        rest_client.post.assert_awaited_once_with("/info", json_data={"type": "metaAndAssetCtxs"})
        funding = store.get_funding_data("BTC")["hyperliquid"]
        assert funding.funding_rate == 0.0000125
        assert funding.apy == pytest.approx(10.95)
        assert (funding.next_funding_minutes, funding.next_funding_seconds) == (13, 0)
        assert funding.timestamp == MINUTE_47_TIMESTAMP

        key, interval = call_every.call_args.args[:2]
        assert key == TimerKey("hyperliquid", "BTC", TimerPurpose.FUNDING)
        assert interval == 3600
        assert call_every.call_args.kwargs["first_delay"] == 780
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_cached_value(self, provider, rest_client, store):
        await provider.subscribe("ETH", [DataType.FUNDING])
        cached = provider.get_cached_funding("ETH")
        assert cached.funding_rate == -0.00002

        rest_client.post.side_effect = ExchangeServerError(502, "bad gateway")
        result = await provider.refresh_funding("ETH")

        assert result is cached
        assert provider.get_cached_funding("ETH") is cached
        assert store.get_funding_data("ETH")["hyperliquid"] is cached
        assert provider.timers.is_scheduled(TimerKey("hyperliquid", "ETH", TimerPurpose.FUNDING))
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_fetch_failure_logged_once(self, provider, rest_client, caplog):
        rest_client.post.side_effect = ExchangeServerError(502, "bad gateway")

        with caplog.at_level(logging.ERROR):
            await provider.refresh_funding("ETH")

        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert [r.getMessage() for r in errors] == ["Funding fetch failed"]
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_unexpected_response_shape(self, provider, rest_client, store):
        rest_client.post.return_value = {"error": "unknown"}

        await provider.subscribe("BTC", [DataType.FUNDING])

        assert provider.get_cached_funding("BTC") is None
        assert store.get_funding_data("BTC") == {}
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_symbol_missing_from_universe(self, data_bus, symbol_mapper, connector, clock, rest_client):
        provider = make_provider(data_bus, symbol_mapper, connector, clock, rest_client)

        await provider.subscribe("SUI", [DataType.FUNDING])

        assert provider.get_cached_funding("SUI") is None
        await provider.disconnect()


class TestTeardown:

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_everything_for_symbol(self, provider, connector, store):
        await provider.connect()
        await provider.subscribe("BTC", BOTH)
        await provider.subscribe("ETH", BOTH)
        store.clear()

        await provider.unsubscribe("BTC")

        assert not provider.timers.is_scheduled(TimerKey("hyperliquid", "BTC", TimerPurpose.FUNDING))
        assert provider.timers.is_scheduled(TimerKey("hyperliquid", "ETH", TimerPurpose.FUNDING))
        assert provider.get_cached_funding("BTC") is None
        assert {"method": "unsubscribe", "subscription": {"type": "bbo", "coin": "BTC"}} in sent_json(connector.last)

        connector.last.feed(bbo_message("BTC"))
        await settle()
        assert await provider.refresh_funding("BTC") is None
        assert store.get_all_data("BTC") == {}
        await provider.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_timers_and_closes(self, provider, connector, rest_client):
        await provider.connect()
        await provider.subscribe("BTC", BOTH)

        await provider.disconnect()

        assert provider.timers.keys == []
        assert not provider.is_connected()
        assert connector.last.closed
        rest_client.close.assert_awaited_once()

        await asyncio.sleep(0.03)
        assert len(connector.sockets) == 1
