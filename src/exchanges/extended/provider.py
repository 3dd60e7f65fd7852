"""
Extended Market Data Provider

One WebSocket per market at {ws_url}/orderbooks/{market}?depth=N and the
/api/v1/info/markets REST endpoint for funding.

The server drops every connection after ~15 s, so each market socket is
reopened preemptively every 14 s. SNAPSHOT frames replace the local book
of a market and UPDATE frames are applied to it level by level.
Application level text pings "[ping <id> ping]" are answered with
"[pong <id> pong]"; protocol ping frames are answered by the websockets
library.
"""

import time
from typing import Any, Dict, FrozenSet, List, Tuple

import msgspec

from exchanges.interfaces.data_provider import BaseDataProvider
from exchanges.structs.common import OrderBookEntry
from exchanges.structs.enums import DataType, ProviderEnum
from infrastructure.exceptions.exchange import MessageParseError, RestFetchError
from infrastructure.networking.websocket import WebsocketClient
from .structs import ExtendedLevel, ExtendedMarketsResponse, ExtendedOrderbookMessage

SNAPSHOT_TYPE = "SNAPSHOT"
UPDATE_TYPES = frozenset({"UPDATE", "DELTA"})

PING_PREFIX = "[ping "
PING_SUFFIX = " ping]"


def make_pong(message: str) -> str:
    """'[ping 42 ping]' -> '[pong 42 pong]'"""
    token = message[len(PING_PREFIX):-len(PING_SUFFIX)]
    return f"[pong {token} pong]"


def is_text_ping(message: Any) -> bool:
    return (isinstance(message, str)
            and message.startswith(PING_PREFIX)
            and message.endswith(PING_SUFFIX)
            and len(message) >= len(PING_PREFIX) + len(PING_SUFFIX))


class ExtendedProvider(BaseDataProvider):
    """Extended perpetuals market data."""

    PROVIDER_NAME = ProviderEnum.EXTENDED.value
    DEFAULT_WS_URL = "wss://api.extended.exchange/stream.extended.exchange/v1"
    DEFAULT_REST_URL = "https://api.extended.exchange"
    DEFAULT_PREEMPTIVE_RECONNECT_INTERVAL = 14.0

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._market_clients: Dict[str, WebsocketClient] = {}
        # market -> (bids, asks), price -> size
        self._books: Dict[str, Tuple[Dict[float, float], Dict[float, float]]] = {}

    @property
    def market_clients(self) -> Dict[str, WebsocketClient]:
        return dict(self._market_clients)

    async def connect(self) -> None:
        """Market sockets open per symbol on subscribe."""
        self.logger.info("Extended provider ready (connects per market)")

    def is_connected(self) -> bool:
        return any(client.is_connected for client in self._market_clients.values())

    def market_url(self, symbol: str) -> str:
        return f"{self.ws_url.rstrip('/')}/orderbooks/{symbol}?depth={self.settings.orderbook_depth}"

    # Streams

    async def _subscribe_streams(self, symbol: str, data_types: FrozenSet[DataType]) -> None:
        if DataType.ORDERBOOK not in data_types or symbol in self._market_clients:
            return

        async def handle(raw_message: Any) -> None:
            await self._handle_message(symbol, raw_message)

        client = self._create_ws_client(
            self.market_url(symbol),
            handle,
            symbol=symbol,
            headers={"User-Agent": self.settings.user_agent},
        )
        self._market_clients[symbol] = client
        if await client.connect():
            self.logger.info("Connected to orderbook stream", symbol=symbol)

    async def _unsubscribe_streams(self, symbol: str, data_types: FrozenSet[DataType]) -> None:
        self._books.pop(symbol, None)
        client = self._market_clients.pop(symbol, None)
        if client is not None:
            await client.disconnect()

    async def _close_streams(self) -> None:
        clients = list(self._market_clients.values())
        self._market_clients.clear()
        self._books.clear()
        for client in clients:
            await client.disconnect()

    # Messages

    async def _handle_message(self, symbol: str, raw_message: Any) -> None:
        if isinstance(raw_message, bytes):
            raw_message = raw_message.decode("utf-8", errors="replace")

        if is_text_ping(raw_message):
            client = self._market_clients.get(symbol)
            if client is not None and client.is_connected:
                await client.send_text(make_pong(raw_message))
            return

        try:
            message = msgspec.json.decode(raw_message)
            self._handle_orderbook(self._parse_orderbook(message))
        except msgspec.DecodeError as e:
            self.logger.warning(f"Dropping malformed message: {e}", symbol=symbol, payload=raw_message[:100])
        except MessageParseError as e:
            self.logger.warning(f"Dropping message: {e.message}", symbol=symbol, payload=raw_message[:100])

    def _parse_orderbook(self, message: Any) -> ExtendedOrderbookMessage:
        if not isinstance(message, dict) or not isinstance(message.get("data"), dict):
            raise MessageParseError("Unrecognized message format", self.name)
        data = message["data"]
        if "b" not in data or "a" not in data:
            raise MessageParseError("Orderbook message without bids/asks", self.name)
        try:
            return msgspec.convert(message, type=ExtendedOrderbookMessage, strict=False)
        except msgspec.ValidationError as e:
            raise MessageParseError(f"Invalid orderbook message: {e}", self.name) from e

    @staticmethod
    def _apply_levels(side: Dict[float, float], levels: List[ExtendedLevel]) -> None:
        for level in levels:
            if level.q == 0:
                side.pop(level.p, None)
            else:
                side[level.p] = level.q

    def _book_for(self, message: ExtendedOrderbookMessage) -> Tuple[Dict[float, float], Dict[float, float]]:
        market = message.data.m
        if message.type is None or message.type == SNAPSHOT_TYPE:
            book = ({}, {})
            self._books[market] = book
            return book
        if message.type not in UPDATE_TYPES:
            raise MessageParseError(f"Unknown orderbook message type {message.type!r}", self.name, market)
        book = self._books.get(market)
        if book is None:
            raise MessageParseError("Orderbook update received before snapshot", self.name, market)
        return book

    def _handle_orderbook(self, message: ExtendedOrderbookMessage) -> None:
        """
        Snapshots replace the local book of the market, updates are applied
        level by level (size 0 removes the level). The full book is published
        after every frame.
        """
        data = message.data
        bid_side, ask_side = self._book_for(message)
        self._apply_levels(bid_side, data.b)
        self._apply_levels(ask_side, data.a)

        bids = [OrderBookEntry(price=price, size=size) for price, size in sorted(bid_side.items(), reverse=True)]
        asks = [OrderBookEntry(price=price, size=size) for price, size in sorted(ask_side.items())]
        self._publish_orderbook(
            data.m,
            best_bid=bids[0].price if bids else 0.0,
            best_ask=asks[0].price if asks else 0.0,
            timestamp=message.ts / 1000 if message.ts else time.time(),
            bids=bids,
            asks=asks,
        )

    # Funding

    async def _fetch_funding_rate(self, symbol: str) -> float:
        response = await self._rest_client.get("/api/v1/info/markets", params={"market": symbol})
        try:
            markets = msgspec.convert(response, type=ExtendedMarketsResponse, strict=False)
        except msgspec.ValidationError as e:
            raise RestFetchError(f"Invalid markets response: {e}", self.name, symbol) from e

        if markets.status != "OK":
            raise RestFetchError(f"Markets endpoint returned status {markets.status!r}", self.name, symbol)

        market = next((m for m in markets.data if m.name == symbol), None)
        if market is None or market.marketStats is None:
            raise RestFetchError(f"{symbol} not found in markets response", self.name, symbol)
        return market.marketStats.fundingRate
