"""
Hyperliquid Market Data Provider

Single shared WebSocket (wss://api.hyperliquid.xyz/ws) carrying every
subscription, plus the /info REST endpoint for funding.

Channels:
- bbo: top of book (default orderbook channel)
- l2Book: full depth
- activeAssetCtx: streamed funding, enabled with settings.stream_funding

Subscriptions are re-sent after every (re)connect.
"""

import time
from typing import Any, Dict, FrozenSet, List, Optional

import msgspec

from exchanges.interfaces.data_provider import BaseDataProvider
from exchanges.structs.common import OrderBookEntry
from exchanges.structs.enums import DataType, ProviderEnum
from infrastructure.exceptions.exchange import MessageParseError, RestFetchError
from infrastructure.exceptions.system import ConfigurationError
from infrastructure.networking.websocket import ConnectionState
from .structs import (
    HyperliquidActiveAssetCtx,
    HyperliquidAssetCtx,
    HyperliquidBbo,
    HyperliquidL2Book,
    HyperliquidLevel,
    HyperliquidMeta,
)

BBO_CHANNEL = "bbo"
L2_BOOK_CHANNEL = "l2Book"
ASSET_CTX_CHANNEL = "activeAssetCtx"
ORDERBOOK_CHANNELS = (BBO_CHANNEL, L2_BOOK_CHANNEL)
SILENT_CHANNELS = frozenset({"subscriptionResponse", "pong"})


class HyperliquidProvider(BaseDataProvider):
    """Hyperliquid perpetuals market data."""

    PROVIDER_NAME = ProviderEnum.HYPERLIQUID.value
    DEFAULT_WS_URL = "wss://api.hyperliquid.xyz/ws"
    DEFAULT_REST_URL = "https://api.hyperliquid.xyz"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.orderbook_channel = self.settings.orderbook_channel
        if self.orderbook_channel not in ORDERBOOK_CHANNELS:
            raise ConfigurationError(
                f"Unsupported Hyperliquid orderbook channel: {self.orderbook_channel}",
                "providers.hyperliquid.settings.orderbook_channel"
            )
        self._ws = self._create_ws_client(
            self.ws_url,
            self._handle_message,
            connection_handler=self._on_connection_state,
        )

    @property
    def ws_client(self):
        return self._ws

    async def connect(self) -> None:
        await self._ws.connect()

    def is_connected(self) -> bool:
        return self._ws.is_connected

    # Subscriptions

    def _channels_for(self, data_types: FrozenSet[DataType]) -> List[str]:
        channels = []
        if DataType.ORDERBOOK in data_types:
            channels.append(self.orderbook_channel)
        if DataType.FUNDING in data_types and self.settings.stream_funding:
            channels.append(ASSET_CTX_CHANNEL)
        return channels

    @staticmethod
    def _subscription_message(method: str, channel: str, coin: str) -> Dict[str, Any]:
        return {"method": method, "subscription": {"type": channel, "coin": coin}}

    async def _send_subscriptions(self, method: str, symbol: str, data_types: FrozenSet[DataType]) -> None:
        for channel in self._channels_for(data_types):
            await self._ws.send_message(self._subscription_message(method, channel, symbol))
            self.logger.debug(f"Sent {method} request", symbol=symbol, channel=channel)

    async def _subscribe_streams(self, symbol: str, data_types: FrozenSet[DataType]) -> None:
        if not self._channels_for(data_types):
            return
        if not self._ws.is_connected:
            self.logger.warning("WebSocket not connected, subscription deferred to next connect", symbol=symbol)
            return
        await self._send_subscriptions("subscribe", symbol, data_types)

    async def _unsubscribe_streams(self, symbol: str, data_types: FrozenSet[DataType]) -> None:
        if self._ws.is_connected:
            await self._send_subscriptions("unsubscribe", symbol, data_types)

    async def _close_streams(self) -> None:
        await self._ws.disconnect()

    async def _on_connection_state(self, state: ConnectionState) -> None:
        if state != ConnectionState.CONNECTED:
            return
        for symbol, data_types in list(self._subscriptions.items()):
            await self._send_subscriptions("subscribe", symbol, data_types)

    # Messages

    async def _handle_message(self, raw_message: Any) -> None:
        try:
            message = msgspec.json.decode(raw_message)
        except msgspec.DecodeError as e:
            self.logger.warning(f"Dropping malformed message: {e}", payload=str(raw_message)[:100])
            return

        try:
            self._dispatch(message)
        except MessageParseError as e:
            self.logger.warning(f"Dropping message: {e.message}", payload=str(raw_message)[:100])

    def _dispatch(self, message: Any) -> None:
        if not isinstance(message, dict):
            raise MessageParseError("Message is not an object", self.name)
        if message.get("channel") in SILENT_CHANNELS:
            return

        data = message.get("data")
        if not isinstance(data, dict):
            raise MessageParseError(f"Unrecognized message on channel {message.get('channel')!r}", self.name)

        if "levels" in data:
            self._handle_l2_book(self._convert(data, HyperliquidL2Book))
        elif "bbo" in data:
            self._handle_bbo(self._convert(data, HyperliquidBbo))
        elif "ctx" in data:
            self._handle_asset_ctx(self._convert(data, HyperliquidActiveAssetCtx))
        else:
            raise MessageParseError(f"Unrecognized data on channel {message.get('channel')!r}", self.name)

    def _convert(self, data: Dict[str, Any], struct_type):
        try:
            return msgspec.convert(data, type=struct_type, strict=False)
        except msgspec.ValidationError as e:
            raise MessageParseError(f"Invalid {struct_type.__name__}: {e}", self.name) from e

    @staticmethod
    def _timestamp(time_ms: Optional[int]) -> float:
        return time_ms / 1000 if time_ms else time.time()

    @staticmethod
    def _to_entries(levels: List[HyperliquidLevel]) -> List[OrderBookEntry]:
        return [OrderBookEntry(price=level.px, size=level.sz, order_count=level.n) for level in levels]

    def _handle_bbo(self, data: HyperliquidBbo) -> None:
        if len(data.bbo) != 2:
            raise MessageParseError(f"bbo must hold [bid, ask], got {len(data.bbo)} levels", self.name, data.coin)
        bid, ask = data.bbo
        self._publish_orderbook(
            data.coin,
            best_bid=bid.px if bid else 0.0,
            best_ask=ask.px if ask else 0.0,
            timestamp=self._timestamp(data.time),
        )

    def _handle_l2_book(self, data: HyperliquidL2Book) -> None:
        if len(data.levels) != 2:
            raise MessageParseError(f"levels must hold [bids, asks], got {len(data.levels)} sides",
                                    self.name, data.coin)
        bids, asks = (self._to_entries(side) for side in data.levels)
        self._publish_orderbook(
            data.coin,
            best_bid=bids[0].price if bids else 0.0,
            best_ask=asks[0].price if asks else 0.0,
            timestamp=self._timestamp(data.time),
            bids=bids,
            asks=asks,
        )

    def _handle_asset_ctx(self, data: HyperliquidActiveAssetCtx) -> None:
        if DataType.FUNDING not in self._subscriptions.get(data.coin, ()):
            return
        self._publish_funding(data.coin, data.ctx.funding)

    # Funding

    async def _fetch_funding_rate(self, symbol: str) -> float:
        response = await self._rest_client.post("/info", json_data={"type": "metaAndAssetCtxs"})
        if not isinstance(response, list) or len(response) < 2 or not isinstance(response[1], list):
            raise RestFetchError("metaAndAssetCtxs response is not [meta, assetCtxs]", self.name, symbol)

        try:
            meta = msgspec.convert(response[0], type=HyperliquidMeta)
        except msgspec.ValidationError as e:
            raise RestFetchError(f"Invalid universe metadata: {e}", self.name, symbol) from e

        index = next((i for i, asset in enumerate(meta.universe) if asset.name == symbol), None)
        if index is None or index >= len(response[1]):
            raise RestFetchError(f"{symbol} not found in metaAndAssetCtxs", self.name, symbol)

        try:
            ctx = msgspec.convert(response[1][index], type=HyperliquidAssetCtx, strict=False)
        except msgspec.ValidationError as e:
            raise RestFetchError(f"Invalid asset context for {symbol}: {e}", self.name, symbol) from e
        return ctx.funding
