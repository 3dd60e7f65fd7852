"""
Market Data Provider Interface

One capability interface for every exchange: connect, disconnect, subscribe,
unsubscribe, is_connected and name. Each exchange is a concrete subclass of
BaseDataProvider selected by name at registration time.

BaseDataProvider carries the behaviour shared by all exchanges:
- Subscription registry keyed by native symbol
- Hour-aligned funding polling with a per-symbol funding cache
- Symbol normalization before anything is published
- Orderbook publishing merged with the cached funding rate
- Timer ownership: every timer is scoped to (provider, symbol, purpose) and
  cancelled on unsubscribe/disconnect

Exchange subclasses implement the transport: stream setup and teardown,
message parsing and the funding REST call.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from config.structs import ProviderSettings, RestConfig, WebSocketConfig
from exchanges.services.symbol_mapper import SymbolMapper
from exchanges.structs.common import (
    FundingEvent,
    FundingSnapshot,
    OrderBookEntry,
    OrderbookEvent,
    OrderbookSnapshot,
)
from exchanges.structs.enums import DataType
from exchanges.structs.types import CanonicalSymbol, ProviderName
from infrastructure.exceptions.exchange import RestFetchError, SymbolResolutionError
from infrastructure.exceptions.system import ConfigurationError
from infrastructure.logging import LoggingTimer, get_exchange_logger
from infrastructure.networking.http import RestClient
from infrastructure.networking.websocket import WebsocketClient
from infrastructure.networking.websocket.ws_client import (
    ConnectMethod,
    ConnectionHandler,
    MessageHandler,
)
from market_data.data_bus import DataBus
from utils.task_utils import TimerKey, TimerManager, TimerPurpose
from utils.math_utils import annualize_funding_rate
from utils.time_utils import SECONDS_PER_HOUR, seconds_until_next_hour, time_until_next_hour

ConnectMethodFactory = Callable[[WebSocketConfig], ConnectMethod]


class DataProvider(ABC):
    """Capability interface implemented by every market data provider."""

    @property
    @abstractmethod
    def name(self) -> ProviderName:
        pass

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    async def subscribe(self, symbol: str, data_types: Iterable[DataType]) -> None:
        pass

    @abstractmethod
    async def unsubscribe(self, symbol: str) -> None:
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        pass


class BaseDataProvider(DataProvider):
    """
    Shared provider behaviour.

    Args:
        data_bus: Bus receiving normalized orderbook and funding events
        symbol_mapper: Resolves native symbols to canonical ones
        settings: Transport settings (provider defaults fill unset values)
        rest_client: Injected REST client (created from settings otherwise)
        connect_method_factory: Builds a socket opener per WebSocketConfig, for tests
        clock: Wall clock in epoch seconds
    """

    PROVIDER_NAME: ProviderName
    DEFAULT_WS_URL: str
    DEFAULT_REST_URL: str
    DEFAULT_PREEMPTIVE_RECONNECT_INTERVAL: Optional[float] = None
    FUNDING_POLL_INTERVAL: float = SECONDS_PER_HOUR

    def __init__(
        self,
        data_bus: DataBus,
        symbol_mapper: SymbolMapper,
        settings: Optional[ProviderSettings] = None,
        rest_client: Optional[RestClient] = None,
        connect_method_factory: Optional[ConnectMethodFactory] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or ProviderSettings()
        self.data_bus = data_bus
        self.symbol_mapper = symbol_mapper
        self.logger = get_exchange_logger(self.PROVIDER_NAME, 'provider')
        self.timers = TimerManager(self.PROVIDER_NAME, self.logger)

        self._clock = clock
        self._connect_method_factory = connect_method_factory
        self._subscriptions: Dict[str, FrozenSet[DataType]] = {}
        self._funding_cache: Dict[str, FundingSnapshot] = {}

        self.ws_url = self.settings.ws_url or self.DEFAULT_WS_URL
        self.rest_url = self.settings.rest_url or self.DEFAULT_REST_URL
        self._rest_client = rest_client or RestClient(
            self.rest_url,
            RestConfig(timeout=self.settings.request_timeout, user_agent=self.settings.user_agent),
        )

    @property
    def name(self) -> ProviderName:
        return self.PROVIDER_NAME

    @property
    def subscriptions(self) -> Dict[str, FrozenSet[DataType]]:
        return dict(self._subscriptions)

    def get_cached_funding(self, symbol: str) -> Optional[FundingSnapshot]:
        return self._funding_cache.get(symbol)

    @property
    def preemptive_reconnect_interval(self) -> Optional[float]:
        interval = self.settings.preemptive_reconnect_interval
        if interval is None:
            interval = self.DEFAULT_PREEMPTIVE_RECONNECT_INTERVAL
        return interval or None

    # Lifecycle

    async def subscribe(self, symbol: str, data_types: Iterable[DataType]) -> None:
        """
        Start streaming and/or funding polling for a native symbol.

        Raises:
            SymbolResolutionError: symbol has no canonical mapping
        """
        if self.symbol_mapper.normalize(symbol, self.name) is None:
            raise SymbolResolutionError(f"No canonical symbol for {symbol} on {self.name}", self.name, symbol)

        data_types = frozenset(data_types)
        self._subscriptions[symbol] = data_types
        self.logger.info("Subscribing", symbol=symbol, data_types=sorted(d.value for d in data_types))

        await self._subscribe_streams(symbol, data_types)

        if DataType.FUNDING in data_types:
            await self._start_funding_polling(symbol)

    async def unsubscribe(self, symbol: str) -> None:
        """Stop everything for symbol. No event for it is published afterwards."""
        data_types = self._subscriptions.pop(symbol, None)
        cancelled = self.timers.cancel_symbol(symbol)
        self._funding_cache.pop(symbol, None)
        if data_types is not None:
            await self._unsubscribe_streams(symbol, data_types)
        self.logger.info("Unsubscribed", symbol=symbol, cancelled_timers=cancelled)

    async def disconnect(self) -> None:
        """Cancel all timers, close every socket and the REST session."""
        self.timers.cancel_all()
        self._subscriptions.clear()
        self._funding_cache.clear()
        await self._close_streams()
        await self.timers.shutdown()
        await self._rest_client.close()
        self.logger.info("Disconnected")

    # Funding

    async def _start_funding_polling(self, symbol: str) -> None:
        await self.refresh_funding(symbol)
        if symbol not in self._subscriptions:
            return

        first_delay = seconds_until_next_hour(self._clock())
        self.timers.call_every(
            TimerKey(self.name, symbol, TimerPurpose.FUNDING),
            self.FUNDING_POLL_INTERVAL,
            lambda: self.refresh_funding(symbol),
            first_delay=first_delay,
        )
        self.logger.info("Funding polling started", symbol=symbol,
                         next_update_minutes=int(first_delay // 60))

    async def refresh_funding(self, symbol: str) -> Optional[FundingSnapshot]:
        """
        Fetch, cache and publish the funding rate for a native symbol.

        Failures are logged and the previously cached snapshot is kept.
        """
        try:
            with LoggingTimer(self.logger, "funding_fetch", symbol=symbol):
                funding_rate = await self._fetch_funding_rate(symbol)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = e if isinstance(e, RestFetchError) else RestFetchError(str(e), self.name, symbol)
            self.logger.error("Funding fetch failed", symbol=symbol,
                              error_type=type(e).__name__, error_message=error.message)
            return self._funding_cache.get(symbol)

        if DataType.FUNDING not in self._subscriptions.get(symbol, ()):
            self.logger.debug("Discarding funding for unsubscribed symbol", symbol=symbol)
            return None
        return self._publish_funding(symbol, funding_rate)

    def _publish_funding(self, symbol: str, funding_rate: float) -> Optional[FundingSnapshot]:
        canonical = self._normalize(symbol)
        if canonical is None:
            return None

        now = self._clock()
        minutes, seconds = time_until_next_hour(now)
        snapshot = FundingSnapshot(
            symbol=canonical,
            funding_rate=funding_rate,
            apy=annualize_funding_rate(funding_rate),
            next_funding_minutes=minutes,
            next_funding_seconds=seconds,
            timestamp=now,
        )
        self._funding_cache[symbol] = snapshot
        self.logger.info("Funding rate", symbol=symbol, funding_rate=funding_rate,
                         apy=round(snapshot.apy, 2))
        self.data_bus.publish_funding(FundingEvent(provider=self.name, snapshot=snapshot))
        return snapshot

    # Orderbook

    def _publish_orderbook(
        self,
        symbol: str,
        best_bid: float,
        best_ask: float,
        timestamp: float,
        bids: Optional[List[OrderBookEntry]] = None,
        asks: Optional[List[OrderBookEntry]] = None,
    ) -> Optional[OrderbookSnapshot]:
        if DataType.ORDERBOOK not in self._subscriptions.get(symbol, ()):
            return None
        canonical = self._normalize(symbol)
        if canonical is None:
            return None

        cached = self._funding_cache.get(symbol)
        snapshot = OrderbookSnapshot(
            symbol=canonical,
            best_bid=best_bid,
            best_ask=best_ask,
            timestamp=timestamp,
            bids=bids,
            asks=asks,
            funding_rate=cached.funding_rate if cached is not None else None,
        )
        self.data_bus.publish_orderbook(OrderbookEvent(provider=self.name, snapshot=snapshot))
        return snapshot

    def _normalize(self, symbol: str) -> Optional[CanonicalSymbol]:
        canonical = self.symbol_mapper.normalize(symbol, self.name)
        if canonical is None:
            error = SymbolResolutionError(f"Unmapped symbol {symbol!r}", self.name, symbol)
            self.logger.warning(error.message, symbol=symbol)
        return canonical

    # Transport helpers

    def _create_ws_client(
        self,
        url: str,
        message_handler: MessageHandler,
        symbol: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        connection_handler: Optional[ConnectionHandler] = None,
    ) -> WebsocketClient:
        config = WebSocketConfig(
            url=url,
            headers=headers or {},
            reconnect_delay=self.settings.reconnect_delay,
            preemptive_reconnect_interval=self.preemptive_reconnect_interval,
        )
        connect_method = self._connect_method_factory(config) if self._connect_method_factory else None
        try:
            return WebsocketClient(
                config,
                message_handler,
                self.timers,
                provider=self.name,
                symbol=symbol,
                connection_handler=connection_handler,
                connect_method=connect_method,
                logger=self.logger,
            )
        except ValueError as e:
            raise ConfigurationError(str(e), f"providers.{self.name}.settings") from e

    # Exchange specific

    @abstractmethod
    async def _subscribe_streams(self, symbol: str, data_types: FrozenSet[DataType]) -> None:
        """Open or request the streams carrying data_types for symbol."""

    @abstractmethod
    async def _unsubscribe_streams(self, symbol: str, data_types: FrozenSet[DataType]) -> None:
        """Tear down the streams of symbol."""

    @abstractmethod
    async def _close_streams(self) -> None:
        """Close every socket owned by the provider."""

    @abstractmethod
    async def _fetch_funding_rate(self, symbol: str) -> float:
        """
        Current funding rate of a native symbol.

        Raises:
            RestFetchError: request failed or the response has an unexpected shape
        """
