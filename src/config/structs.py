from typing import Dict, FrozenSet, List, Optional

from msgspec import Struct, field

from exchanges.structs.enums import DataType
from exchanges.structs.types import FeeSchedule
from infrastructure.logging.structs import LoggingConfig


class WebSocketConfig(Struct, frozen=True):
    """
    WebSocket connection settings for one endpoint.

    Attributes:
        url: WebSocket URL
        headers: Extra handshake headers (e.g. User-Agent)
        connect_timeout: Handshake timeout in seconds
        ping_interval: Protocol ping interval in seconds (None disables client pings)
        ping_timeout: Protocol pong timeout in seconds
        close_timeout: Connection close timeout in seconds
        reconnect_delay: Delay before reconnecting after a failure or unexpected close
        preemptive_reconnect_interval: Close and reopen the socket after this
            many seconds of lifetime (None disables)
        max_message_size: Maximum message size in bytes
    """
    url: str = ""
    headers: Dict[str, str] = {}
    connect_timeout: float = 10.0
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 10.0
    close_timeout: float = 5.0
    reconnect_delay: float = 5.0
    preemptive_reconnect_interval: Optional[float] = None
    max_message_size: int = 1048576  # 1MB

    def validate(self) -> None:
        if not self.url.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URL: {self.url!r}")
        if self.reconnect_delay < 0:
            raise ValueError("reconnect_delay cannot be negative")
        if self.preemptive_reconnect_interval is not None and self.preemptive_reconnect_interval <= 0:
            raise ValueError("preemptive_reconnect_interval must be positive")


class RestConfig(Struct, frozen=True):
    """
    REST client settings.

    Attributes:
        timeout: Total request timeout in seconds
        max_retries: Retries on connection errors and rate limits
        retry_delay: Base delay for exponential backoff
        max_concurrent: Concurrent request limit per client
        user_agent: User-Agent header value
    """
    timeout: float = 10.0
    max_retries: int = 2
    retry_delay: float = 1.0
    max_concurrent: int = 10
    user_agent: str = "DPECTB-Bot/1.0"


class ProviderSettings(Struct, frozen=True):
    """
    Per-provider transport settings. Unset values fall back to provider defaults.

    Attributes:
        ws_url: WebSocket base URL
        rest_url: REST base URL
        reconnect_delay: Reconnect delay in seconds
        preemptive_reconnect_interval: Socket lifetime before a planned reconnect (0 disables)
        orderbook_channel: Orderbook stream type for providers offering several ("bbo", "l2Book")
        orderbook_depth: Depth requested from per-market orderbook streams
        stream_funding: Also consume streamed funding updates where supported
        user_agent: User-Agent for WebSocket and REST requests
        request_timeout: REST timeout in seconds
    """
    ws_url: Optional[str] = None
    rest_url: Optional[str] = None
    reconnect_delay: float = 5.0
    preemptive_reconnect_interval: Optional[float] = None
    orderbook_channel: str = "bbo"
    orderbook_depth: int = 1
    stream_funding: bool = False
    user_agent: str = "DPECTB-Bot/1.0"
    request_timeout: float = 10.0


class ProviderConfig(Struct, frozen=True):
    """
    Configuration of one market data provider.

    Attributes:
        name: Provider name ("hyperliquid", "extended")
        enabled: Whether the provider is started
        symbols: Native symbol spellings to subscribe, in order
        data_types: Data kinds to subscribe for every symbol
        fees: (maker_pct, taker_pct)
        settings: Transport settings
    """
    name: str
    enabled: bool = True
    symbols: List[str] = []
    data_types: FrozenSet[DataType] = frozenset({DataType.ORDERBOOK, DataType.FUNDING})
    fees: FeeSchedule = (0.0, 0.0)
    settings: ProviderSettings = field(default_factory=ProviderSettings)

    @property
    def maker_fee(self) -> float:
        return self.fees[0]

    @property
    def taker_fee(self) -> float:
        return self.fees[1]


class ArbitrageConfig(Struct, frozen=True):
    """
    Arbitrage scanner settings.

    Attributes:
        scan_interval: Seconds between scans
        min_price_profit: Minimum fee adjusted price profit (absolute quote units)
        min_funding_apy_diff: Minimum annualized funding differential in percent
        status_interval: Seconds between market data summary logs (0 disables)
    """
    scan_interval: float = 5.0
    min_price_profit: float = 0.0001
    min_funding_apy_diff: float = 5.0
    status_interval: float = 10.0

    def validate(self) -> None:
        if self.scan_interval <= 0:
            raise ValueError("scan_interval must be positive")
        if self.min_price_profit < 0:
            raise ValueError("min_price_profit cannot be negative")
        if self.min_funding_apy_diff < 0:
            raise ValueError("min_funding_apy_diff cannot be negative")
        if self.status_interval < 0:
            raise ValueError("status_interval cannot be negative")


class ScannerConfig(Struct, frozen=True):
    """
    Complete application configuration.

    Attributes:
        environment: Environment name (dev, prod, test)
        logging: Logging backends
        arbitrage: Scanner thresholds and intervals
        providers: Provider name -> provider configuration, in file order
        symbols: Extra canonical symbol -> spelling variants
        provider_symbols: Extra provider -> (canonical -> native) mappings
    """
    environment: str = "dev"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    arbitrage: ArbitrageConfig = field(default_factory=ArbitrageConfig)
    providers: Dict[str, ProviderConfig] = {}
    symbols: Dict[str, List[str]] = {}
    provider_symbols: Dict[str, Dict[str, str]] = {}

    def get_provider_config(self, name: str) -> Optional[ProviderConfig]:
        return self.providers.get(name)

    @property
    def enabled_providers(self) -> List[ProviderConfig]:
        return [provider for provider in self.providers.values() if provider.enabled]
