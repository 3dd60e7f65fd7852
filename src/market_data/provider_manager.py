"""
Provider Manager

Owns the data bus, the market data store and the registered providers.

- start_all(): connect and subscribe every enabled provider; a missing or
  failing provider is logged and skipped
- stop_all(): disconnect every registered provider, continuing through failures
"""

from typing import Dict, List, Mapping, Optional

from config.structs import ProviderConfig
from exchanges.interfaces.data_provider import DataProvider
from exchanges.services.symbol_mapper import SymbolMapper
from infrastructure.exceptions.system import ConfigurationError
from infrastructure.logging import LoggingTimer, get_logger
from market_data.data_bus import DataBus
from market_data.market_data_store import MarketDataStore


class ProviderManager:
    """
    Registry and lifecycle of market data providers.

    Args:
        provider_configs: Provider name -> configuration
        data_bus: Shared bus (created when omitted)
        store: Store fed by the bus (created when omitted)
        symbol_mapper: Mapper used to guard the store when it is created here
    """

    def __init__(self,
                 provider_configs: Mapping[str, ProviderConfig],
                 data_bus: Optional[DataBus] = None,
                 store: Optional[MarketDataStore] = None,
                 symbol_mapper: Optional[SymbolMapper] = None):
        self.provider_configs: Dict[str, ProviderConfig] = dict(provider_configs)
        self.data_bus = data_bus or DataBus()
        self.store = store or MarketDataStore(self.data_bus, symbol_mapper)
        self._providers: Dict[str, DataProvider] = {}
        self._started: List[str] = []
        self.logger = get_logger('market_data.provider_manager')

    def register_provider(self, provider: DataProvider) -> None:
        if provider.name in self._providers:
            self.logger.warning("Replacing registered provider", exchange=provider.name)
        self._providers[provider.name] = provider
        self.logger.debug("Registered provider", exchange=provider.name)

    def get_provider(self, name: str) -> Optional[DataProvider]:
        return self._providers.get(name)

    @property
    def providers(self) -> Dict[str, DataProvider]:
        return dict(self._providers)

    @property
    def started_providers(self) -> List[str]:
        return list(self._started)

    async def start_all(self) -> List[str]:
        """
        Start every enabled provider.

        Returns:
            Names of providers that connected and subscribed every symbol
        """
        self._started = []
        for name, config in self.provider_configs.items():
            if not config.enabled:
                self.logger.info("Provider disabled, skipping", exchange=name)
                continue

            provider = self._providers.get(name)
            if provider is None:
                error = ConfigurationError(f"Provider '{name}' is configured but not registered", f"providers.{name}")
                self.logger.error(str(error), exchange=name)
                continue

            if await self._start_provider(provider, config):
                self._started.append(name)

        self.logger.info("Providers started", started=self._started)
        return list(self._started)

    async def _start_provider(self, provider: DataProvider, config: ProviderConfig) -> bool:
        try:
            with LoggingTimer(self.logger, "provider_connect", exchange=provider.name):
                await provider.connect()
        except Exception as e:
            self.logger.error("Provider connect failed", exchange=provider.name,
                              error_type=type(e).__name__, error_message=str(e))
            return False

        all_subscribed = True
        for symbol in config.symbols:
            try:
                await provider.subscribe(symbol, config.data_types)
            except Exception as e:
                all_subscribed = False
                self.logger.error("Subscribe failed", exchange=provider.name, symbol=symbol,
                                  error_type=type(e).__name__, error_message=str(e))
        return all_subscribed

    async def stop_all(self) -> None:
        """Disconnect every registered provider."""
        for name, provider in self._providers.items():
            try:
                await provider.disconnect()
            except Exception as e:
                self.logger.error("Provider disconnect failed", exchange=name,
                                  error_type=type(e).__name__, error_message=str(e))
        self._started = []
        self.logger.info("All providers stopped")
