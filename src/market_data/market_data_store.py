"""
Market Data Store

Latest known orderbook and funding snapshot per (provider, canonical symbol).

Key Features:
- Fed exclusively by DataBus subscriptions registered at construction
- Last-write-wins per slot; orderbook and funding slots are independent
- Provider attribution taken from the event
- Discovery order preserved for providers and symbols
- Optional SymbolMapper guard rejecting non-canonical symbols
"""

import time
from typing import Any, Callable, Dict, List, Optional

from exchanges.services.symbol_mapper import SymbolMapper
from exchanges.structs.common import (
    FundingEvent,
    FundingSnapshot,
    OrderbookEvent,
    OrderbookSnapshot,
    StoredMarketData,
)
from exchanges.structs.types import CanonicalSymbol, ProviderName
from infrastructure.logging import get_logger
from market_data.data_bus import DataBus


class MarketDataStore:
    """
    Two-level store: provider -> (canonical symbol -> StoredMarketData).

    Args:
        data_bus: Bus to subscribe to
        symbol_mapper: When given, updates for non-canonical symbols are dropped
        clock: Wall clock in epoch seconds
    """

    def __init__(self,
                 data_bus: DataBus,
                 symbol_mapper: Optional[SymbolMapper] = None,
                 clock: Callable[[], float] = time.time):
        self._data: Dict[ProviderName, Dict[CanonicalSymbol, StoredMarketData]] = {}
        self._symbols: Dict[CanonicalSymbol, None] = {}
        self._symbol_mapper = symbol_mapper
        self._clock = clock
        self.logger = get_logger('market_data.store')

        self._unsubscribers = [
            data_bus.on_orderbook(self._on_orderbook),
            data_bus.on_funding(self._on_funding),
        ]

    def _on_orderbook(self, event: OrderbookEvent) -> None:
        entry = self._get_or_create(event.provider, event.snapshot.symbol)
        if entry is not None:
            entry.orderbook = event.snapshot
            entry.last_updated = self._clock()

    def _on_funding(self, event: FundingEvent) -> None:
        entry = self._get_or_create(event.provider, event.snapshot.symbol)
        if entry is not None:
            entry.funding = event.snapshot
            entry.last_updated = self._clock()

    def _get_or_create(self, provider: ProviderName, symbol: CanonicalSymbol) -> Optional[StoredMarketData]:
        if self._symbol_mapper is not None and not self._symbol_mapper.is_canonical(symbol):
            self.logger.warning("Dropping update for unmapped symbol", exchange=provider, symbol=symbol)
            return None

        symbols = self._data.setdefault(provider, {})
        entry = symbols.get(symbol)
        if entry is None:
            entry = StoredMarketData()
            symbols[symbol] = entry
            self._symbols.setdefault(symbol, None)
            self.logger.debug("New market data entry", exchange=provider, symbol=symbol)
        return entry

    def get_entry(self, provider: str, symbol: str) -> Optional[StoredMarketData]:
        return self._data.get(provider, {}).get(symbol)

    def get_orderbook_data(self, symbol: str, provider: Optional[str] = None) -> Dict[ProviderName, OrderbookSnapshot]:
        """Orderbooks for symbol by provider, optionally limited to one provider."""
        return {
            name: entry.orderbook
            for name, entry in self.get_all_data(symbol).items()
            if entry.orderbook is not None and (provider is None or name == provider)
        }

    def get_funding_data(self, symbol: str, provider: Optional[str] = None) -> Dict[ProviderName, FundingSnapshot]:
        """Funding snapshots for symbol by provider, optionally limited to one provider."""
        return {
            name: entry.funding
            for name, entry in self.get_all_data(symbol).items()
            if entry.funding is not None and (provider is None or name == provider)
        }

    def get_all_data(self, symbol: str) -> Dict[ProviderName, StoredMarketData]:
        """Every provider holding data for symbol, in provider discovery order."""
        return {
            provider: symbols[symbol]
            for provider, symbols in self._data.items()
            if symbol in symbols
        }

    def get_providers(self) -> List[ProviderName]:
        return list(self._data)

    def get_symbols(self) -> List[CanonicalSymbol]:
        return list(self._symbols)

    def clear(self) -> None:
        self._data.clear()
        self._symbols.clear()

    def close(self) -> None:
        """Detach from the data bus."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def get_summary(self) -> Dict[str, Any]:
        """Snapshot of store contents for status reporting."""
        entries = []
        for provider, symbols in self._data.items():
            for symbol, entry in symbols.items():
                item: Dict[str, Any] = {"provider": provider, "symbol": symbol,
                                        "last_updated": entry.last_updated}
                if entry.orderbook is not None:
                    item["best_bid"] = entry.orderbook.best_bid
                    item["best_ask"] = entry.orderbook.best_ask
                    item["spread_pct"] = round(entry.orderbook.spread_percentage, 6)
                if entry.funding is not None:
                    item["funding_rate"] = entry.funding.funding_rate
                    item["funding_apy"] = round(entry.funding.apy, 4)
                entries.append(item)
        return {
            "providers": len(self._data),
            "symbols": len(self._symbols),
            "entries": entries,
        }
