"""
Common market data structures shared by providers, the data bus, the store
and the arbitrage engine.

All structures use msgspec.Struct. Snapshots and events are frozen; only the
store's per (provider, symbol) entry is mutable.

Design Principles:
- One canonical orderbook shape; exchange specific payloads are adapted by
  each provider before publishing
- Symbols on snapshots are always canonical
- Provider identity travels on the event, never derived from the symbol
"""

from msgspec import Struct
from typing import List, Optional

from .types import CanonicalSymbol, ProviderName


class OrderBookEntry(Struct, frozen=True):
    """Individual orderbook level."""
    price: float
    size: float
    order_count: Optional[int] = None


class OrderbookSnapshot(Struct, frozen=True):
    """
    Canonical top-of-book with optional depth.

    funding_rate carries the provider's cached funding rate at the time the
    book update was produced, if one was available.
    """
    symbol: CanonicalSymbol
    best_bid: float
    best_ask: float
    timestamp: float
    bids: Optional[List[OrderBookEntry]] = None
    asks: Optional[List[OrderBookEntry]] = None
    funding_rate: Optional[float] = None

    @property
    def spread(self) -> float:
        return self.best_ask - self.best_bid

    @property
    def mid_price(self) -> float:
        return (self.best_bid + self.best_ask) / 2

    @property
    def spread_percentage(self) -> float:
        if self.best_bid <= 0:
            return 0.0
        return self.spread / self.best_bid * 100


class FundingSnapshot(Struct, frozen=True):
    """Funding rate with its annualized form and time to the next payment."""
    symbol: CanonicalSymbol
    funding_rate: float
    apy: float
    next_funding_minutes: int
    next_funding_seconds: int
    timestamp: float


class OrderbookEvent(Struct, frozen=True):
    provider: ProviderName
    snapshot: OrderbookSnapshot


class FundingEvent(Struct, frozen=True):
    provider: ProviderName
    snapshot: FundingSnapshot


class StoredMarketData(Struct):
    """Latest known market data for one (provider, symbol) pair."""
    orderbook: Optional[OrderbookSnapshot] = None
    funding: Optional[FundingSnapshot] = None
    last_updated: float = 0.0
