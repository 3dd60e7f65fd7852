"""
Market data aggregation: data bus and latest-value store.

ProviderManager lives in market_data.provider_manager; it depends on the
provider interfaces, which in turn depend on the data bus.
"""

from .data_bus import Channel, DataBus
from .market_data_store import MarketDataStore

__all__ = [
    'Channel',
    'DataBus',
    'MarketDataStore',
]
