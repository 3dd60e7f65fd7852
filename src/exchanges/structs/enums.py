from enum import Enum

from .types import ProviderName


class ProviderEnum(Enum):
    """
    Supported market data providers.

    Values are the provider names used in configuration, in the symbol
    mapping table and on every published event.
    """
    HYPERLIQUID = ProviderName("hyperliquid")
    EXTENDED = ProviderName("extended")


class DataType(Enum):
    """Market data kinds a provider can be subscribed to."""
    ORDERBOOK = "orderbook"
    FUNDING = "funding"


class OpportunityKind(Enum):
    PRICE = "price"
    FUNDING = "funding"
