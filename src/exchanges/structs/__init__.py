from .common import (
    OrderBookEntry,
    OrderbookSnapshot,
    FundingSnapshot,
    OrderbookEvent,
    FundingEvent,
    StoredMarketData,
)
from .enums import ProviderEnum, DataType, OpportunityKind
from .types import CanonicalSymbol, ProviderName, FeeSchedule

__all__ = [
    "OrderBookEntry",
    "OrderbookSnapshot",
    "FundingSnapshot",
    "OrderbookEvent",
    "FundingEvent",
    "StoredMarketData",
    "ProviderEnum",
    "DataType",
    "OpportunityKind",
    "CanonicalSymbol",
    "ProviderName",
    "FeeSchedule",
]
