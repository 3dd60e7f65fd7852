"""
Test data builders for market data events.
"""

from exchanges.structs.common import (
    FundingEvent,
    FundingSnapshot,
    OrderbookEvent,
    OrderbookSnapshot,
)
from utils.math_utils import annualize_funding_rate


def orderbook_event(provider: str, symbol: str, bid: float, ask: float, timestamp: float = 1.0) -> OrderbookEvent:
    return OrderbookEvent(
        provider=provider,
        snapshot=OrderbookSnapshot(symbol=symbol, best_bid=bid, best_ask=ask, timestamp=timestamp),
    )


def funding_event(provider: str, symbol: str, rate: float, timestamp: float = 1.0) -> FundingEvent:
    return FundingEvent(
        provider=provider,
        snapshot=FundingSnapshot(
            symbol=symbol,
            funding_rate=rate,
            apy=annualize_funding_rate(rate),
            next_funding_minutes=13,
            next_funding_seconds=0,
            timestamp=timestamp,
        ),
    )
