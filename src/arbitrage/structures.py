"""
Arbitrage opportunity records.

Opportunities form a tagged union (PriceOpportunity | FundingOpportunity)
sharing kind, symbol, provider_a, provider_b and magnitude. Records are
frozen and produced fresh on every scan.
"""

from typing import List, Union

from msgspec import Struct

from exchanges.structs.enums import OpportunityKind
from exchanges.structs.types import CanonicalSymbol, ProviderName


class PriceOpportunity(Struct, frozen=True, tag="price"):
    """
    Buy on one provider at its ask, sell on another at its bid.

    profit is fee adjusted using both legs' taker fees, in quote units.
    """
    symbol: CanonicalSymbol
    provider_a: ProviderName
    provider_b: ProviderName
    buy_provider: ProviderName
    sell_provider: ProviderName
    buy_price: float
    sell_price: float
    profit: float

    @property
    def kind(self) -> OpportunityKind:
        return OpportunityKind.PRICE

    @property
    def magnitude(self) -> float:
        return self.profit

    def __str__(self) -> str:
        return (f"PRICE {self.symbol}: buy {self.buy_provider} @ {self.buy_price} -> "
                f"sell {self.sell_provider} @ {self.sell_price}, profit {self.profit:.6f}")


class FundingOpportunity(Struct, frozen=True, tag="funding"):
    """Long the higher funding rate leg, short the lower one."""
    symbol: CanonicalSymbol
    provider_a: ProviderName
    provider_b: ProviderName
    long_provider: ProviderName
    short_provider: ProviderName
    long_rate: float
    short_rate: float
    rate_difference: float
    annualized_difference_pct: float

    @property
    def kind(self) -> OpportunityKind:
        return OpportunityKind.FUNDING

    @property
    def magnitude(self) -> float:
        return self.annualized_difference_pct

    def __str__(self) -> str:
        return (f"FUNDING {self.symbol}: long {self.long_provider} ({self.long_rate}) / "
                f"short {self.short_provider} ({self.short_rate}), "
                f"{self.annualized_difference_pct:.2f}% annualized")


Opportunity = Union[PriceOpportunity, FundingOpportunity]
OpportunityList = List[Opportunity]
