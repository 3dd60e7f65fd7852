"""
Pure arbitrage calculations.

Price profit uses taker fees for both legs; maker fees are ignored so the
estimate stays conservative. Funding differentials are computed with
Decimal to avoid float noise around the threshold.
"""

from decimal import Decimal
from typing import List, Optional

from exchanges.structs.common import OrderbookSnapshot
from exchanges.structs.types import CanonicalSymbol, ProviderName
from utils.math_utils import HOURS_PER_YEAR, annualize_funding_rate

from .structures import FundingOpportunity, PriceOpportunity

__all__ = [
    'annualize_funding_rate',
    'annualize_rate_difference',
    'calculate_price_profit',
    'find_funding_opportunity',
    'find_price_opportunities',
]

_HUNDRED = Decimal(100)


def calculate_price_profit(buy_price: float, sell_price: float,
                           buy_taker_fee: float, sell_taker_fee: float) -> float:
    """
    Fee adjusted profit of buying at buy_price and selling at sell_price.

    Fees are percentages: 0.02 means 0.02%.
    """
    return (sell_price - sell_price * sell_taker_fee / 100
            - buy_price - buy_price * buy_taker_fee / 100)


def find_price_opportunities(symbol: CanonicalSymbol,
                             provider_a: ProviderName, book_a: OrderbookSnapshot, taker_fee_a: float,
                             provider_b: ProviderName, book_b: OrderbookSnapshot, taker_fee_b: float,
                             min_profit: float) -> List[PriceOpportunity]:
    """
    Evaluate both directions (buy A sell B, buy B sell A) and return the profitable ones.

    A direction with an empty side (price 0) is skipped.
    """
    legs = (
        (provider_a, book_a, taker_fee_a, provider_b, book_b, taker_fee_b),
        (provider_b, book_b, taker_fee_b, provider_a, book_a, taker_fee_a),
    )

    opportunities = []
    for buy_provider, buy_book, buy_fee, sell_provider, sell_book, sell_fee in legs:
        if buy_book.best_ask <= 0 or sell_book.best_bid <= 0:
            continue
        profit = calculate_price_profit(buy_book.best_ask, sell_book.best_bid, buy_fee, sell_fee)
        if profit >= min_profit:
            opportunities.append(PriceOpportunity(
                symbol=symbol,
                provider_a=provider_a,
                provider_b=provider_b,
                buy_provider=buy_provider,
                sell_provider=sell_provider,
                buy_price=buy_book.best_ask,
                sell_price=sell_book.best_bid,
                profit=profit,
            ))
    return opportunities


def annualize_rate_difference(rate_difference: Decimal) -> Decimal:
    return abs(rate_difference) * HOURS_PER_YEAR * _HUNDRED


def find_funding_opportunity(symbol: CanonicalSymbol,
                             provider_a: ProviderName, rate_a: float,
                             provider_b: ProviderName, rate_b: float,
                             min_apy_diff: float) -> Optional[FundingOpportunity]:
    """
    Funding differential between two providers.

    Returns:
        FundingOpportunity when the annualized differential reaches
        min_apy_diff percent, otherwise None
    """
    difference = Decimal(str(rate_a)) - Decimal(str(rate_b))
    annualized = annualize_rate_difference(difference)
    if annualized < Decimal(str(min_apy_diff)):
        return None

    if difference > 0:
        long_provider, long_rate, short_provider, short_rate = provider_a, rate_a, provider_b, rate_b
    else:
        long_provider, long_rate, short_provider, short_rate = provider_b, rate_b, provider_a, rate_a

    return FundingOpportunity(
        symbol=symbol,
        provider_a=provider_a,
        provider_b=provider_b,
        long_provider=long_provider,
        short_provider=short_provider,
        long_rate=long_rate,
        short_rate=short_rate,
        rate_difference=float(abs(difference)),
        annualized_difference_pct=float(annualized),
    )
