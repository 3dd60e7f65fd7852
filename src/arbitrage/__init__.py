"""
Cross-provider arbitrage detection over aggregated market data.
"""

from .calculations import (
    annualize_funding_rate,
    calculate_price_profit,
    find_funding_opportunity,
    find_price_opportunities,
)
from .engine import ArbitrageEngine, EngineStatistics
from .structures import FundingOpportunity, Opportunity, PriceOpportunity

__all__ = [
    'ArbitrageEngine',
    'EngineStatistics',
    'FundingOpportunity',
    'Opportunity',
    'PriceOpportunity',
    'annualize_funding_rate',
    'calculate_price_profit',
    'find_funding_opportunity',
    'find_price_opportunities',
]
