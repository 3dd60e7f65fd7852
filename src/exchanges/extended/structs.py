"""
Extended wire structures.
"""

from typing import List, Optional

from msgspec import Struct


class ExtendedLevel(Struct):
    p: float
    q: float


class ExtendedOrderbookData(Struct):
    m: str
    b: List[ExtendedLevel]
    a: List[ExtendedLevel]


class ExtendedOrderbookMessage(Struct):
    data: ExtendedOrderbookData
    ts: Optional[int] = None
    type: Optional[str] = None
    seq: Optional[int] = None


class ExtendedMarketStats(Struct):
    fundingRate: float


class ExtendedMarket(Struct):
    name: str
    marketStats: Optional[ExtendedMarketStats] = None


class ExtendedMarketsResponse(Struct):
    status: str
    data: List[ExtendedMarket] = []
