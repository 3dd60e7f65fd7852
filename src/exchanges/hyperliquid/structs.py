"""
Hyperliquid wire structures.

Prices and sizes arrive as decimal strings; they are converted to floats
with msgspec.convert(strict=False).
"""

from typing import List, Optional

from msgspec import Struct


class HyperliquidLevel(Struct):
    px: float
    sz: float
    n: int = 0


class HyperliquidBbo(Struct):
    coin: str
    bbo: List[Optional[HyperliquidLevel]]
    time: Optional[int] = None


class HyperliquidL2Book(Struct):
    coin: str
    levels: List[List[HyperliquidLevel]]
    time: Optional[int] = None


class HyperliquidAssetCtx(Struct):
    funding: float


class HyperliquidActiveAssetCtx(Struct):
    coin: str
    ctx: HyperliquidAssetCtx


class HyperliquidUniverseAsset(Struct):
    name: str


class HyperliquidMeta(Struct):
    universe: List[HyperliquidUniverseAsset]
