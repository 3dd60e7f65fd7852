from .provider import HyperliquidProvider

__all__ = ["HyperliquidProvider"]
