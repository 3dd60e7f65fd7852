"""
Infrastructure Components

Foundational services shared by providers, the store and the arbitrage engine:
- networking: aiohttp REST client and reconnecting WebSocket client
- logging: structured logging with metrics helpers
- exceptions: REST, market data and configuration errors
"""
