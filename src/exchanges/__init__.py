"""
Exchange Market Data Module

Market data providers for perpetual futures exchanges behind one interface.

Exchange Support:
- Hyperliquid: single shared WebSocket, bbo/l2Book/activeAssetCtx channels
- Extended: one WebSocket per market with preemptive reconnection

Architecture:
- structs: canonical snapshots, events and enums
- services.symbol_mapper: canonical symbol resolution
- interfaces: DataProvider contract and shared BaseDataProvider
- provider_factory: name -> provider class registry
"""
