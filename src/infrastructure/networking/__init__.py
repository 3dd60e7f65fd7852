"""
Networking Infrastructure

Network communication components:
- http: aiohttp REST client
- websocket: reconnecting WebSocket client
"""
