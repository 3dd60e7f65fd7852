"""
WebSocket Client

Single-socket client with a timer driven reconnection policy, used by every
market data provider.

Key Features:
- Injectable connect method for transport substitution in tests
- Connection state machine: DISCONNECTED -> CONNECTING -> CONNECTED
- Failed connects and unexpected closes schedule exactly one reconnect
  after a fixed delay; they never propagate to the caller
- Optional preemptive reconnection for servers that enforce a hard
  connection lifetime: the socket is closed and reopened before the
  server drops it, flagged as planned so no second reconnect is scheduled
- All timers are owned by the caller's TimerManager and scoped to
  (provider, symbol)

Protocol level ping frames are answered by the websockets library with a
pong carrying the same payload. Application level text pings are the
message handler's responsibility.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import msgspec
from websockets import connect
from websockets.exceptions import ConnectionClosed

from config.structs import WebSocketConfig
from infrastructure.exceptions.exchange import ExchangeConnectionError
from infrastructure.logging import HFTLogger, get_logger
from infrastructure.networking.websocket.structs import ConnectionState
from utils.task_utils import TimerKey, TimerManager, TimerPurpose, safe_close_connection

MessageHandler = Callable[[Any], Awaitable[None]]
ConnectionHandler = Callable[[ConnectionState], Awaitable[None]]
ConnectMethod = Callable[[], Awaitable[Any]]


class WebsocketClient:
    """
    Reconnecting WebSocket connection for one endpoint.

    Args:
        config: Endpoint URL, headers, timeouts and reconnect policy
        message_handler: Coroutine called with every inbound frame
        timers: Timer manager owning reconnect timers
        provider: Provider name used to scope timers and logs
        symbol: Symbol scope of this socket (None for a shared socket)
        connection_handler: Coroutine notified on every state change
        connect_method: Coroutine returning an open socket (defaults to websockets.connect)

    Raises:
        ValueError: invalid config (URL scheme, negative or zero intervals)
    """

    def __init__(
        self,
        config: WebSocketConfig,
        message_handler: MessageHandler,
        timers: TimerManager,
        provider: str,
        symbol: Optional[str] = None,
        connection_handler: Optional[ConnectionHandler] = None,
        connect_method: Optional[ConnectMethod] = None,
        logger: Optional[HFTLogger] = None,
    ):
        config.validate()
        self.config = config
        self.provider = provider
        self.symbol = symbol
        self._message_handler = message_handler
        self._connection_handler = connection_handler
        self._connect_method = connect_method or self._default_connect
        self._timers = timers
        self.logger = logger or get_logger(f"{provider}.ws")

        self._ws = None
        self._reader_task: Optional[asyncio.Task] = None
        self._state = ConnectionState.DISCONNECTED
        self._planned_close = False
        self._closing = False

        self.connection_count = 0
        self.reconnect_count = 0

        self._reconnect_key = TimerKey(provider, symbol, TimerPurpose.RECONNECT)
        self._preemptive_key = TimerKey(provider, symbol, TimerPurpose.PREEMPTIVE_RECONNECT)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._ws is not None

    async def _default_connect(self):
        return await connect(
            self.config.url,
            additional_headers=self.config.headers or None,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
            close_timeout=self.config.close_timeout,
            open_timeout=self.config.connect_timeout,
            compression=None,
            max_size=self.config.max_message_size,
        )

    async def connect(self) -> bool:
        """
        Open the connection.

        Returns:
            True if the socket is open, False if the attempt failed and a
            retry has been scheduled
        """
        self._closing = False
        return await self._open()

    async def disconnect(self) -> None:
        """Close the socket and cancel this connection's timers. No reconnect follows."""
        self._closing = True
        self._timers.cancel(self._reconnect_key)
        self._timers.cancel(self._preemptive_key)
        await self._update_state(ConnectionState.CLOSING)
        await self._close_socket()
        await self._update_state(ConnectionState.CLOSED)
        self.logger.debug("WebSocket disconnected", url=self.config.url, symbol=self.symbol)

    async def send_message(self, message: Dict[str, Any]) -> None:
        """Send a JSON message."""
        await self.send_text(msgspec.json.encode(message).decode("utf-8"))

    async def send_text(self, text: str) -> None:
        if not self.is_connected:
            raise ExchangeConnectionError("WebSocket not connected", self.provider, self.symbol)
        try:
            await self._ws.send(text)
        except Exception as e:
            raise ExchangeConnectionError(f"Message send failed: {e}", self.provider, self.symbol) from e

    async def _open(self) -> bool:
        if self.is_connected:
            return True
        if self._closing:
            return False

        await self._update_state(ConnectionState.CONNECTING)
        try:
            ws = await asyncio.wait_for(self._connect_method(), timeout=self.config.connect_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = ExchangeConnectionError(f"Failed to connect to {self.config.url}: {e}",
                                            self.provider, self.symbol)
            self.logger.error(str(error), symbol=self.symbol, error_type=type(e).__name__)
            self.logger.metric("ws_connect_failures", 1, symbol=self.symbol)
            await self._update_state(ConnectionState.DISCONNECTED)
            self._schedule_reconnect()
            return False

        if self._closing:
            await safe_close_connection(ws, self.config.close_timeout, self.logger)
            return False

        self._ws = ws
        self.connection_count += 1
        self._reader_task = asyncio.create_task(self._message_reader(ws))

        if self.config.preemptive_reconnect_interval:
            self._timers.call_later(self._preemptive_key,
                                    self.config.preemptive_reconnect_interval,
                                    self._preemptive_reconnect)

        self.logger.info("WebSocket connected", url=self.config.url, symbol=self.symbol)
        self.logger.metric("ws_connections", 1, symbol=self.symbol)
        await self._update_state(ConnectionState.CONNECTED)
        return True

    async def _message_reader(self, ws) -> None:
        try:
            async for raw_message in ws:
                try:
                    await self._message_handler(raw_message)
                except Exception as e:
                    self.logger.error("Error processing message",
                                      symbol=self.symbol,
                                      error_type=type(e).__name__,
                                      error_message=str(e))
        except ConnectionClosed as e:
            self.logger.debug("WebSocket closed", symbol=self.symbol, reason=str(e))
        except Exception as e:
            self.logger.error("Message reader error", symbol=self.symbol,
                              error_type=type(e).__name__, error_message=str(e))
        finally:
            self._on_closed(ws)

    def _on_closed(self, ws) -> None:
        if ws is not self._ws:
            return
        self._ws = None
        self._state = ConnectionState.DISCONNECTED

        # A planned close runs inside the preemptive timer, which reopens the socket itself
        if self._planned_close or self._closing:
            return

        self._timers.cancel(self._preemptive_key)

        self.logger.warning("WebSocket closed unexpectedly", url=self.config.url, symbol=self.symbol)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closing:
            return
        self.logger.info("Scheduling reconnect", symbol=self.symbol,
                         delay_seconds=self.config.reconnect_delay)
        self._timers.call_later(self._reconnect_key, self.config.reconnect_delay, self._reconnect)

    async def _reconnect(self) -> None:
        self.reconnect_count += 1
        self.logger.metric("ws_reconnection_attempts", 1, symbol=self.symbol)
        await self._update_state(ConnectionState.RECONNECTING)
        await self._open()

    async def _preemptive_reconnect(self) -> None:
        self.logger.debug("Preemptive reconnect", symbol=self.symbol,
                          interval=self.config.preemptive_reconnect_interval)
        self._planned_close = True
        try:
            await self._close_socket()
        finally:
            self._planned_close = False
        self.reconnect_count += 1
        await self._open()

    async def _close_socket(self) -> None:
        ws = self._ws
        reader = self._reader_task
        if ws is not None:
            await safe_close_connection(ws, self.config.close_timeout, self.logger)
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            done, _ = await asyncio.wait({reader}, timeout=self.config.close_timeout)
            if not done:
                reader.cancel()
                await asyncio.gather(reader, return_exceptions=True)
        if ws is not None:
            self._on_closed(ws)
        self._reader_task = None

    async def _update_state(self, state: ConnectionState) -> None:
        previous_state = self._state
        self._state = state
        if previous_state == state or self._connection_handler is None:
            return
        try:
            await self._connection_handler(state)
        except Exception as e:
            self.logger.error("Error in state change handler",
                              error_type=type(e).__name__,
                              error_message=str(e))
