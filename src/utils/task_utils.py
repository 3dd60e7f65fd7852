import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Union

TimerCallback = Callable[[], Union[None, Awaitable[Any]]]


async def cancel_tasks_with_timeout(
    tasks: List[Optional[asyncio.Task]],
    timeout: float = 2.0,
    logger=None
) -> bool:
    """
    Cancel multiple tasks with timeout protection.

    Args:
        tasks: List of asyncio tasks (None entries are ignored)
        timeout: Maximum time to wait for cancellation
        logger: Optional logger for timeout warnings

    Returns:
        bool: True if all tasks cancelled within timeout, False if timeout occurred
    """
    if not tasks:
        return True

    active_tasks = [task for task in tasks if task and not task.done()]
    if not active_tasks:
        return True

    for task in active_tasks:
        task.cancel()

    try:
        await asyncio.wait_for(
            asyncio.gather(*active_tasks, return_exceptions=True),
            timeout=timeout
        )
        return True
    except asyncio.TimeoutError:
        if logger:
            remaining = [task for task in active_tasks if not task.done()]
            logger.warning(f"Task cancellation timed out after {timeout}s. {len(remaining)} tasks still running")
        return False


async def safe_close_connection(
    connection,
    timeout: float = 1.0,
    logger=None
) -> bool:
    """
    Safely close a connection with timeout protection.

    Args:
        connection: Connection object with close() method
        timeout: Maximum time to wait for close
        logger: Optional logger for timeout warnings

    Returns:
        bool: True if closed within timeout, False if timeout occurred
    """
    if not connection:
        return True

    try:
        await asyncio.wait_for(
            connection.close(),
            timeout=timeout
        )
        return True
    except asyncio.TimeoutError:
        if logger:
            logger.warning(f"Connection close timed out after {timeout}s")
        return False
    except Exception as e:
        if logger:
            logger.error(f"Error closing connection: {e}")
        return False


class TimerPurpose(Enum):
    FUNDING = "funding"
    RECONNECT = "reconnect"
    PREEMPTIVE_RECONNECT = "preemptive_reconnect"
    ARBITRAGE_SCAN = "arbitrage_scan"
    STATUS_REPORT = "status_report"


class TimerKey(NamedTuple):
    """Identity of a scheduled timer: one live timer per key."""
    provider: str
    symbol: Optional[str]
    purpose: TimerPurpose


class TimerManager:
    """
    Keyed, individually cancellable timers on the running event loop.

    Every timer is an asyncio task registered under a TimerKey. Arming a key
    that already holds a live timer replaces it. A callback may re-arm its own
    key without being cancelled. Callback exceptions are logged and, for
    repeating timers, the schedule continues.
    """

    def __init__(self, name: str = "timers", logger=None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self._timers: Dict[TimerKey, asyncio.Task] = {}

    def call_later(self, key: TimerKey, delay: float, callback: TimerCallback) -> asyncio.Task:
        """Run callback once after delay seconds."""
        async def run_once():
            await asyncio.sleep(max(delay, 0.0))
            await self._invoke(key, callback)

        return self._arm(key, run_once())

    def call_every(
        self,
        key: TimerKey,
        interval: float,
        callback: TimerCallback,
        first_delay: Optional[float] = None
    ) -> asyncio.Task:
        """
        Run callback after first_delay, then every interval seconds.

        Deadlines are fixed at start + first_delay + k * interval, so callback
        duration does not shift later runs.

        Args:
            key: Timer identity
            interval: Seconds between runs after the first
            callback: Sync or async callable without arguments
            first_delay: Delay before the first run (defaults to interval)
        """
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        delay = interval if first_delay is None else first_delay

        async def run_periodic():
            loop = asyncio.get_running_loop()
            next_run = loop.time() + max(delay, 0.0)
            while True:
                await asyncio.sleep(max(next_run - loop.time(), 0.0))
                await self._invoke(key, callback)
                # Deadlines stay on the original grid; runs missed by a slow callback are skipped
                next_run += interval
                now = loop.time()
                if next_run < now:
                    next_run += ((now - next_run) // interval + 1) * interval

        return self._arm(key, run_periodic())

    def cancel(self, key: TimerKey) -> bool:
        """Cancel the timer under key. Returns True if one was live."""
        task = self._timers.pop(key, None)
        if task is None or task.done():
            return False
        if task is not asyncio.current_task():
            task.cancel()
        return True

    def cancel_symbol(self, symbol: str) -> int:
        """Cancel every timer scoped to symbol."""
        keys = [key for key in self._timers if key.symbol == symbol]
        return sum(1 for key in keys if self.cancel(key))

    def cancel_all(self) -> int:
        """Cancel every timer owned by this manager."""
        return sum(1 for key in list(self._timers) if self.cancel(key))

    async def shutdown(self, timeout: float = 2.0) -> bool:
        """Cancel all timers and wait for them to finish."""
        current = asyncio.current_task()
        tasks = [task for task in self._timers.values() if task is not current]
        self._timers.clear()
        return await cancel_tasks_with_timeout(tasks, timeout, self.logger)

    def is_scheduled(self, key: TimerKey) -> bool:
        task = self._timers.get(key)
        return task is not None and not task.done()

    def get_timer(self, key: TimerKey) -> Optional[asyncio.Task]:
        return self._timers.get(key)

    @property
    def keys(self) -> List[TimerKey]:
        return [key for key, task in self._timers.items() if not task.done()]

    @property
    def active_task_count(self) -> int:
        return len(self.keys)

    def _arm(self, key: TimerKey, coro) -> asyncio.Task:
        previous = self._timers.get(key)
        if previous is not None and not previous.done() and previous is not asyncio.current_task():
            previous.cancel()

        task = asyncio.create_task(coro, name=f"{self.name}.{key.provider}.{key.symbol}.{key.purpose.value}")
        self._timers[key] = task

        def cleanup_task(completed_task: asyncio.Task):
            if self._timers.get(key) is completed_task:
                del self._timers[key]

        task.add_done_callback(cleanup_task)
        return task

    async def _invoke(self, key: TimerKey, callback: TimerCallback) -> None:
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Timer {key.purpose.value} callback failed for "
                              f"{key.provider}/{key.symbol}: {e}")
