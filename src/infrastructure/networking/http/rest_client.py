"""
Async REST Client

Small aiohttp client used by providers for REST market data requests.

Key Features:
- Connection pooling and session reuse with aiohttp
- msgspec JSON encoding and decoding
- Exponential backoff on connection errors, timeouts and rate limits
- HTTP errors mapped onto the ExchangeRestError hierarchy
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
import msgspec

from config.structs import RestConfig
from infrastructure.exceptions.exchange import (
    ExchangeConnectionRestError,
    ExchangeRestError,
    ExchangeServerError,
    ExchangeTimeoutError,
    InvalidParameterError,
    RateLimitErrorRest,
)
from infrastructure.networking.http.structs import HTTPMethod

MSGSPEC_ENCODER = msgspec.json.encode


def _json_serialize(obj: Any) -> str:
    return MSGSPEC_ENCODER(obj).decode("utf-8")


class RestClient:
    """
    Async REST client bound to one base URL.

    Args:
        base_url: Scheme and host, e.g. https://api.hyperliquid.xyz
        config: Timeouts, retries and headers
    """

    def __init__(self, base_url: str, config: Optional[RestConfig] = None):
        self.base_url = base_url.rstrip('/')
        self.config = config or RestConfig()

        self._session: Optional[aiohttp.ClientSession] = None
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)

        self.logger = logging.getLogger(__name__)

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                ttl_dns_cache=300,
                keepalive_timeout=60,
            )
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                json_serialize=_json_serialize,
                headers={
                    'User-Agent': self.config.user_agent,
                    'Accept': 'application/json',
                }
            )

    def _parse_response(self, response_text: str) -> Any:
        if not response_text:
            return None
        try:
            return msgspec.json.decode(response_text)
        except msgspec.DecodeError:
            raise ExchangeRestError(400, f"Invalid JSON response: {response_text[:100]}...")

    @staticmethod
    def _retry_after(headers) -> Optional[int]:
        value = headers.get("Retry-After") if headers else None
        if value is None or not str(value).strip().isdigit():
            return None
        return int(value)

    @classmethod
    def _raise_for_status(cls, status: int, response_text: str, headers=None) -> None:
        message = response_text[:200]
        if status == 429:
            raise RateLimitErrorRest(status, f"Rate limit exceeded: {message}",
                                     retry_after=cls._retry_after(headers))
        if status >= 500:
            raise ExchangeServerError(status, message)
        raise InvalidParameterError(status, message)

    async def request(
        self,
        method: HTTPMethod,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
    ) -> Any:
        """
        Execute HTTP request with retries.

        Raises:
            ExchangeRestError: on HTTP errors, invalid JSON or exhausted retries
        """
        await self._ensure_session()
        url = f"{self.base_url}{endpoint}"
        max_retries = self.config.max_retries

        async with self._semaphore:
            for attempt in range(max_retries + 1):
                try:
                    request_kwargs: Dict[str, Any] = {}
                    if params:
                        request_kwargs['params'] = params
                    if json_data is not None:
                        request_kwargs['json'] = json_data

                    async with self._session.request(method.value, url, **request_kwargs) as response:
                        response_text = await response.text()
                        if response.status >= 400:
                            self._raise_for_status(response.status, response_text, response.headers)
                        return self._parse_response(response_text)

                except asyncio.TimeoutError as e:
                    if attempt == max_retries:
                        raise ExchangeTimeoutError(408, f"Request to {url} timed out after {max_retries} retries") from e
                    await asyncio.sleep(self.config.retry_delay * (2 ** attempt))

                except aiohttp.ClientConnectionError as e:
                    if attempt == max_retries:
                        raise ExchangeConnectionRestError(
                            503, f"Connection failed after {max_retries} retries: {e}") from e
                    await asyncio.sleep(self.config.retry_delay * (2 ** attempt))

                except RateLimitErrorRest as e:
                    if attempt == max_retries:
                        raise
                    delay = self.config.retry_delay * (2 ** (attempt + 1))
                    if e.retry_after is not None:
                        delay = e.retry_after
                    self.logger.warning(f"Rate limited on {url}, retrying in {delay}s")
                    await asyncio.sleep(delay)

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute GET request."""
        return await self.request(HTTPMethod.GET, endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Execute POST request."""
        return await self.request(HTTPMethod.POST, endpoint, params=params, json_data=json_data)

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self.logger.debug(f"RestClient closed for {self.base_url}")
