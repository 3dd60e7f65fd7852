class ExchangeRestError(Exception):
    """Base exception for all exchange REST API errors."""
    def __init__(self, code: int, message: str, api_code: int | None = None) -> None:
        self.api_code = api_code
        self.message = message
        self.status_code = code
        super().__init__(f"HTTP {code}: {message}")


# Connection and Infrastructure Errors (Retryable)
class ExchangeConnectionRestError(ExchangeRestError):
    """Network connection errors that may be temporary."""
    pass


class ExchangeServerError(ExchangeRestError):
    """Server-side errors (5xx) that may be temporary."""
    pass


class ExchangeTimeoutError(ExchangeRestError):
    """Request timeout errors that may be retryable."""
    pass


class RateLimitErrorRest(ExchangeRestError):
    """Rate limit exceeded errors (HTTP 429)."""
    def __init__(self, code: int, message: str, api_code: int | None = None, retry_after: int | None = None) -> None:
        super().__init__(code, message, api_code)
        self.retry_after = retry_after

    def __str__(self):
        return f"RateLimitError: {self.status_code} - {self.message} - {self.retry_after}"


class InvalidParameterError(ExchangeRestError):
    """Invalid request parameters (4xx)."""
    pass


# Market data errors
class MarketDataError(Exception):
    """Base exception for market data ingestion failures."""
    def __init__(self, message: str, provider: str | None = None, symbol: str | None = None) -> None:
        self.message = message
        self.provider = provider
        self.symbol = symbol
        super().__init__(message)


class ExchangeConnectionError(MarketDataError):
    """WebSocket handshake or transport failure. Retried after a delay."""
    pass


class MessageParseError(MarketDataError):
    """Inbound message is malformed or of an unrecognized shape."""
    pass


class SymbolResolutionError(MarketDataError):
    """Exchange symbol has no canonical mapping."""
    pass


class RestFetchError(MarketDataError):
    """REST request failed or returned an unexpected shape."""
    pass
