"""
Scanner Logging System

Structured logging shared by every component. Configured from config.yaml
by the runner, or from the ENVIRONMENT variable when nothing configured it.

Usage:
    from infrastructure.logging import get_logger

    # Component logger
    logger = get_logger('arbitrage.engine')
    logger.info("Engine started", interval=5.0)

    # Exchange logger with context
    logger = get_exchange_logger('extended', 'ws')
    logger.debug("WebSocket connected", symbol="BTC-USD")

    # Metrics logging
    logger.metric("scan_opportunities", 3, symbol_count=4)
"""

from .hft_logger import HFTLogger, LoggingTimer
from .factory import (
    LoggerFactory,
    get_logger,
    get_exchange_logger,
    configure_logging,
)
from .structs import (
    LoggingConfig,
    ConsoleBackendConfig,
    FileBackendConfig,
    BackendConfig,
)

__all__ = [
    'HFTLogger',
    'LoggingTimer',
    'LoggerFactory',
    'get_logger',
    'get_exchange_logger',
    'configure_logging',
    'LoggingConfig',
    'ConsoleBackendConfig',
    'FileBackendConfig',
    'BackendConfig',
]
