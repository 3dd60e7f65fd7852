"""
Logging Factory

Creates logger instances and installs handlers from struct-based configuration.
Components take a logger from here and keep it as self.logger.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

from .hft_logger import CONTEXT_ATTR, HFTLogger
from .structs import LoggingConfig

ROOT_LOGGER_NAME = ""
_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


class ContextFormatter(logging.Formatter):
    """Formatter that renders structured context as trailing key=value pairs."""

    def __init__(self, include_context: bool = True, max_message_length: int = 1000):
        super().__init__(_FORMAT)
        self.include_context = include_context
        self.max_message_length = max_message_length

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, CONTEXT_ATTR, None)
        if self.include_context and context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} | {pairs}"
        if len(line) > self.max_message_length and not record.exc_info:
            line = line[:self.max_message_length - 3] + "..."
        return line


class LoggerFactory:
    """Logging factory: cached loggers, handlers configured once."""

    _cached_loggers: Dict[str, HFTLogger] = {}
    _handlers: List[logging.Handler] = []
    _config: Optional[LoggingConfig] = None

    @classmethod
    def create_logger(cls, name: str) -> HFTLogger:
        if cls._config is None:
            cls.configure(cls._default_config())
        if name not in cls._cached_loggers:
            cls._cached_loggers[name] = HFTLogger(name)
        return cls._cached_loggers[name]

    @classmethod
    def configure(cls, config: LoggingConfig) -> None:
        """Install console and file handlers on the root logger."""
        config.validate()
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.close()
        cls._handlers = []

        levels = []
        if config.console.enabled:
            console = logging.StreamHandler()
            console.setLevel(config.console.min_level.upper())
            console.setFormatter(ContextFormatter(config.console.include_context,
                                                  config.console.max_message_length))
            cls._handlers.append(console)
            levels.append(console.level)

        if config.file and config.file.enabled:
            Path(config.file.path).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                config.file.path,
                maxBytes=config.file.max_size_mb * 1024 * 1024,
                backupCount=config.file.backup_count,
            )
            file_handler.setLevel(config.file.min_level.upper())
            file_handler.setFormatter(ContextFormatter(include_context=True,
                                                       max_message_length=10_000))
            cls._handlers.append(file_handler)
            levels.append(file_handler.level)

        for handler in cls._handlers:
            root.addHandler(handler)
        root.setLevel(min(levels) if levels else logging.WARNING)
        cls._config = config

    @classmethod
    def get_config(cls) -> Optional[LoggingConfig]:
        return cls._config

    @classmethod
    def clear_cache(cls) -> None:
        """Clear cached logger instances."""
        cls._cached_loggers.clear()

    @staticmethod
    def _default_config() -> LoggingConfig:
        environment = os.getenv('ENVIRONMENT', 'dev').lower()
        if environment == 'prod':
            return LoggingConfig.default_production()
        if environment == 'test':
            return LoggingConfig.default_test()
        return LoggingConfig.default_development()


def get_logger(name: str) -> HFTLogger:
    """Get logger instance."""
    return LoggerFactory.create_logger(name)


def get_exchange_logger(exchange: str, component: str = None) -> HFTLogger:
    """Get exchange logger with optional component."""
    name = f"{exchange}.{component}" if component else exchange
    logger = get_logger(name)
    logger.set_context(exchange=exchange)
    return logger


def configure_logging(config: LoggingConfig) -> None:
    """Configure logging backends from a LoggingConfig struct."""
    LoggerFactory.configure(config)
