"""
Logging configuration manager.

Converts the `logging:` section of config.yaml into a LoggingConfig struct.
"""

from typing import Any, Dict

import msgspec

from infrastructure.exceptions.system import ConfigurationError
from infrastructure.logging.structs import ConsoleBackendConfig, FileBackendConfig, LoggingConfig


class LoggingConfigManager:
    """Simple logging configuration manager."""

    def __init__(self, config_data: Dict[str, Any], environment: str = "dev"):
        self.config_data = config_data
        self.environment = environment

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration from config.yaml, or the environment default."""
        logging_data = self.config_data.get('logging')
        if not logging_data:
            return self._get_default_config()

        try:
            console = msgspec.convert(logging_data.get('console') or {}, type=ConsoleBackendConfig, strict=False)
            file_data = logging_data.get('file')
            file = msgspec.convert(file_data, type=FileBackendConfig, strict=False) if file_data else None
            config = LoggingConfig(environment=self.environment, console=console, file=file)
            config.validate()
            return config
        except (msgspec.ValidationError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid logging configuration: {e}", "logging") from e

    def _get_default_config(self) -> LoggingConfig:
        if self.environment == 'prod':
            return LoggingConfig.default_production()
        if self.environment == 'test':
            return LoggingConfig.default_test()
        return LoggingConfig.default_development()
