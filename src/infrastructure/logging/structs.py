"""
Logging Configuration Structures

Structured configuration for the scanner logging system using msgspec.Struct.
"""

from typing import Optional
from msgspec import Struct, field

VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class BackendConfig(Struct, frozen=True):
    """
    Base configuration for all logging backends.

    Attributes:
        enabled: Whether this backend is active
        min_level: Minimum log level to process (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    enabled: bool = True
    min_level: str = "INFO"

    def validate(self) -> None:
        """Validate backend configuration."""
        if self.min_level.upper() not in VALID_LEVELS:
            raise ValueError(f"Invalid log level: {self.min_level}")


class ConsoleBackendConfig(BackendConfig):
    """
    Console backend configuration.

    Attributes:
        include_context: Append key=value context to every line
        max_message_length: Maximum message length before truncation
    """
    include_context: bool = True
    max_message_length: int = 1000


class FileBackendConfig(BackendConfig):
    """
    Rotating file backend configuration.

    Attributes:
        path: Log file path
        max_size_mb: Maximum file size in MB before rotation
        backup_count: Number of backup files to keep
    """
    enabled: bool = False
    path: str = "logs/scanner.log"
    max_size_mb: int = 100
    backup_count: int = 5

    def validate(self) -> None:
        """Validate file backend configuration."""
        super().validate()
        if self.max_size_mb <= 0:
            raise ValueError("max_size_mb must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count cannot be negative")


class LoggingConfig(Struct, frozen=True):
    """
    Complete logging configuration.

    Attributes:
        environment: Environment name (dev, prod, test)
        console: Console backend settings
        file: Optional rotating file backend settings
    """
    environment: str = "dev"
    console: ConsoleBackendConfig = field(default_factory=ConsoleBackendConfig)
    file: Optional[FileBackendConfig] = None

    def validate(self) -> None:
        self.console.validate()
        if self.file:
            self.file.validate()

    @classmethod
    def default_development(cls) -> "LoggingConfig":
        return cls(environment="dev", console=ConsoleBackendConfig(min_level="DEBUG"))

    @classmethod
    def default_production(cls) -> "LoggingConfig":
        return cls(
            environment="prod",
            console=ConsoleBackendConfig(min_level="INFO", include_context=False),
            file=FileBackendConfig(enabled=True, min_level="INFO"),
        )

    @classmethod
    def default_test(cls) -> "LoggingConfig":
        return cls(environment="test", console=ConsoleBackendConfig(min_level="WARNING"))
