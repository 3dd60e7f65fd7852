"""
Scanner Configuration Management

YAML-based configuration for the market data scanner.

Key Features:
- YAML configuration with ${VAR} / ${VAR:default} environment substitution
- .env loading with python-dotenv
- Typed msgspec structs for every section
- Clear ConfigurationError on missing or invalid settings

Usage:
    from config import load_config

    config = load_config()                 # config.yaml from the usual locations
    config = load_config("my_config.yaml") # explicit path

    hyperliquid = config.get_provider_config('hyperliquid')
    interval = config.arbitrage.scan_interval
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msgspec
import yaml
from dotenv import load_dotenv

from infrastructure.exceptions.system import ConfigurationError
from .logging import LoggingConfigManager
from .providers import ProviderConfigManager
from .structs import ArbitrageConfig, ScannerConfig

CONFIG_PATH_ENV = "SCANNER_CONFIG"
_ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


class ScannerConfigManager:
    """
    Loads config.yaml and builds the ScannerConfig struct.

    Args:
        config_path: Explicit YAML path. Falls back to $SCANNER_CONFIG, then
            config.yaml in the project root and the working directory.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self._logger = logging.getLogger(__name__)
        self._config_path = Path(config_path) if config_path else None
        self._config: Optional[ScannerConfig] = None

    def get_config(self) -> ScannerConfig:
        if self._config is None:
            self._load_env_file()
            config_data = self._load_yaml_config()
            self._config = self._build_config(config_data)
        return self._config

    def _candidate_paths(self) -> List[Path]:
        if self._config_path is not None:
            return [self._config_path]
        env_path = os.getenv(CONFIG_PATH_ENV)
        if env_path:
            return [Path(env_path)]
        return [
            Path(__file__).parent.parent.parent / 'config.yaml',  # Project root
            Path.cwd() / 'config.yaml',
        ]

    def _load_env_file(self) -> None:
        """Load environment variables from .env in the project root or working directory."""
        env_paths = [
            Path(__file__).parent.parent.parent / '.env',
            Path.cwd() / '.env',
        ]
        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(dotenv_path=env_path, override=False)
                self._logger.debug(f"Loaded environment variables from: {env_path}")
                return
        self._logger.debug("No .env file found - using system environment variables only")

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with environment variable substitution."""
        config_paths = self._candidate_paths()

        for config_path in config_paths:
            if not config_path.exists():
                continue
            try:
                raw_content = config_path.read_text()
                config_data = yaml.safe_load(self._substitute_env_vars(raw_content))
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e

            if not isinstance(config_data, dict):
                raise ConfigurationError(f"Config file {config_path} must contain a mapping")
            self._logger.info(f"Configuration loaded from: {config_path}")
            return config_data

        raise ConfigurationError(
            f"No valid config.yaml found. Searched paths: {[str(p) for p in config_paths]}"
        )

    def _substitute_env_vars(self, content: str) -> str:
        """
        Substitute environment variables in configuration content.

        Supports syntax:
        - ${VAR_NAME} - Environment variable (empty when unset)
        - ${VAR_NAME:default} - Optional with default value
        """
        def replace_var(match):
            var_expr = match.group(1)
            if ':' in var_expr:
                var_name, default_value = var_expr.split(':', 1)
                env_value = os.getenv(var_name.strip())
                return default_value if env_value is None else env_value

            var_name = var_expr.strip()
            env_value = os.getenv(var_name)
            if env_value is None:
                self._logger.warning(f"Environment variable {var_name} not set - using empty value")
                return ""
            return env_value

        return _ENV_VAR_PATTERN.sub(replace_var, content)

    def _build_config(self, config_data: Dict[str, Any]) -> ScannerConfig:
        env_config = config_data.get('environment') or {}
        environment = str(env_config.get('name', os.getenv('ENVIRONMENT', 'dev'))).lower()

        return ScannerConfig(
            environment=environment,
            logging=LoggingConfigManager(config_data, environment).get_logging_config(),
            arbitrage=self._parse_arbitrage_config(config_data.get('arbitrage') or {}),
            providers=ProviderConfigManager(config_data).get_provider_configs(),
            symbols=self._parse_symbol_variants(config_data.get('symbols') or {}),
            provider_symbols=self._parse_provider_symbols(config_data.get('provider_symbols') or {}),
        )

    @staticmethod
    def _parse_arbitrage_config(data: Dict[str, Any]) -> ArbitrageConfig:
        try:
            config = msgspec.convert(data, type=ArbitrageConfig, strict=False)
            config.validate()
            return config
        except (msgspec.ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid arbitrage configuration: {e}", "arbitrage") from e

    @staticmethod
    def _parse_symbol_variants(data: Dict[str, Any]) -> Dict[str, List[str]]:
        try:
            return msgspec.convert(data, type=Dict[str, List[str]])
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid symbol variants: {e}", "symbols") from e

    @staticmethod
    def _parse_provider_symbols(data: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
        try:
            return msgspec.convert(data, type=Dict[str, Dict[str, str]])
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid provider symbol mappings: {e}", "provider_symbols") from e


def load_config(config_path: Optional[Union[str, Path]] = None) -> ScannerConfig:
    """Load and validate the scanner configuration."""
    return ScannerConfigManager(config_path).get_config()
