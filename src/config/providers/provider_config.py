"""
Provider configuration manager.

Builds ProviderConfig structs from the `providers:` section of config.yaml:
- enabled flag
- native symbol list (order kept, duplicates dropped)
- subscribed data types
- [maker_pct, taker_pct] fee schedule
- transport settings
"""

import logging
from typing import Any, Dict, List, Tuple

import msgspec

from exchanges.structs.enums import DataType
from infrastructure.exceptions.system import ConfigurationError
from ..structs import ProviderConfig, ProviderSettings


class ProviderConfigManager:
    """Parses and validates provider configuration. Fails fast with ConfigurationError."""

    def __init__(self, config_data: Dict[str, Any]):
        self.config_data = config_data
        self._logger = logging.getLogger(__name__)

    def get_provider_configs(self) -> Dict[str, ProviderConfig]:
        """
        Get all provider configurations.

        Returns:
            Provider name -> ProviderConfig, in file order
        """
        providers_data = self.config_data.get('providers') or {}
        if not isinstance(providers_data, dict) or not providers_data:
            raise ConfigurationError(
                "No providers configured. At least one provider must be configured.",
                "providers"
            )

        configs = {}
        for name, data in providers_data.items():
            provider_name = str(name).lower()
            try:
                configs[provider_name] = self._build_provider_config(provider_name, data or {})
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(
                    f"Failed to configure provider '{name}': {e}",
                    f"providers.{name}"
                ) from e
        return configs

    def _build_provider_config(self, name: str, data: Dict[str, Any]) -> ProviderConfig:
        if not isinstance(data, dict):
            raise ConfigurationError(f"Provider '{name}' must be a mapping", f"providers.{name}")

        config = ProviderConfig(
            name=name,
            enabled=bool(data.get('enabled', True)),
            symbols=self._parse_symbols(name, data.get('symbols', [])),
            data_types=self._parse_data_types(name, data.get('data_types', ['orderbook', 'funding'])),
            fees=self._parse_fees(name, data.get('fees', [0.0, 0.0])),
            settings=self._parse_settings(name, data.get('settings') or {}),
        )
        self._logger.debug(f"Configured provider: {name} (enabled: {config.enabled}, symbols: {config.symbols})")
        return config

    @staticmethod
    def _parse_symbols(name: str, symbols: Any) -> List[str]:
        if not isinstance(symbols, list) or not all(isinstance(s, str) and s for s in symbols):
            raise ConfigurationError(f"Provider '{name}' symbols must be a list of strings",
                                     f"providers.{name}.symbols")
        return list(dict.fromkeys(symbols))

    @staticmethod
    def _parse_data_types(name: str, data_types: Any) -> frozenset:
        if not isinstance(data_types, list):
            raise ConfigurationError(f"Provider '{name}' data_types must be a list",
                                     f"providers.{name}.data_types")
        try:
            return frozenset(DataType(str(value).lower()) for value in data_types)
        except ValueError as e:
            raise ConfigurationError(f"Provider '{name}' has unknown data type: {e}",
                                     f"providers.{name}.data_types") from e

    @staticmethod
    def _parse_fees(name: str, fees: Any) -> Tuple[float, float]:
        if not isinstance(fees, (list, tuple)) or len(fees) != 2:
            raise ConfigurationError(f"Provider '{name}' fees must be [maker_pct, taker_pct]",
                                     f"providers.{name}.fees")
        maker, taker = float(fees[0]), float(fees[1])
        if taker < 0:
            raise ConfigurationError(f"Provider '{name}' taker fee cannot be negative",
                                     f"providers.{name}.fees")
        return maker, taker

    @staticmethod
    def _parse_settings(name: str, settings: Dict[str, Any]) -> ProviderSettings:
        try:
            return msgspec.convert(settings, type=ProviderSettings, strict=False)
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid settings for provider '{name}': {e}",
                                     f"providers.{name}.settings") from e
