"""
Provider Factory

Selects the provider class for a configured provider name and builds
instances with shared collaborators (data bus, symbol mapper).
"""

import importlib
from typing import Dict, List, Optional, Type

from config.structs import ProviderSettings, ScannerConfig
from exchanges.interfaces.data_provider import BaseDataProvider
from exchanges.services.symbol_mapper import SymbolMapper
from exchanges.structs.enums import ProviderEnum
from infrastructure.exceptions.system import ConfigurationError
from infrastructure.logging import get_logger
from market_data.data_bus import DataBus

_PROVIDER_CLASSES: Dict[ProviderEnum, str] = {
    ProviderEnum.HYPERLIQUID: 'exchanges.hyperliquid.provider.HyperliquidProvider',
    ProviderEnum.EXTENDED: 'exchanges.extended.provider.ExtendedProvider',
}

logger = get_logger('exchanges.provider_factory')


def get_provider_enum(name: str) -> ProviderEnum:
    try:
        return ProviderEnum(name.lower())
    except ValueError:
        supported = [provider.value for provider in _PROVIDER_CLASSES]
        raise ConfigurationError(f"Unsupported provider: {name}. Supported: {supported}", f"providers.{name}")


def get_provider_class(name: str) -> Type[BaseDataProvider]:
    """Resolve the provider class registered for name."""
    module_name, class_name = _PROVIDER_CLASSES[get_provider_enum(name)].rsplit('.', 1)
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


def supported_providers() -> List[str]:
    return [provider.value for provider in _PROVIDER_CLASSES]


def create_provider(name: str,
                    data_bus: DataBus,
                    symbol_mapper: SymbolMapper,
                    settings: Optional[ProviderSettings] = None,
                    **kwargs) -> BaseDataProvider:
    """
    Create a provider instance.

    Args:
        name: Provider name ("hyperliquid", "extended")
        data_bus: Bus receiving normalized events
        symbol_mapper: Shared symbol mapper
        settings: Provider transport settings
        **kwargs: Passed to the provider constructor (rest_client, connect_method_factory, clock)

    Raises:
        ConfigurationError: unknown provider name
    """
    provider_class = get_provider_class(name)
    provider = provider_class(data_bus, symbol_mapper, settings=settings, **kwargs)
    logger.debug("Created provider", exchange=provider.name, provider_class=provider_class.__name__)
    return provider


def create_enabled_providers(config: ScannerConfig,
                             data_bus: DataBus,
                             symbol_mapper: SymbolMapper) -> Dict[str, BaseDataProvider]:
    """Create every enabled provider with a registered implementation. Unknown names are logged and skipped."""
    providers = {}
    for provider_config in config.enabled_providers:
        try:
            providers[provider_config.name] = create_provider(
                provider_config.name, data_bus, symbol_mapper, settings=provider_config.settings
            )
        except ConfigurationError as e:
            logger.error(f"Skipping provider: {e}", exchange=provider_config.name)
    return providers
