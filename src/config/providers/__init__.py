"""
Provider configuration management module.
"""

from .provider_config import ProviderConfigManager

__all__ = [
    'ProviderConfigManager'
]
