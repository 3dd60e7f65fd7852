"""
Scanner configuration package.

Usage:
    from config import load_config, ScannerConfig
"""

from .config_manager import ScannerConfigManager, load_config
from .structs import (
    ArbitrageConfig,
    ProviderConfig,
    ProviderSettings,
    RestConfig,
    ScannerConfig,
    WebSocketConfig,
)

__all__ = [
    'ScannerConfigManager',
    'load_config',
    'ArbitrageConfig',
    'ProviderConfig',
    'ProviderSettings',
    'RestConfig',
    'ScannerConfig',
    'WebSocketConfig',
]
