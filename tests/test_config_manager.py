"""
Configuration Loading Tests

config.yaml parsing, environment substitution and validation errors.
"""

from pathlib import Path

import pytest

from config import ScannerConfigManager, load_config
from exchanges.structs.enums import DataType
from infrastructure.exceptions.system import ConfigurationError

PROJECT_CONFIG = Path(__file__).parent.parent / "config.yaml"

BASIC_CONFIG = """
environment:
  name: test
arbitrage:
  scan_interval: 2.5
  min_funding_apy_diff: ${MIN_APY:7.5}
providers:
  hyperliquid:
    enabled: true
    symbols: [BTC, ETH, BTC]
    data_types: [orderbook, funding]
    fees: [0.015, 0.045]
    settings:
      orderbook_channel: l2Book
  extended:
    enabled: ${EXTENDED_ENABLED:false}
    symbols: [BTC-USD]
    data_types: [orderbook]
    fees: [0.0, 0.025]
    settings:
      preemptive_reconnect_interval: 14
symbols:
  SOL: [SOL, SOL-USD]
provider_symbols:
  extended:
    SOL: SOL-USD
"""


def write_config(tmp_path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path


class TestConfigLoading:

    def test_basic_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MIN_APY", raising=False)
        monkeypatch.delenv("EXTENDED_ENABLED", raising=False)

        config = load_config(write_config(tmp_path, BASIC_CONFIG))

        assert config.environment == "test"
        assert config.arbitrage.scan_interval == 2.5
        assert config.arbitrage.min_funding_apy_diff == 7.5
        assert config.arbitrage.min_price_profit == 0.0001

        hyperliquid = config.get_provider_config("hyperliquid")
        assert hyperliquid.symbols == ["BTC", "ETH"]
        assert hyperliquid.data_types == frozenset({DataType.ORDERBOOK, DataType.FUNDING})
        assert hyperliquid.maker_fee == 0.015
        assert hyperliquid.taker_fee == 0.045
        assert hyperliquid.settings.orderbook_channel == "l2Book"

        extended = config.get_provider_config("extended")
        assert extended.enabled is False
        assert extended.settings.preemptive_reconnect_interval == 14.0
        assert [p.name for p in config.enabled_providers] == ["hyperliquid"]

        assert config.symbols == {"SOL": ["SOL", "SOL-USD"]}
        assert config.provider_symbols == {"extended": {"SOL": "SOL-USD"}}

    def test_environment_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MIN_APY", "12")
        monkeypatch.setenv("EXTENDED_ENABLED", "true")

        config = load_config(write_config(tmp_path, BASIC_CONFIG))

        assert config.arbitrage.min_funding_apy_diff == 12.0
        assert config.get_provider_config("extended").enabled is True

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, BASIC_CONFIG)
        monkeypatch.setenv("SCANNER_CONFIG", str(path))

        assert ScannerConfigManager().get_config().arbitrage.scan_interval == 2.5

    def test_project_config_loads(self):
        config = load_config(PROJECT_CONFIG)

        assert set(config.providers) == {"hyperliquid", "extended"}
        assert config.arbitrage.scan_interval == 5.0
        assert config.get_provider_config("extended").settings.preemptive_reconnect_interval == 14.0


class TestConfigErrors:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(write_config(tmp_path, "providers: [unclosed"))

    def test_no_providers(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(write_config(tmp_path, "arbitrage: {scan_interval: 5}\n"))
        assert exc_info.value.setting_name == "providers"

    @pytest.mark.parametrize("provider_block,setting", [
        ("{symbols: BTC}", "providers.hyperliquid.symbols"),
        ("{symbols: [BTC], data_types: [trades]}", "providers.hyperliquid.data_types"),
        ("{symbols: [BTC], fees: [0.1]}", "providers.hyperliquid.fees"),
        ("{symbols: [BTC], settings: {reconnect_delay: soon}}", "providers.hyperliquid.settings"),
    ])
    def test_invalid_provider(self, tmp_path, provider_block, setting):
        content = f"providers:\n  hyperliquid: {provider_block}\n"
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(write_config(tmp_path, content))
        assert exc_info.value.setting_name == setting

    def test_invalid_arbitrage_section(self, tmp_path):
        content = "arbitrage: {scan_interval: -1}\nproviders:\n  hyperliquid: {symbols: [BTC]}\n"
        with pytest.raises(ConfigurationError):
            load_config(write_config(tmp_path, content))
