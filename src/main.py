#!/usr/bin/env python3
"""
Market Data Scanner Entry Point

Streams orderbooks and funding rates from the configured providers into the
market data store and periodically logs cross-provider arbitrage
opportunities.

Usage:
    python src/main.py
    python src/main.py --config config.yaml
    python src/main.py --log-level DEBUG
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

from msgspec import structs

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from arbitrage import ArbitrageEngine
from config import load_config
from config.structs import ScannerConfig
from exchanges.provider_factory import create_enabled_providers
from exchanges.services.symbol_mapper import SymbolMapper
from infrastructure.exceptions.system import ConfigurationError
from infrastructure.logging import configure_logging, get_logger
from market_data.data_bus import DataBus
from market_data.provider_manager import ProviderManager
from utils.task_utils import TimerKey, TimerManager, TimerPurpose


class ScannerCLI:
    """Command-line interface for the market data scanner."""

    def __init__(self):
        self.logger = get_logger('main')
        self.manager: Optional[ProviderManager] = None
        self.engine: Optional[ArbitrageEngine] = None
        self.timers = TimerManager("scanner", self.logger)
        self._shutdown_event = asyncio.Event()

    def setup_logging(self, config: ScannerConfig, log_level: Optional[str] = None) -> None:
        logging_config = config.logging
        if log_level:
            console = structs.replace(logging_config.console, min_level=log_level.upper())
            logging_config = structs.replace(logging_config, console=console)
        configure_logging(logging_config)

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._request_shutdown, signum)
            except NotImplementedError:
                signal.signal(signum, lambda s, frame: self._request_shutdown(s))

    def _request_shutdown(self, signum) -> None:
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        self._shutdown_event.set()

    def report_status(self) -> None:
        if self.manager is None:
            return
        summary = self.manager.store.get_summary()
        self.logger.info("Market data status", providers=summary["providers"], symbols=summary["symbols"])
        for entry in summary["entries"]:
            self.logger.info("Market data", **entry)

    async def run_scanner(self, config: ScannerConfig) -> None:
        self.logger.info("Starting market data scanner", environment=config.environment)

        symbol_mapper = SymbolMapper.from_config(config.symbols, config.provider_symbols)
        data_bus = DataBus()
        self.manager = ProviderManager(config.providers, data_bus=data_bus, symbol_mapper=symbol_mapper)

        for provider in create_enabled_providers(config, data_bus, symbol_mapper).values():
            self.manager.register_provider(provider)

        self.engine = ArbitrageEngine(self.manager.store, config.providers, config.arbitrage)

        try:
            started = await self.manager.start_all()
            if not started:
                self.logger.warning("No provider started cleanly; continuing with partial data")

            self.engine.start()
            if config.arbitrage.status_interval > 0:
                self.timers.call_every(TimerKey("scanner", None, TimerPurpose.STATUS_REPORT),
                                       config.arbitrage.status_interval, self.report_status)

            await self._shutdown_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        self.logger.info("Shutting down scanner")
        await self.timers.shutdown()
        if self.engine is not None:
            await self.engine.stop()
        if self.manager is not None:
            await self.manager.stop_all()
            self.manager.store.close()
        self.logger.info("Scanner stopped")

    def parse_args(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse command line arguments."""
        parser = argparse.ArgumentParser(
            description="Cross-exchange market data scanner for price and funding arbitrage",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Run with automatic config detection
  python main.py

  # Explicit configuration file
  python main.py --config /etc/scanner/config.yaml

  # Debug mode
  python main.py --log-level DEBUG
            """
        )

        parser.add_argument(
            "--config",
            type=str,
            default=None,
            help="Path to config.yaml (default: $SCANNER_CONFIG or ./config.yaml)"
        )

        parser.add_argument(
            "--log-level",
            type=str,
            default=None,
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Override the configured console log level"
        )

        return parser.parse_args(argv)

    async def main(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point. Returns the process exit status."""
        args = self.parse_args(argv)

        try:
            config = load_config(args.config)
        except ConfigurationError as e:
            self.logger.critical(f"Failed to load configuration: {e}")
            return 1

        self.setup_logging(config, args.log_level)
        self.setup_signal_handlers()

        try:
            await self.run_scanner(config)
        except Exception as e:
            self.logger.exception(f"Fatal error: {e}")
            return 1
        return 0


def main():
    """Entry point for command line execution."""
    cli = ScannerCLI()
    sys.exit(asyncio.run(cli.main()))


if __name__ == "__main__":
    main()
