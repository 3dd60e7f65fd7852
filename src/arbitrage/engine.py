"""
Arbitrage Engine

Periodically scans the MarketDataStore for fee adjusted price arbitrage and
annualized funding arbitrage across every unordered provider pair.

The engine only reads the store. Each scan evaluates from scratch and hands
the resulting list to the opportunity handler; nothing is retained between
scans apart from counters.
"""

import inspect
import time
from itertools import combinations
from typing import Awaitable, Callable, Mapping, Optional, Union

from msgspec import Struct

from config.structs import ArbitrageConfig, ProviderConfig
from exchanges.structs.enums import OpportunityKind
from infrastructure.logging import HFTLogger, LoggingTimer, get_logger
from market_data.market_data_store import MarketDataStore
from utils.task_utils import TimerKey, TimerManager, TimerPurpose

from .calculations import find_funding_opportunity, find_price_opportunities
from .structures import OpportunityList

OpportunityHandler = Callable[[OpportunityList], Union[None, Awaitable[None]]]

ENGINE_TIMER_OWNER = "arbitrage"


class EngineStatistics(Struct):
    scans_completed: int = 0
    scans_failed: int = 0
    price_opportunities: int = 0
    funding_opportunities: int = 0
    last_scan_time: float = 0.0
    last_scan_opportunities: int = 0


class ArbitrageEngine:
    """
    Timer driven opportunity scanner.

    Args:
        store: Market data store to read
        provider_configs: Provider name -> config (taker fee source)
        config: Thresholds and scan interval
        handler: Sync or async callable receiving each scan's opportunities
            (defaults to logging them)
        timers: Timer manager owning the scan timer
    """

    def __init__(self,
                 store: MarketDataStore,
                 provider_configs: Mapping[str, ProviderConfig],
                 config: Optional[ArbitrageConfig] = None,
                 handler: Optional[OpportunityHandler] = None,
                 timers: Optional[TimerManager] = None,
                 logger: Optional[HFTLogger] = None):
        self.store = store
        self.provider_configs = dict(provider_configs)
        self.config = config or ArbitrageConfig()
        self.config.validate()
        self.logger = logger or get_logger('arbitrage.engine')
        self.handler = handler or self._log_opportunities
        self.timers = timers or TimerManager("arbitrage", self.logger)
        self.statistics = EngineStatistics()
        self._scan_key = TimerKey(ENGINE_TIMER_OWNER, None, TimerPurpose.ARBITRAGE_SCAN)

    @property
    def is_running(self) -> bool:
        return self.timers.is_scheduled(self._scan_key)

    def scan(self) -> OpportunityList:
        """
        Evaluate every symbol and provider pair once.

        Pairs follow the store's provider discovery order for the symbol.
        """
        opportunities: OpportunityList = []

        for symbol in self.store.get_symbols():
            entries = self.store.get_all_data(symbol)
            for (provider_a, data_a), (provider_b, data_b) in combinations(entries.items(), 2):
                if data_a.orderbook is not None and data_b.orderbook is not None:
                    config_a = self.provider_configs.get(provider_a)
                    config_b = self.provider_configs.get(provider_b)
                    if config_a is None or config_b is None:
                        self.logger.debug("Skipping price check, provider config missing",
                                          symbol=symbol, provider_a=provider_a, provider_b=provider_b)
                    else:
                        opportunities.extend(find_price_opportunities(
                            symbol,
                            provider_a, data_a.orderbook, config_a.taker_fee,
                            provider_b, data_b.orderbook, config_b.taker_fee,
                            self.config.min_price_profit,
                        ))

                if data_a.funding is not None and data_b.funding is not None:
                    opportunity = find_funding_opportunity(
                        symbol,
                        provider_a, data_a.funding.funding_rate,
                        provider_b, data_b.funding.funding_rate,
                        self.config.min_funding_apy_diff,
                    )
                    if opportunity is not None:
                        opportunities.append(opportunity)

        return opportunities

    async def run_scan(self) -> OpportunityList:
        """Scan once, update counters and deliver the result to the handler."""
        try:
            with LoggingTimer(self.logger, "arbitrage_scan"):
                opportunities = self.scan()
        except Exception as e:
            self.statistics.scans_failed += 1
            self.logger.error("Arbitrage scan failed", error_type=type(e).__name__, error_message=str(e))
            return []

        self._record(opportunities)

        try:
            result = self.handler(opportunities)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.error("Opportunity handler failed", error_type=type(e).__name__, error_message=str(e))

        return opportunities

    def start(self) -> None:
        if self.is_running:
            return
        self.timers.call_every(self._scan_key, self.config.scan_interval, self.run_scan)
        self.logger.info("Arbitrage engine started", scan_interval=self.config.scan_interval)

    async def stop(self) -> None:
        self.timers.cancel(self._scan_key)
        await self.timers.shutdown()
        self.logger.info("Arbitrage engine stopped",
                         scans=self.statistics.scans_completed,
                         price_opportunities=self.statistics.price_opportunities,
                         funding_opportunities=self.statistics.funding_opportunities)

    def _record(self, opportunities: OpportunityList) -> None:
        stats = self.statistics
        stats.scans_completed += 1
        stats.last_scan_time = time.time()
        stats.last_scan_opportunities = len(opportunities)
        for opportunity in opportunities:
            if opportunity.kind is OpportunityKind.PRICE:
                stats.price_opportunities += 1
            else:
                stats.funding_opportunities += 1
        self.logger.counter("opportunities_found", len(opportunities))

    def _log_opportunities(self, opportunities: OpportunityList) -> None:
        if not opportunities:
            self.logger.debug("No arbitrage opportunities")
            return
        self.logger.info(f"Found {len(opportunities)} arbitrage opportunities")
        for opportunity in opportunities:
            self.logger.info(str(opportunity), symbol=opportunity.symbol, magnitude=opportunity.magnitude)
