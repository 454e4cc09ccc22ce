"""
Signal generator: fetch quote + indicators for a symbol, score them, stamp id and time.

Classes:
    SignalGenerator   .generate(symbol) -> TradingSignal
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..control.clock import Clock, get_clock, make_signal_id
from ..datasource.fetcher import MarketDataFetcher
from .scorer import score
from .signal_models import TradingSignal

logger = logging.getLogger(__name__)


class SignalGenerator:
    """Turns live market data into a TradingSignal."""

    def __init__(
        self,
        fetcher: MarketDataFetcher,
        clock: Optional[Clock] = None,
        id_factory: Callable[[str, datetime], str] = make_signal_id,
        history_interval: str = "5min",
        history_periods: int = 100,
    ):
        self.fetcher = fetcher
        self._clock = clock or get_clock()
        self._id_factory = id_factory
        self.history_interval = history_interval
        self.history_periods = history_periods

    def generate(self, symbol: str) -> TradingSignal:
        """
        Generate a signal for one symbol.

        Raises:
            DataFetchError: No quote/history obtainable
            IndicatorComputationError: History too short for the indicator windows
        """
        symbol = symbol.upper()
        logger.info("Generating signal for %s", symbol)
        quote = self.fetcher.get_quote(symbol)
        indicators = self.fetcher.get_indicators(symbol, self.history_interval, self.history_periods)
        assessment = score(quote, indicators)
        now = self._clock.now()
        signal = TradingSignal.from_assessment(
            signal_id=self._id_factory(symbol, now),
            timestamp=now,
            quote=quote,
            indicators=indicators,
            assessment=assessment,
        )
        logger.info("Signal generated: %s %s with %s%% confidence (score %s)",
                    signal.symbol, signal.action.value, signal.confidence, signal.technical_score)
        return signal
