"""
TradePulse - technical-indicator trading signals with multi-channel notification.

Market data from the Yahoo chart endpoint (cached, throttled, stale fallback), indicators
(RSI, MACD, SMA/EMA, Bollinger), weighted signal scoring (BUY/SELL/HOLD with confidence,
risk, target and stop), and a workflow that persists, briefs and notifies over email,
document log, task tracker and chat alert with isolated per-channel failures.

Classes (main):
    Quote, HistorySeries, MarketDataFetcher, YahooChartSource
    Indicators
    TradingSignal, SignalAction, RiskLevel, SignalGenerator
    Briefing, BriefingGenerator
    WorkflowConfig, WorkflowResult, TradingWorkflow
Functions:
    compute_indicators, score, build_workflow
"""

__version__ = "0.1.0"

from .components.datasource import (
    Quote,
    HistorySeries,
    MarketDataFetcher,
    YahooChartSource,
)

from .components.tools import (
    Indicators,
    compute_indicators,
)

from .components.signals import (
    TradingSignal,
    SignalAction,
    RiskLevel,
    SignalGenerator,
    score,
)

from .components.briefing import (
    Briefing,
    BriefingGenerator,
)

from .components.workflow import (
    WorkflowConfig,
    WorkflowResult,
    TradingWorkflow,
    build_workflow,
)
