"""
Trading workflow: signal -> persistence -> briefing -> channel fan-out -> metrics.

Two failure levels:
    fatal      Signal generation or briefing generation failed; run stops, success=False
    isolated   One channel failed; recorded in actions/errors/step log, run continues

success=True means the pipeline ran to completion; callers read actions and errors for the
per-channel outcome. Persistence (signal, briefing, step log, metrics) is best-effort: a store
failure is logged and the run continues.

Classes:
    ChannelOutcome   channel, delivered, error
    TradingWorkflow  Orchestrator

TradingWorkflow methods:
    .run(config: WorkflowConfig) -> WorkflowResult
        Hourly signal workflow (all enabled channels, task tracker only for BUY/SELL,
        chat alert only for confidence >= chat_alert_min_confidence)
    .run_morning_briefing(config) -> WorkflowResult
        Signal + morning briefing, email only
    .run_evening_review(config) -> WorkflowResult
        Today's stored signals + daily performance -> evening review, email only; no market fetch

Functions:
    build_workflow(settings: TradingSettings, store=None) -> TradingWorkflow
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from ..briefing.briefing import Briefing, BriefingGenerator
from ..control.clock import Clock, get_clock
from ..errors import WorkflowFatalError
from ..notify.channels import NotificationChannel
from ..signals.generator import SignalGenerator
from ..signals.signal_models import TradingSignal
from .models import (
    CHANNEL_CHAT_ALERT,
    CHANNEL_EMAIL,
    CHANNEL_TASK_TRACKER,
    CHANNELS,
    ChannelActions,
    WorkflowConfig,
    WorkflowResult,
    WorkflowStatus,
    WorkflowStepLogEntry,
    WorkflowType,
)

if TYPE_CHECKING:
    from ..config import TradingSettings
    from ..signals.signal_store import SignalStore

logger = logging.getLogger(__name__)

CHAT_ALERT_MIN_CONFIDENCE = 80
CHANNEL_NOT_CONFIGURED = "channel not configured"


def _error_text(e: BaseException) -> str:
    return str(e) or e.__class__.__name__


@dataclass(frozen=True)
class ChannelOutcome:
    """Result of one channel delivery attempt."""
    channel: str
    delivered: bool
    error: Optional[str] = None


class TradingWorkflow:
    """
    Orchestrates one workflow run per call.

    Features:
    - Fixed channel order email, document_log, task_tracker, chat_alert
    - Each channel attempt captured as a ChannelOutcome; a failure never aborts siblings
    - Optional concurrent dispatch on a thread pool, bounded by channel_timeout
    """

    def __init__(
        self,
        generator: SignalGenerator,
        briefings: BriefingGenerator,
        store: Optional[SignalStore] = None,
        channels: Optional[Mapping[str, NotificationChannel]] = None,
        clock: Optional[Clock] = None,
        chat_alert_min_confidence: int = CHAT_ALERT_MIN_CONFIDENCE,
        parallel_dispatch: bool = False,
        channel_timeout: float = 30.0,
    ):
        self.generator = generator
        self.briefings = briefings
        self.store = store
        self.channels: dict[str, NotificationChannel] = dict(channels or {})
        self._clock = clock or get_clock()
        self.chat_alert_min_confidence = chat_alert_min_confidence
        self.parallel_dispatch = parallel_dispatch
        self.channel_timeout = channel_timeout

    # ---- persistence (best-effort) ----

    def _persist(self, what: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        if self.store is None:
            return False
        try:
            fn(*args, **kwargs)
            return True
        except Exception as e:
            logger.error("Persist %s failed: %s", what, e, exc_info=True)
            return False

    def _log_step(
        self,
        config: WorkflowConfig,
        workflow_type: WorkflowType,
        status: WorkflowStatus,
        step: str,
        message: str,
        signal_id: Optional[str] = None,
    ) -> None:
        logger.info("[%s %s] %s/%s: %s", workflow_type.value, config.symbol, status.value, step, message)
        if self.store is None:
            return
        entry = WorkflowStepLogEntry(
            symbol=config.symbol,
            status=status,
            step=step,
            message=message,
            signal_id=signal_id,
            user_id=config.user_id,
            project_id=config.project_id,
            workflow_type=workflow_type,
            created_at=self._clock.now(),
        )
        self._persist("workflow step", self.store.log_workflow_step, entry)

    def _store_signal(self, config: WorkflowConfig, signal: TradingSignal) -> bool:
        if self.store is None:
            return False
        return self._persist("signal", self.store.store_signal, signal,
                             user_id=config.user_id, project_id=config.project_id)

    def _store_briefing(self, config: WorkflowConfig, briefing: Briefing) -> bool:
        if self.store is None:
            return False
        return self._persist("briefing", self.store.store_briefing, briefing,
                             user_id=config.user_id, project_id=config.project_id)

    def _update_metrics(self, signal: TradingSignal) -> None:
        if self.store is None:
            return
        self._persist("performance metrics", self.store.update_performance_metrics, signal)

    # ---- channel fan-out ----

    def eligible_channels(self, config: WorkflowConfig, signal: TradingSignal) -> list[str]:
        """Enabled channels that pass their gate, in dispatch order."""
        names = []
        for name in CHANNELS:
            if not config.channel_enabled(name):
                continue
            if name == CHANNEL_TASK_TRACKER and not signal.is_actionable:
                continue
            if name == CHANNEL_CHAT_ALERT and signal.confidence < self.chat_alert_min_confidence:
                continue
            names.append(name)
        return names

    def _deliver_one(self, name: str, signal: Optional[TradingSignal], briefing: Briefing) -> ChannelOutcome:
        channel = self.channels.get(name)
        if channel is None:
            return ChannelOutcome(name, False, CHANNEL_NOT_CONFIGURED)
        try:
            channel.deliver(signal, briefing)
        except Exception as e:
            logger.warning("Channel %s failed: %s", name, e)
            return ChannelOutcome(name, False, _error_text(e))
        return ChannelOutcome(name, True)

    def dispatch(
        self,
        names: list[str],
        signal: Optional[TradingSignal],
        briefing: Briefing,
    ) -> list[ChannelOutcome]:
        """Deliver to each named channel; one outcome per name, same order."""
        if not names:
            return []
        if not self.parallel_dispatch or len(names) == 1:
            return [self._deliver_one(name, signal, briefing) for name in names]

        executor = ThreadPoolExecutor(max_workers=len(names), thread_name_prefix="channel")
        try:
            futures = {name: executor.submit(self._deliver_one, name, signal, briefing) for name in names}
            wait(list(futures.values()), timeout=self.channel_timeout)
            outcomes = []
            for name in names:
                future = futures[name]
                if future.done():
                    outcomes.append(future.result())
                else:
                    future.cancel()
                    outcomes.append(ChannelOutcome(name, False, f"timeout after {self.channel_timeout}s"))
            return outcomes
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _fold(
        self,
        config: WorkflowConfig,
        workflow_type: WorkflowType,
        outcomes: list[ChannelOutcome],
        actions: ChannelActions,
        errors: list[str],
        signal_id: Optional[str],
    ) -> None:
        for outcome in outcomes:
            actions.set(outcome.channel, outcome.delivered)
            if outcome.delivered:
                self._log_step(config, workflow_type, WorkflowStatus.RUNNING,
                               f"{outcome.channel}_sent", f"{outcome.channel} delivered", signal_id)
            else:
                errors.append(f"{outcome.channel} failed: {outcome.error}")
                self._log_step(config, workflow_type, WorkflowStatus.RUNNING,
                               f"{outcome.channel}_failed", outcome.error or "", signal_id)

    # ---- shared steps ----

    def _generate_signal(self, config: WorkflowConfig, workflow_type: WorkflowType) -> TradingSignal:
        self._log_step(config, workflow_type, WorkflowStatus.RUNNING,
                       "signal_generation", "Generating trading signal")
        try:
            return self.generator.generate(config.symbol)
        except Exception as e:
            raise WorkflowFatalError(_error_text(e)) from e

    def _persist_signal(self, config: WorkflowConfig, workflow_type: WorkflowType, signal: TradingSignal) -> None:
        stored = self._store_signal(config, signal)
        message = "Signal stored in database" if stored else "Signal not persisted"
        self._log_step(config, workflow_type, WorkflowStatus.RUNNING, "signal_stored", message, signal.id)

    def _make_briefing(
        self,
        config: WorkflowConfig,
        workflow_type: WorkflowType,
        build: Callable[[], Briefing],
        signal_id: Optional[str],
    ) -> Briefing:
        try:
            briefing = build()
        except Exception as e:
            raise WorkflowFatalError(_error_text(e)) from e
        self._store_briefing(config, briefing)
        self._log_step(config, workflow_type, WorkflowStatus.RUNNING,
                       "briefing_generated", f"Briefing generated: {briefing.subject}", signal_id)
        return briefing

    def _fail(
        self,
        config: WorkflowConfig,
        workflow_type: WorkflowType,
        error: WorkflowFatalError,
        actions: ChannelActions,
        errors: list[str],
        signal: Optional[TradingSignal] = None,
    ) -> WorkflowResult:
        message = _error_text(error)
        logger.error("[%s %s] workflow failed: %s", workflow_type.value, config.symbol, message)
        self._log_step(config, workflow_type, WorkflowStatus.FAILED, "workflow_failed", message,
                       signal.id if signal else None)
        return WorkflowResult(success=False, signal=signal, actions=actions, errors=[*errors, message])

    def _complete(
        self,
        config: WorkflowConfig,
        workflow_type: WorkflowType,
        signal_id: Optional[str],
    ) -> None:
        self._log_step(config, workflow_type, WorkflowStatus.COMPLETED,
                       "workflow_completed", "Workflow completed successfully", signal_id)

    # ---- workflows ----

    def run(self, config: WorkflowConfig) -> WorkflowResult:
        """
        Run the signal workflow for one symbol.

        Args:
            config: Symbol and channel flags

        Returns:
            WorkflowResult (never raises for operational failures)
        """
        workflow_type = WorkflowType.TRADING_SIGNAL
        actions = ChannelActions()
        errors: list[str] = []
        signal: Optional[TradingSignal] = None
        logger.info("Starting workflow for %s", config.symbol)
        try:
            signal = self._generate_signal(config, workflow_type)
            logger.info("Signal generated: %s with %s%% confidence", signal.action.value, signal.confidence)
            self._persist_signal(config, workflow_type, signal)
            briefing = self._make_briefing(
                config, workflow_type, lambda: self.briefings.hourly_update(signal), signal.id
            )
        except WorkflowFatalError as e:
            return self._fail(config, workflow_type, e, actions, errors, signal)

        outcomes = self.dispatch(self.eligible_channels(config, signal), signal, briefing)
        self._fold(config, workflow_type, outcomes, actions, errors, signal.id)

        self._update_metrics(signal)
        self._complete(config, workflow_type, signal.id)
        logger.info("Workflow completed for %s: actions=%s errors=%s",
                    config.symbol, actions.to_dict(), len(errors))
        return WorkflowResult(success=True, signal=signal, briefing=briefing, actions=actions, errors=errors)

    def run_morning_briefing(self, config: WorkflowConfig) -> WorkflowResult:
        """Generate a signal and the morning briefing; email it when enabled."""
        workflow_type = WorkflowType.MORNING_BRIEFING
        actions = ChannelActions()
        errors: list[str] = []
        signal: Optional[TradingSignal] = None
        try:
            signal = self._generate_signal(config, workflow_type)
            self._persist_signal(config, workflow_type, signal)
            briefing = self._make_briefing(
                config, workflow_type, lambda: self.briefings.morning_briefing([signal]), signal.id
            )
        except WorkflowFatalError as e:
            return self._fail(config, workflow_type, e, actions, errors, signal)

        names = [CHANNEL_EMAIL] if config.enable_email else []
        self._fold(config, workflow_type, self.dispatch(names, signal, briefing), actions, errors, signal.id)
        self._update_metrics(signal)
        self._complete(config, workflow_type, signal.id)
        return WorkflowResult(success=True, signal=signal, briefing=briefing, actions=actions, errors=errors)

    def run_evening_review(self, config: WorkflowConfig) -> WorkflowResult:
        """Review today's stored signals; email it when enabled. No market data is fetched."""
        workflow_type = WorkflowType.EVENING_REVIEW
        actions = ChannelActions()
        errors: list[str] = []
        today = self._clock.now().date().isoformat()
        signals: list[TradingSignal] = []
        performance = None
        if self.store is not None:
            try:
                signals = self.store.list_signals(symbol=config.symbol, date_from=today, date_to=today)
                performance = self.store.get_performance(config.symbol, today)
            except Exception as e:
                logger.error("Read today's signals failed for %s: %s", config.symbol, e, exc_info=True)
        try:
            briefing = self._make_briefing(
                config, workflow_type, lambda: self.briefings.evening_review(signals, performance), None
            )
        except WorkflowFatalError as e:
            return self._fail(config, workflow_type, e, actions, errors)

        latest = signals[0] if signals else None
        names = [CHANNEL_EMAIL] if config.enable_email else []
        self._fold(config, workflow_type, self.dispatch(names, latest, briefing), actions, errors,
                   latest.id if latest else None)
        self._complete(config, workflow_type, latest.id if latest else None)
        return WorkflowResult(success=True, signal=latest, briefing=briefing, actions=actions, errors=errors)


def build_workflow(settings: TradingSettings, store: Optional[SignalStore] = None) -> TradingWorkflow:
    """
    Wire a TradingWorkflow from settings: Yahoo source, shared throttle, SQLite store, channels.

    Args:
        settings: Loaded settings
        store: Store override (default: global signal store)
    """
    from ..datasource.fetcher import MarketDataFetcher
    from ..datasource.source import YahooChartSource
    from ..notify.channels import build_channels
    from ..signals.signal_store import get_signal_store
    from ..utils.cache import TTLCache
    from ..utils.throttle import get_default_throttle

    throttle = get_default_throttle()
    throttle.min_interval = settings.data.min_request_interval
    fetcher = MarketDataFetcher(
        source=YahooChartSource(base_url=settings.data.base_url, timeout=settings.data.timeout),
        cache=TTLCache(max_size=settings.data.cache_max_size, default_ttl=settings.data.quote_ttl),
        throttle=throttle,
        quote_ttl=settings.data.quote_ttl,
        history_ttl=settings.data.history_ttl,
    )
    generator = SignalGenerator(
        fetcher,
        history_interval=settings.history_interval,
        history_periods=settings.history_periods,
    )
    return TradingWorkflow(
        generator=generator,
        briefings=BriefingGenerator(user_name=settings.user_name),
        store=store or get_signal_store(),
        channels=build_channels(settings),
        chat_alert_min_confidence=settings.workflow.chat_alert_min_confidence,
        parallel_dispatch=settings.workflow.parallel_dispatch,
        channel_timeout=settings.workflow.channel_timeout,
    )
