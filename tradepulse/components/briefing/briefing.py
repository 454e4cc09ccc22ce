"""
Briefing generator: plain-text briefings built from trading signals.

Pure string templating; no I/O. Briefings are persisted by the store and delivered by the
notification channels.

Classes:
    BriefingType       Enum: morning, hourly, evening, alert
    AlertType          Enum: strong_buy, strong_sell, target_reached, stop_loss
    Briefing           id, timestamp, briefing_type, subject, content, summary, signals (ids), performance?
    BriefingGenerator  Builds briefings for a named recipient

BriefingGenerator methods:
    .hourly_update(signal: TradingSignal) -> Briefing
    .morning_briefing(signals: list[TradingSignal]) -> Briefing
    .evening_review(signals: list[TradingSignal], performance: Optional[DailyPerformance]) -> Briefing
    .alert(signal: TradingSignal, alert_type: AlertType) -> Briefing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from ..control.clock import Clock, get_clock, make_briefing_id
from ..signals.signal_models import DailyPerformance, SignalAction, TradingSignal


class BriefingType(Enum):
    MORNING = "morning"
    HOURLY = "hourly"
    EVENING = "evening"
    ALERT = "alert"


class AlertType(Enum):
    STRONG_BUY = "strong_buy"
    STRONG_SELL = "strong_sell"
    TARGET_REACHED = "target_reached"
    STOP_LOSS = "stop_loss"


@dataclass(frozen=True)
class Briefing:
    """Rendered briefing."""
    id: str
    timestamp: datetime
    briefing_type: BriefingType
    subject: str
    content: str
    summary: str
    signals: tuple[str, ...] = field(default_factory=tuple)
    performance: Optional[DailyPerformance] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "briefing_type": self.briefing_type.value,
            "subject": self.subject,
            "content": self.content,
            "summary": self.summary,
            "signals": list(self.signals),
            "performance": self.performance.to_dict() if self.performance else None,
        }


def _money(value: Optional[float]) -> str:
    return f"${value:.2f}" if value is not None else "N/A"


def _change_percent(signal: TradingSignal) -> str:
    return f"{signal.quote.change_percent:.2f}%" if signal.quote else "N/A"


def _recommendation(signal: Optional[TradingSignal]) -> str:
    if signal is None:
        return "Awaiting market data to generate recommendations."
    strong = signal.confidence >= 70
    if signal.action is SignalAction.BUY and strong:
        return (f"Strong buying opportunity. Indicators are aligned for upward movement "
                f"({signal.risk_level.value} risk). Stop loss {_money(signal.stop_loss)}, "
                f"target {_money(signal.target_price)}.")
    if signal.action is SignalAction.BUY:
        return ("Moderate buying opportunity. Indicators lean bullish with moderate confidence; "
                "consider a smaller position or wait for confirmation.")
    if signal.action is SignalAction.SELL and strong:
        return ("Strong selling signal. Consider taking profits on open positions "
                "and avoid new long positions.")
    if signal.action is SignalAction.SELL:
        return "Moderate selling pressure. Consider reducing exposure or tightening stop losses."
    return "Mixed signals. Wait for a clearer direction before acting."


def _daily_insights(signals: list[TradingSignal]) -> str:
    buys = sum(1 for s in signals if s.action is SignalAction.BUY)
    sells = sum(1 for s in signals if s.action is SignalAction.SELL)
    holds = len(signals) - buys - sells
    text = f"Today we generated {len(signals)} signals: {buys} BUY, {sells} SELL, {holds} HOLD. "
    if buys > sells:
        text += "Sentiment was predominantly bullish."
    elif sells > buys:
        text += "Sentiment was predominantly bearish."
    else:
        text += "The market was indecisive."
    return text


class BriefingGenerator:
    """Renders briefings; clock and id factory are injectable for deterministic output."""

    def __init__(
        self,
        user_name: str = "Trader",
        clock: Optional[Clock] = None,
        id_factory: Callable[[str, datetime], str] = make_briefing_id,
        sender_name: str = "TradePulse",
    ):
        self.user_name = user_name
        self.sender_name = sender_name
        self._clock = clock or get_clock()
        self._id_factory = id_factory

    def _new(self, kind: BriefingType, **kwargs: Any) -> Briefing:
        now = self._clock.now()
        return Briefing(id=self._id_factory(kind.value, now), timestamp=now, briefing_type=kind, **kwargs)

    def hourly_update(self, signal: TradingSignal) -> Briefing:
        """Short update for the signal just generated."""
        now = self._clock.now()
        if signal.is_actionable:
            verb = "entering a position" if signal.action is SignalAction.BUY else "taking profits or reducing exposure"
            action_text = (f"Action required: consider {verb}. "
                           f"Target: {_money(signal.target_price)}, Stop: {_money(signal.stop_loss)}")
        else:
            action_text = "No action needed. Continue monitoring."
        technical = "\n".join(signal.reasoning.splitlines()[:5])
        content = "\n".join([
            f"Hourly Update - {now.strftime('%H:%M UTC')}",
            "",
            f"Hi {self.user_name},",
            "",
            f"Quick update on {signal.symbol}:",
            f"Latest Signal: {signal.action.value}",
            f"Price: {_money(signal.price)} ({_change_percent(signal)})",
            f"Confidence: {signal.confidence}%",
            "",
            action_text,
            "",
            "Technical Summary:",
            technical,
            "",
            f"-- {self.sender_name}",
        ])
        return self._new(
            BriefingType.HOURLY,
            subject=f"Hourly Update - {signal.symbol} {signal.action.value} Signal",
            content=content,
            summary=f"{signal.action.value} at {_money(signal.price)}",
            signals=(signal.id,),
        )

    def morning_briefing(self, signals: list[TradingSignal]) -> Briefing:
        """Pre-market brief around the most recent signal (first in the list)."""
        now = self._clock.now()
        current = signals[0] if signals else None
        lines = [
            f"Good morning, {self.user_name}!",
            "",
            f"Daily Trading Brief - {now.strftime('%A, %B %d, %Y')}",
            "",
        ]
        if current is not None:
            i = current.indicators
            rsi_label = "Oversold" if i.rsi < 30 else "Overbought" if i.rsi > 70 else "Neutral"
            macd_label = "Bullish" if i.macd.histogram > 0 else "Bearish"
            lines += [
                f"{current.symbol}: {current.action.value} at {_money(current.price)} "
                f"({_change_percent(current)})",
                f"Confidence: {current.confidence}%  Risk: {current.risk_level.value}",
                "",
                "Key Indicators:",
                f"- RSI: {i.rsi:.2f} ({rsi_label})",
                f"- MACD: {i.macd.value:.2f} ({macd_label})",
                f"- SMA20: {_money(i.moving_averages.sma20)}",
                f"- SMA50: {_money(i.moving_averages.sma50)}",
            ]
            if current.target_price is not None:
                lines.append(f"- Target: {_money(current.target_price)}")
            if current.stop_loss is not None:
                lines.append(f"- Stop Loss: {_money(current.stop_loss)}")
        else:
            lines.append("No signal available yet.")
        lines += ["", "Recommendation:", _recommendation(current), "", f"-- {self.sender_name}"]

        if current is not None:
            summary = (f"{current.action.value} signal generated for {current.symbol} at "
                       f"{_money(current.price)} with {current.confidence}% confidence")
        else:
            summary = "Morning briefing prepared - awaiting market data"
        return self._new(
            BriefingType.MORNING,
            subject=f"Morning Trading Brief - {now.date().isoformat()}",
            content="\n".join(lines),
            summary=summary,
            signals=tuple(s.id for s in signals),
        )

    def evening_review(
        self,
        signals: list[TradingSignal],
        performance: Optional[DailyPerformance] = None,
    ) -> Briefing:
        """End-of-day review of the day's signals and aggregate."""
        now = self._clock.now()
        lines = [
            f"Good evening, {self.user_name}!",
            "",
            f"Daily Review - {now.date().isoformat()}",
            "",
        ]
        if performance is not None and performance.total_signals:
            lines += [
                f"Signals: {performance.total_signals} "
                f"({performance.buy_count} BUY, {performance.sell_count} SELL, {performance.hold_count} HOLD)",
                f"Average confidence: {performance.avg_confidence:.1f}%",
                f"Average technical score: {performance.avg_technical_score:.1f}",
                "",
            ]
        else:
            lines += ["No performance data recorded today.", ""]
        for n, s in enumerate(signals, 1):
            lines.append(f"Signal {n} ({s.timestamp.strftime('%H:%M')}): {s.action.value} "
                         f"at {_money(s.price)}, {s.confidence}% confidence")
        if signals:
            lines.append("")
        lines += [_daily_insights(signals), "", f"-- {self.sender_name}"]

        if performance is not None and performance.total_signals:
            subject = f"Evening Review - {performance.total_signals} signals"
            summary = (f"{performance.total_signals} signals, "
                       f"avg confidence {performance.avg_confidence:.1f}%")
        else:
            subject = "Evening Review - No Signals"
            summary = "No trading activity today"
        return self._new(
            BriefingType.EVENING,
            subject=subject,
            content="\n".join(lines),
            summary=summary,
            signals=tuple(s.id for s in signals),
            performance=performance,
        )

    def alert(self, signal: TradingSignal, alert_type: AlertType) -> Briefing:
        """Urgent alert for a significant event."""
        messages = {
            AlertType.STRONG_BUY: f"STRONG BUY SIGNAL - {signal.symbol} at {_money(signal.price)} "
                                  f"with {signal.confidence}% confidence",
            AlertType.STRONG_SELL: f"STRONG SELL SIGNAL - {signal.symbol} at {_money(signal.price)} "
                                   f"with {signal.confidence}% confidence",
            AlertType.TARGET_REACHED: f"TARGET REACHED - {signal.symbol} hit {_money(signal.target_price)}",
            AlertType.STOP_LOSS: f"STOP LOSS TRIGGERED - {signal.symbol} hit {_money(signal.stop_loss)}",
        }
        actions = {
            AlertType.STRONG_BUY: "Consider entering a position.",
            AlertType.STRONG_SELL: "Consider exiting the position or taking profits.",
            AlertType.TARGET_REACHED: "Consider taking profits.",
            AlertType.STOP_LOSS: "Exit the position to limit losses.",
        }
        message = messages[alert_type]
        content = "\n".join([
            f"ALERT - {self._clock.now().strftime('%H:%M UTC')}",
            "",
            message,
            "",
            signal.reasoning,
            "",
            f"Recommended action: {actions[alert_type]}",
        ])
        return self._new(
            BriefingType.ALERT,
            subject=message,
            content=content,
            summary=message,
            signals=(signal.id,),
        )
