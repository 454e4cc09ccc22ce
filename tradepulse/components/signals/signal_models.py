"""
Trading signal models.

A TradingSignal is created once per workflow run from a quote and its indicators, then handed
read-only to persistence, the briefing generator and the notification channels.

Classes:
    SignalAction      Enum: BUY, SELL, HOLD
    RiskLevel         Enum: LOW, MEDIUM, HIGH
    SignalAssessment  Scorer output: action, confidence, technical_score, risk_level, reasoning, target/stop
    TradingSignal     Frozen dataclass: id, timestamp, symbol, action, price, confidence, indicators,
                      reasoning, technical_score, risk_level, target_price?, stop_loss?, quote?

TradingSignal methods:
    .from_assessment(signal_id, timestamp, quote, indicators, assessment) -> TradingSignal
    .to_dict() -> dict
    .from_dict(data) -> TradingSignal
    .is_actionable -> bool   (BUY or SELL)

DailyPerformance:
    Per-symbol per-day signal aggregate (counts by action, average confidence/score, last signal id)
    .record(signal) -> DailyPerformance   New aggregate including one more signal
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..datasource.base import Quote
from ..tools.indicators import Indicators


class SignalAction(Enum):
    """Recommended action."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RiskLevel(Enum):
    """Risk level attached to a signal."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class SignalAssessment:
    """Everything the scorer decides; id and timestamp are added by the caller."""
    action: SignalAction
    confidence: int
    technical_score: int
    risk_level: RiskLevel
    reasoning: str
    bullish_points: int = 0
    bearish_points: int = 0
    target_price: Optional[float] = None
    stop_loss: Optional[float] = None


@dataclass(frozen=True)
class TradingSignal:
    """
    Generated trading signal.

    Attributes:
        id: "signal-{SYMBOL}-{epoch ms}"
        timestamp: Generation time (UTC)
        symbol: Upper-case symbol
        action: BUY | SELL | HOLD
        price: Quote price the signal was scored at
        confidence: 0..100 (directional actions capped at 95)
        indicators: Indicator snapshot used for scoring
        reasoning: Human-readable explanation, one line per scoring rule that fired
        technical_score: -100..100
        risk_level: LOW | MEDIUM | HIGH
        target_price, stop_loss: Set for BUY/SELL only
        quote: Quote snapshot (metadata)
    """
    id: str
    timestamp: datetime
    symbol: str
    action: SignalAction
    price: float
    confidence: int
    indicators: Indicators
    reasoning: str
    technical_score: int
    risk_level: RiskLevel
    target_price: Optional[float] = None
    stop_loss: Optional[float] = None
    quote: Optional[Quote] = None

    @property
    def is_actionable(self) -> bool:
        return self.action is not SignalAction.HOLD

    @classmethod
    def from_assessment(
        cls,
        signal_id: str,
        timestamp: datetime,
        quote: Quote,
        indicators: Indicators,
        assessment: SignalAssessment,
    ) -> TradingSignal:
        return cls(
            id=signal_id,
            timestamp=timestamp,
            symbol=quote.symbol.upper(),
            action=assessment.action,
            price=quote.price,
            confidence=assessment.confidence,
            indicators=indicators,
            reasoning=assessment.reasoning,
            technical_score=assessment.technical_score,
            risk_level=assessment.risk_level,
            target_price=assessment.target_price,
            stop_loss=assessment.stop_loss,
            quote=quote,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict (API / JSON / storage)."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "action": self.action.value,
            "price": self.price,
            "confidence": self.confidence,
            "indicators": self.indicators.to_dict(),
            "reasoning": self.reasoning,
            "technical_score": self.technical_score,
            "risk_level": self.risk_level.value,
            "target_price": self.target_price,
            "stop_loss": self.stop_loss,
            "quote": self.quote.to_dict() if self.quote else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TradingSignal:
        quote = data.get("quote")
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            symbol=data["symbol"],
            action=SignalAction(data["action"]),
            price=float(data["price"]),
            confidence=int(data["confidence"]),
            indicators=Indicators.from_dict(data["indicators"]),
            reasoning=data.get("reasoning", ""),
            technical_score=int(data["technical_score"]),
            risk_level=RiskLevel(data["risk_level"]),
            target_price=data.get("target_price"),
            stop_loss=data.get("stop_loss"),
            quote=Quote.from_dict(quote) if quote else None,
        )


@dataclass(frozen=True)
class DailyPerformance:
    """Signal activity for one symbol on one UTC day."""
    symbol: str
    date: str  # YYYY-MM-DD
    total_signals: int = 0
    buy_count: int = 0
    sell_count: int = 0
    hold_count: int = 0
    avg_confidence: float = 0.0
    avg_technical_score: float = 0.0
    last_signal_id: Optional[str] = None

    @classmethod
    def empty(cls, symbol: str, date: str) -> DailyPerformance:
        return cls(symbol=symbol.upper(), date=date)

    def record(self, signal: TradingSignal) -> DailyPerformance:
        """Running averages over one more signal."""
        n = self.total_signals + 1
        return DailyPerformance(
            symbol=self.symbol,
            date=self.date,
            total_signals=n,
            buy_count=self.buy_count + (signal.action is SignalAction.BUY),
            sell_count=self.sell_count + (signal.action is SignalAction.SELL),
            hold_count=self.hold_count + (signal.action is SignalAction.HOLD),
            avg_confidence=(self.avg_confidence * self.total_signals + signal.confidence) / n,
            avg_technical_score=(self.avg_technical_score * self.total_signals + signal.technical_score) / n,
            last_signal_id=signal.id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "date": self.date,
            "total_signals": self.total_signals,
            "buy_count": self.buy_count,
            "sell_count": self.sell_count,
            "hold_count": self.hold_count,
            "avg_confidence": self.avg_confidence,
            "avg_technical_score": self.avg_technical_score,
            "last_signal_id": self.last_signal_id,
        }
