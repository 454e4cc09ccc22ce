"""
Signal scorer: weighted point accumulation over indicators -> action, confidence, risk, targets.

Pure logic over an already-fetched quote and already-computed indicators.

Functions:
    score(quote: Quote, indicators: Indicators) -> SignalAssessment

Scoring rules (points):
    RSI         < 30 -> +3 bullish; < 40 -> +1 bullish; > 70 -> +3 bearish; > 60 -> +1 bearish
    MACD        histogram > 0 -> +2 bullish; < 0 -> +2 bearish
    MA          price above SMA20 and SMA50 -> +2 bullish; below both -> +2 bearish
                SMA20 > SMA50 -> +1 bullish (golden cross); SMA20 < SMA50 -> +1 bearish (death cross)
    Bollinger   price <= lower -> +2 bullish; price >= upper -> +2 bearish

Decision:
    technical_score = clamp((bullish - bearish) * 10, -100, 100)
    score >= 40 -> BUY, confidence min(95, 50 + score/2)
    score <= -40 -> SELL, confidence min(95, 50 + |score|/2)
    otherwise HOLD, confidence 50 + |score|
    risk: directional |score| >= 60 -> LOW, else MEDIUM; HOLD -> MEDIUM
    BUY target max(price*1.02, upper), stop min(price*0.99, lower)
    SELL target min(price*0.98, lower), stop max(price*1.01, upper)
"""

from __future__ import annotations

import math
from typing import Optional

from ..datasource.base import Quote
from ..tools.indicators import Indicators
from .signal_models import RiskLevel, SignalAction, SignalAssessment

BUY_THRESHOLD = 40
SELL_THRESHOLD = -40
LOW_RISK_SCORE = 60
MAX_DIRECTIONAL_CONFIDENCE = 95
POINT_WEIGHT = 10


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _pct(target: float, price: float) -> str:
    return f"{(target - price) / price * 100:+.2f}%" if price else "n/a"


def score(quote: Quote, indicators: Indicators) -> SignalAssessment:
    """
    Score a quote against its indicators.

    Args:
        quote: Current quote (price is what gets compared against the bands/averages)
        indicators: Indicator snapshot

    Returns:
        SignalAssessment (no id / timestamp)
    """
    lines: list[str] = []
    bullish = 0
    bearish = 0
    price = quote.price

    rsi_value = indicators.rsi
    if rsi_value < 30:
        bullish += 3
        lines.append(f"RSI oversold at {rsi_value:.2f} (strong buy signal)")
    elif rsi_value < 40:
        bullish += 1
        lines.append(f"RSI at {rsi_value:.2f} (mild buy signal)")
    elif rsi_value > 70:
        bearish += 3
        lines.append(f"RSI overbought at {rsi_value:.2f} (strong sell signal)")
    elif rsi_value > 60:
        bearish += 1
        lines.append(f"RSI at {rsi_value:.2f} (mild sell signal)")
    else:
        lines.append(f"RSI neutral at {rsi_value:.2f}")

    histogram = indicators.macd.histogram
    if histogram > 0:
        bullish += 2
        lines.append(f"MACD bullish (histogram: {histogram:.2f})")
    elif histogram < 0:
        bearish += 2
        lines.append(f"MACD bearish (histogram: {histogram:.2f})")

    sma20 = indicators.moving_averages.sma20
    sma50 = indicators.moving_averages.sma50
    if price > sma20 and price > sma50:
        bullish += 2
        lines.append(f"Price above both SMA20 (${sma20:.2f}) and SMA50 (${sma50:.2f})")
    elif price < sma20 and price < sma50:
        bearish += 2
        lines.append(f"Price below both SMA20 (${sma20:.2f}) and SMA50 (${sma50:.2f})")

    if sma20 > sma50:
        bullish += 1
        lines.append("Golden cross pattern (SMA20 > SMA50)")
    elif sma20 < sma50:
        bearish += 1
        lines.append("Death cross pattern (SMA20 < SMA50)")

    upper = indicators.bollinger_bands.upper
    lower = indicators.bollinger_bands.lower
    if price <= lower:
        bullish += 2
        lines.append(f"Price at lower Bollinger Band (${lower:.2f}) - potential bounce")
    elif price >= upper:
        bearish += 2
        lines.append(f"Price at upper Bollinger Band (${upper:.2f}) - potential reversal")

    technical_score = max(-100, min(100, (bullish - bearish) * POINT_WEIGHT))

    target_price: Optional[float] = None
    stop_loss: Optional[float] = None
    if technical_score >= BUY_THRESHOLD:
        action = SignalAction.BUY
        confidence = min(MAX_DIRECTIONAL_CONFIDENCE, _round_half_up(50 + technical_score / 2))
        risk = RiskLevel.LOW if technical_score >= LOW_RISK_SCORE else RiskLevel.MEDIUM
        target_price = max(price * 1.02, upper)
        stop_loss = min(price * 0.99, lower)
    elif technical_score <= SELL_THRESHOLD:
        action = SignalAction.SELL
        confidence = min(MAX_DIRECTIONAL_CONFIDENCE, _round_half_up(50 + abs(technical_score) / 2))
        risk = RiskLevel.LOW if abs(technical_score) >= LOW_RISK_SCORE else RiskLevel.MEDIUM
        target_price = min(price * 0.98, lower)
        stop_loss = max(price * 1.01, upper)
    else:
        action = SignalAction.HOLD
        confidence = _round_half_up(50 + abs(technical_score))
        risk = RiskLevel.MEDIUM

    reasoning = _build_reasoning(
        action, confidence, risk, technical_score, bullish, bearish,
        lines, price, target_price, stop_loss,
    )
    return SignalAssessment(
        action=action,
        confidence=confidence,
        technical_score=technical_score,
        risk_level=risk,
        reasoning=reasoning,
        bullish_points=bullish,
        bearish_points=bearish,
        target_price=target_price,
        stop_loss=stop_loss,
    )


_RECOMMENDATIONS = {
    SignalAction.BUY: "Technical indicators suggest a buying opportunity. "
                      "Consider entering a position with proper risk management.",
    SignalAction.SELL: "Technical indicators suggest taking profits or avoiding new positions. "
                       "Consider reducing exposure.",
    SignalAction.HOLD: "Mixed signals suggest waiting for clearer market direction. "
                       "Monitor for a breakout above resistance or a breakdown below support.",
}


def _build_reasoning(
    action: SignalAction,
    confidence: int,
    risk: RiskLevel,
    technical_score: int,
    bullish: int,
    bearish: int,
    lines: list[str],
    price: float,
    target_price: Optional[float],
    stop_loss: Optional[float],
) -> str:
    parts = [
        "Technical Analysis Summary",
        f"Action: {action.value} with {confidence}% confidence",
        f"Risk Level: {risk.value}",
        f"Technical Score: {technical_score}/100 ({bullish} bullish vs {bearish} bearish points)",
        "",
        "Key Indicators:",
        *[f"- {line}" for line in lines],
        "",
        "Price Targets:",
        f"- Current Price: ${price:.2f}",
    ]
    if target_price is not None:
        parts.append(f"- Target Price: ${target_price:.2f} ({_pct(target_price, price)})")
    if stop_loss is not None:
        parts.append(f"- Stop Loss: ${stop_loss:.2f} ({_pct(stop_loss, price)})")
    parts += ["", f"Recommendation: {_RECOMMENDATIONS[action]}"]
    return "\n".join(parts)
