"""
PULSE SCANNER: Timeframe Metrics
Volatility and liquidity scores consumed by the prediction heuristics.
"""
from typing import Optional
import numpy as np
import pandas as pd

from pulse_scanner.data.models import TimeframeMetrics, Timeframe
from pulse_scanner.utils.helpers import clamp, epoch_ms, pct_change

NEUTRAL_SCORE = 50.0


def volatility_score(closes: pd.Series) -> float:
    """Population std of step-to-step % changes × 10, clamped to 0-100. Neutral below 2 prices."""
    closes = closes.dropna()
    if len(closes) < 2:
        return NEUTRAL_SCORE
    changes = closes.pct_change().iloc[1:] * 100.0
    changes = changes.replace([np.inf, -np.inf], np.nan).dropna()
    if changes.empty:
        return NEUTRAL_SCORE
    return round(clamp(float(changes.std(ddof=0)) * 10.0), 2)


def liquidity_score(
    volume: float,
    market_cap: Optional[float] = None,
    median_volume: Optional[float] = None,
) -> float:
    """
    Volume / market cap ratio scaled to 0-100 when market cap is known,
    otherwise volume relative to the market median (median volume = 50).
    """
    if market_cap:
        return round(clamp((volume / market_cap) * 100.0 * 200.0), 2)
    if not median_volume:
        return NEUTRAL_SCORE
    return round(clamp((volume / median_volume) * 50.0), 2)


def compute_timeframe_metrics(
    pair: str,
    timeframe: Timeframe,
    candles: pd.DataFrame,
    market_cap: Optional[float] = None,
    median_volume: Optional[float] = None,
    now_ms: Optional[int] = None,
) -> Optional[TimeframeMetrics]:
    """Metrics over the supplied window; None when the window is empty."""
    if candles.empty:
        return None

    first, last = candles.iloc[0], candles.iloc[-1]
    volume_change = None
    if first["volume"] > 0:
        volume_change = pct_change(float(first["volume"]), float(last["volume"]))

    return TimeframeMetrics(
        trading_pair=pair,
        timeframe=Timeframe(timeframe),
        price_start=float(first["close"]),
        price_end=float(last["close"]),
        price_change_pct=pct_change(float(first["close"]), float(last["close"])),
        volume_start=float(first["volume"]),
        volume_end=float(last["volume"]),
        volume_change_pct=volume_change,
        volatility_score=volatility_score(candles["close"]),
        liquidity_score=liquidity_score(float(last["volume"]), market_cap, median_volume),
        timestamp=now_ms if now_ms is not None else epoch_ms(),
    )
