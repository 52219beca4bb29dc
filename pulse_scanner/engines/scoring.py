"""
PULSE SCANNER: Prediction Scoring Strategies
Turns a candle history plus timeframe metrics into a directional call
(predicted % change, confidence). Scheduling and gating live elsewhere.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional
import numpy as np
import pandas as pd

from pulse_scanner.data.models import TimeframeMetrics
from pulse_scanner.config.settings import PredictionSettings, get_settings
from pulse_scanner.utils.helpers import clamp


class PredictionScore:
    """Output of a scoring strategy for one (pair, timeframe)."""

    def __init__(self, change_pct: float, confidence: float, quadrant: str = ""):
        self.change_pct = change_pct
        self.confidence = confidence
        self.quadrant = quadrant

    def to_dict(self) -> Dict[str, object]:
        return {
            "predicted_change_pct": self.change_pct,
            "confidence_score": self.confidence,
            "quadrant": self.quadrant,
        }

    def __repr__(self) -> str:
        return f"PredictionScore({self.quadrant}: {self.change_pct:+.2f}% @ {self.confidence:.2f})"


class PredictionStrategy(ABC):
    """Pluggable scoring. Replaceable by a trained model without touching the engine."""

    name: str = "base"

    @abstractmethod
    def score(self, candles: pd.DataFrame, metrics: TimeframeMetrics) -> Optional[PredictionScore]:
        pass


def classify_quadrant(bullish: bool, volume_increasing: bool) -> str:
    if bullish:
        return "bullish_confirmed" if volume_increasing else "bullish_unconfirmed"
    return "bearish_mixed" if volume_increasing else "bearish_confirmed"


class HeuristicTrendStrategy(PredictionStrategy):
    """
    Short vs long MA of closes sets the bias; last volume vs its short MA
    confirms it. The quadrant fixes the change and confidence ranges, a draw
    from the generator picks the value inside them, and the volatility score
    then scales both.
    """

    name = "heuristic_trend"

    def __init__(
        self,
        settings: Optional[PredictionSettings] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.settings = settings or get_settings().prediction
        self.rng = rng or np.random.default_rng()

    @staticmethod
    def _tail_mean(series: pd.Series, window: int) -> float:
        if len(series) < window:
            return float("nan")
        return float(series.iloc[-window:].mean())

    def signals(self, candles: pd.DataFrame) -> Dict[str, bool]:
        s = self.settings
        closes = candles["close"]
        volumes = candles["volume"]
        short_ma = self._tail_mean(closes, s.short_ma_window)
        long_ma = self._tail_mean(closes, s.long_ma_window)
        volume_ma = self._tail_mean(volumes, s.volume_ma_window)
        # NaN comparisons are False, so short history reads as bearish / flat volume
        return {
            "bullish": bool(short_ma > long_ma),
            "volume_increasing": bool(float(volumes.iloc[-1]) > volume_ma),
        }

    def adjust_for_volatility(self, change: float, confidence: float, volatility: float):
        s = self.settings
        if volatility > s.high_volatility_threshold:
            change *= s.high_volatility_magnitude_mult
            confidence *= s.high_volatility_confidence_mult
        elif volatility < s.low_volatility_threshold:
            change *= s.low_volatility_magnitude_mult
            confidence *= s.low_volatility_confidence_mult
        return change, confidence

    def score(self, candles: pd.DataFrame, metrics: TimeframeMetrics) -> Optional[PredictionScore]:
        if candles.empty:
            return None

        flags = self.signals(candles)
        quadrant = classify_quadrant(flags["bullish"], flags["volume_increasing"])
        chg_lo, chg_hi, conf_lo, conf_hi = self.settings.quadrants[quadrant]

        change = float(self.rng.uniform(chg_lo, chg_hi))
        confidence = float(self.rng.uniform(conf_lo, conf_hi))

        volatility = metrics.volatility_score
        if volatility is None:
            volatility = self.settings.default_volatility_score
        change, confidence = self.adjust_for_volatility(change, confidence, volatility)

        confidence = clamp(confidence, 0.0, self.settings.max_confidence)
        return PredictionScore(round(change, 2), round(confidence, 2), quadrant)
