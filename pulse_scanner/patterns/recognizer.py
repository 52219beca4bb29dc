"""
PULSE SCANNER: Pattern Recognition
Rule-based candle, volume and trend detectors. Every detector runs
independently and all matches are returned together.
"""
from typing import List, Optional, Sequence, Union
import pandas as pd

from pulse_scanner.data.adapters.base import candles_to_dataframe
from pulse_scanner.data.models import Candle, Pattern, PatternAction
from pulse_scanner.config.settings import PatternSettings, get_settings
from pulse_scanner.utils.logger import get_logger

logger = get_logger("pattern_recognizer")

Candles = Union[pd.DataFrame, Sequence[Candle]]

DOJI_CONFIDENCE = 75
HAMMER_CONFIDENCE = 80
ENGULFING_CONFIDENCE = 85
VOLUME_SPIKE_CONFIDENCE = 70
TREND_CONFIDENCE = 90


def _body(candle) -> float:
    return abs(candle["open"] - candle["close"])


class PatternRecognizer:
    """Stateless detectors over a chronological candle window."""

    def __init__(self, settings: Optional[PatternSettings] = None):
        self.settings = settings or get_settings().patterns

    # ─── Single-candle predicates ───────────────────────────────

    def is_doji(self, candle) -> bool:
        """Body smaller than doji_body_ratio of the range. A zero range is not a doji."""
        price_range = candle["high"] - candle["low"]
        if price_range <= 0:
            return False
        return _body(candle) / price_range < self.settings.doji_body_ratio

    def is_hammer(self, candle) -> bool:
        body = _body(candle)
        upper_wick = candle["high"] - max(candle["open"], candle["close"])
        lower_wick = min(candle["open"], candle["close"]) - candle["low"]
        return (
            lower_wick > body * self.settings.hammer_lower_wick_mult
            and upper_wick < body * self.settings.hammer_upper_wick_mult
        )

    def is_engulfing(self, prev, current) -> bool:
        return _body(current) > _body(prev) * self.settings.engulfing_body_mult

    # ─── Detectors ──────────────────────────────────────────────

    def analyze_candle_patterns(self, candles: Candles) -> List[Pattern]:
        df = self._frame(candles)
        if df.empty:
            return []

        patterns: List[Pattern] = []
        last = df.iloc[-1]

        if self.is_doji(last):
            patterns.append(Pattern(
                type="Doji",
                confidence=DOJI_CONFIDENCE,
                description="Market indecision, potential trend reversal",
                action=PatternAction.NEUTRAL,
            ))

        if self.is_hammer(last):
            patterns.append(Pattern(
                type="Hammer",
                confidence=HAMMER_CONFIDENCE,
                description="Potential bullish reversal pattern",
                action=PatternAction.BUY,
            ))

        if len(df) >= 2 and self.is_engulfing(df.iloc[-2], last):
            bullish = last["close"] > last["open"]
            side = "Bullish" if bullish else "Bearish"
            patterns.append(Pattern(
                type=f"{side} Engulfing",
                confidence=ENGULFING_CONFIDENCE,
                description=f"Strong {side.lower()} reversal signal",
                action=PatternAction.BUY if bullish else PatternAction.SELL,
            ))

        return patterns

    def analyze_volume(self, candles: Candles, window: Optional[int] = None) -> List[Pattern]:
        """Volume spike: latest volume above volume_spike_mult × the window mean (latest included)."""
        df = self._frame(candles)
        if df.empty:
            return []

        volumes = df["volume"] if window is None else df["volume"].iloc[-window:]
        avg_volume = volumes.mean()
        if volumes.iloc[-1] > avg_volume * self.settings.volume_spike_mult:
            return [Pattern(
                type="Volume Spike",
                confidence=VOLUME_SPIKE_CONFIDENCE,
                description="Significant increase in trading activity",
                action=PatternAction.NEUTRAL,
            )]
        return []

    def analyze_trend_patterns(self, candles: Candles) -> List[Pattern]:
        """
        Strictly monotonic closes across the whole window. One flat or
        counter-move candle anywhere voids the trend; there is no tolerance.
        """
        df = self._frame(candles)
        if len(df) < 2:
            return []

        steps = df["close"].diff().iloc[1:]
        if (steps > 0).all():
            return [Pattern(
                type="Strong Uptrend",
                confidence=TREND_CONFIDENCE,
                description="Consistent higher closes across the window",
                action=PatternAction.BUY,
            )]
        if (steps < 0).all():
            return [Pattern(
                type="Strong Downtrend",
                confidence=TREND_CONFIDENCE,
                description="Consistent lower closes across the window",
                action=PatternAction.SELL,
            )]
        return []

    def analyze(self, candles: Candles) -> List[Pattern]:
        """Run every detector and return all matches."""
        df = self._frame(candles)
        patterns = [
            *self.analyze_candle_patterns(df),
            *self.analyze_volume(df),
            *self.analyze_trend_patterns(df),
        ]
        logger.debug("patterns_detected", candles=len(df), found=[p.type for p in patterns])
        return patterns

    @staticmethod
    def _frame(candles: Candles) -> pd.DataFrame:
        if isinstance(candles, pd.DataFrame):
            return candles
        return candles_to_dataframe(list(candles))
