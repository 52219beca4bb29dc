"""
PULSE SCANNER: Indicator Registry
Central registry that computes every configured indicator over one OHLCV
frame and summarizes the latest values.
"""
import pandas as pd
import numpy as np
from typing import Any, Dict, List, Optional
from pulse_scanner.indicators.base import BaseIndicator
from pulse_scanner.indicators.trend import SMAIndicator, EMAIndicator
from pulse_scanner.indicators.momentum import RSIIndicator, ROCIndicator
from pulse_scanner.indicators.volatility import ATRIndicator, BollingerBandsIndicator
from pulse_scanner.indicators.directional import ADXIndicator
from pulse_scanner.indicators.oscillators import MACDIndicator
from pulse_scanner.config.settings import IndicatorSettings, get_settings
from pulse_scanner.utils.logger import get_logger

logger = get_logger("indicator_registry")


def _latest(frame: Optional[pd.DataFrame], column: str) -> Optional[float]:
    if frame is None or frame.empty or column not in frame.columns:
        return None
    val = frame[column].iloc[-1]
    if pd.isna(val):
        return None
    return float(val)


class IndicatorRegistry:
    """
    Central registry for all technical indicators.
    compute_all() returns one trimmed frame per indicator name.
    """

    def __init__(self, settings: Optional[IndicatorSettings] = None):
        self.settings = settings or get_settings().indicators
        self._indicators: Dict[str, BaseIndicator] = {}
        self._register_all()

    def _register_all(self) -> None:
        """Register all standard indicators with configured parameters."""
        indicators: List[BaseIndicator] = [
            *[SMAIndicator(period=p) for p in self.settings.sma_periods],
            *[EMAIndicator(period=p) for p in self.settings.ema_periods],
            BollingerBandsIndicator(period=self.settings.bb_period, std_dev=self.settings.bb_std),
            RSIIndicator(period=self.settings.rsi_period),
            MACDIndicator(
                fast=self.settings.macd_fast,
                slow=self.settings.macd_slow,
                signal=self.settings.macd_signal,
            ),
            ADXIndicator(period=self.settings.adx_period),
            ATRIndicator(period=self.settings.atr_period),
            ROCIndicator(period=self.settings.roc_period),
        ]

        for ind in indicators:
            self._indicators[ind.name] = ind

        logger.info("indicators_registered", count=len(self._indicators),
                    names=list(self._indicators.keys()))

    def register(self, indicator: BaseIndicator) -> None:
        """Register a custom indicator."""
        self._indicators[indicator.name] = indicator
        logger.info("indicator_added", name=indicator.name)

    def unregister(self, name: str) -> None:
        """Remove an indicator from the registry."""
        if name in self._indicators:
            del self._indicators[name]

    def get(self, name: str) -> Optional[BaseIndicator]:
        return self._indicators.get(name)

    @property
    def indicator_names(self) -> List[str]:
        return list(self._indicators.keys())

    @property
    def count(self) -> int:
        return len(self._indicators)

    def compute_all(self, data: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        """Compute all registered indicators; a failing one is logged and omitted."""
        if data.empty:
            logger.warning("compute_all_empty_data")
            return {}

        results: Dict[str, pd.DataFrame] = {}
        for name, indicator in self._indicators.items():
            try:
                results[name] = indicator.calculate(data)
            except Exception as e:
                logger.error("indicator_compute_error", indicator=name, error=str(e))

        logger.debug("indicators_computed", total=len(results), rows=len(data))
        return results

    def summarize(self, data: pd.DataFrame) -> Dict[str, Any]:
        """Latest value of each indicator plus trend and volatility classes."""
        results = self.compute_all(data)
        macd_frame = results.get("macd")
        bb_frame = results.get("bollinger")

        summary: Dict[str, Any] = {
            "rsi": _latest(results.get("rsi"), "rsi"),
            "macd": {
                "macd_line": _latest(macd_frame, "macd_line"),
                "signal_line": _latest(macd_frame, "macd_signal"),
                "histogram": _latest(macd_frame, "macd_histogram"),
            },
            "bollinger_bands": {
                "upper": _latest(bb_frame, "bb_upper"),
                "middle": _latest(bb_frame, "bb_middle"),
                "lower": _latest(bb_frame, "bb_lower"),
            },
            "adx": _latest(results.get("adx"), "adx"),
            "atr": _latest(results.get("atr"), "atr"),
            "roc": _latest(results.get("roc"), "roc"),
        }
        summary["trend"] = self.classify_trend(results)
        summary["volatility"] = self.classify_volatility(_latest(results.get("atr"), "atr_pct"))
        return summary

    def classify_trend(self, results: Dict[str, pd.DataFrame]) -> str:
        """up / down / sideways from the fast SMA vs slow SMA and the fast SMA slope."""
        periods = sorted(self.settings.sma_periods)
        if len(periods) < 2:
            return "sideways"
        fast = results.get(f"sma_{periods[0]}")
        slow = results.get(f"sma_{periods[-1]}")
        if fast is None or slow is None or len(fast) < 2 or slow.empty:
            return "sideways"

        fast_now = float(fast.iloc[-1, 0])
        fast_prev = float(fast.iloc[-2, 0])
        slow_now = float(slow.iloc[-1, 0])
        if fast_now > slow_now and fast_now > fast_prev:
            return "up"
        if fast_now < slow_now and fast_now < fast_prev:
            return "down"
        return "sideways"

    @staticmethod
    def classify_volatility(atr_pct: Optional[float]) -> str:
        if atr_pct is None or np.isnan(atr_pct):
            return "low"
        if atr_pct > 3:
            return "high"
        if atr_pct > 1:
            return "medium"
        return "low"

    def reset_all(self) -> None:
        for indicator in self._indicators.values():
            indicator.reset()
