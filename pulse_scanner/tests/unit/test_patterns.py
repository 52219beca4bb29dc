"""
PULSE SCANNER: Unit Tests for Pattern Recognition
"""
import pandas as pd

from pulse_scanner.data.models import Candle, PatternAction
from pulse_scanner.patterns.recognizer import PatternRecognizer
from pulse_scanner.config.settings import PatternSettings


def _candle(o, h, l, c, v=1000.0, ts=0):
    return Candle(open=o, high=h, low=l, close=c, volume=v, timestamp=ts)


def _types(patterns):
    return [p.type for p in patterns]


class TestSingleCandlePredicates:
    def setup_method(self):
        self.rec = PatternRecognizer(PatternSettings())

    def test_doji(self):
        candle = {"open": 100.0, "close": 100.05, "high": 100.5, "low": 99.5}
        assert self.rec.is_doji(candle)

    def test_zero_range_is_not_doji(self):
        candle = {"open": 100.0, "close": 100.0, "high": 100.0, "low": 100.0}
        assert not self.rec.is_doji(candle)

    def test_hammer(self):
        # body 1, lower wick 3, upper wick 0.2
        candle = {"open": 100.0, "close": 101.0, "high": 101.2, "low": 97.0}
        assert self.rec.is_hammer(candle)
        assert not self.rec.is_doji(candle)

    def test_long_upper_wick_is_not_hammer(self):
        candle = {"open": 100.0, "close": 101.0, "high": 104.0, "low": 97.0}
        assert not self.rec.is_hammer(candle)

    def test_engulfing_needs_body_ratio(self):
        prev = {"open": 100.0, "close": 99.0}
        assert self.rec.is_engulfing(prev, {"open": 99.0, "close": 101.0})
        assert not self.rec.is_engulfing(prev, {"open": 99.0, "close": 100.2})


class TestCandlePatterns:
    def setup_method(self):
        self.rec = PatternRecognizer(PatternSettings())

    def test_doji_detected_on_last_candle(self):
        candles = [_candle(100.0, 100.5, 99.5, 100.05)]
        patterns = self.rec.analyze_candle_patterns(candles)
        assert _types(patterns) == ["Doji"]
        assert patterns[0].confidence == 75
        assert patterns[0].action is PatternAction.NEUTRAL

    def test_single_candle_never_engulfs(self):
        candles = [_candle(99.0, 105.0, 98.0, 104.0)]
        assert "Bullish Engulfing" not in _types(self.rec.analyze_candle_patterns(candles))

    def test_bullish_engulfing(self):
        candles = [_candle(100.0, 100.5, 98.8, 99.0, ts=0), _candle(99.0, 102.2, 98.9, 102.0, ts=1)]
        patterns = self.rec.analyze_candle_patterns(candles)
        assert "Bullish Engulfing" in _types(patterns)
        engulf = next(p for p in patterns if p.type == "Bullish Engulfing")
        assert engulf.confidence == 85
        assert engulf.action is PatternAction.BUY

    def test_bearish_engulfing(self):
        candles = [_candle(99.0, 100.2, 98.9, 100.0, ts=0), _candle(100.0, 100.1, 96.8, 97.0, ts=1)]
        patterns = self.rec.analyze_candle_patterns(candles)
        assert "Bearish Engulfing" in _types(patterns)
        engulf = next(p for p in patterns if p.type == "Bearish Engulfing")
        assert engulf.action is PatternAction.SELL

    def test_empty(self):
        assert self.rec.analyze_candle_patterns([]) == []


class TestVolumeAndTrend:
    def setup_method(self):
        self.rec = PatternRecognizer(PatternSettings())

    def test_volume_spike(self):
        candles = [_candle(1, 2, 0.5, 1.5, v=100.0, ts=i) for i in range(9)]
        candles.append(_candle(1, 2, 0.5, 1.5, v=1000.0, ts=9))
        patterns = self.rec.analyze_volume(candles)
        assert _types(patterns) == ["Volume Spike"]
        assert patterns[0].confidence == 70

    def test_no_spike_on_flat_volume(self):
        candles = [_candle(1, 2, 0.5, 1.5, v=100.0, ts=i) for i in range(10)]
        assert self.rec.analyze_volume(candles) == []

    def test_strong_uptrend(self, small_ohlcv_df):
        df = small_ohlcv_df.copy()
        df["close"] = [100.0 + i for i in range(10)]
        patterns = self.rec.analyze_trend_patterns(df)
        assert _types(patterns) == ["Strong Uptrend"]
        assert patterns[0].confidence == 90

    def test_strong_downtrend(self, small_ohlcv_df):
        df = small_ohlcv_df.copy()
        df["close"] = [100.0 - i for i in range(10)]
        assert _types(self.rec.analyze_trend_patterns(df)) == ["Strong Downtrend"]

    def test_single_pullback_voids_trend(self, small_ohlcv_df):
        # close dips once at index 3
        assert self.rec.analyze_trend_patterns(small_ohlcv_df) == []

    def test_flat_step_voids_trend(self):
        closes = [1.0, 2.0, 2.0, 3.0]
        df = pd.DataFrame({
            "open": closes, "high": closes, "low": closes, "close": closes, "volume": [1.0] * 4,
        })
        assert self.rec.analyze_trend_patterns(df) == []

    def test_analyze_combines_detectors(self, small_ohlcv_df):
        df = small_ohlcv_df.copy()
        df["close"] = [100.0 + i for i in range(10)]
        df["volume"] = [100.0] * 9 + [5000.0]
        types = _types(self.rec.analyze(df))
        assert "Strong Uptrend" in types
        assert "Volume Spike" in types
