"""
技術指標計算測試
"""

import numpy as np
import pytest

from feature_engine.services import indicators as ind
from feature_engine.shared.exceptions import AlignmentError


def _ramp(n: int, start: float = 10.0, step: float = 1.0) -> np.ndarray:
    return np.array([start + i * step for i in range(n)], dtype=float)


class TestAlign:
    def test_pads_warm_up_with_none(self):
        series = ind.IndicatorSeries(values=np.array([1.0, 2.0]), start=3)
        assert ind.align(series, 5) == [None, None, None, 1.0, 2.0]

    def test_empty_series_is_all_none(self):
        assert ind.align(ind.IndicatorSeries.empty(4), 4) == [None] * 4

    def test_misaligned_series_raises(self):
        series = ind.IndicatorSeries(values=np.array([1.0, 2.0]), start=1)
        with pytest.raises(AlignmentError):
            ind.align(series, 5, "ma5")

    def test_round_or_none(self):
        assert ind.round_or_none(None, 2) is None
        assert ind.round_or_none(float("nan"), 2) is None
        assert ind.round_or_none(float("inf"), 2) is None
        assert ind.round_or_none(1.23456, 4) == 1.2346


class TestSMA:
    def test_warm_up_and_first_value(self):
        close = _ramp(10)
        series = ind.sma(close, 5)

        assert series.start == 4
        assert len(series) == 6
        assert series.values[0] == pytest.approx(np.mean(close[:5]))
        assert series.values[-1] == pytest.approx(np.mean(close[-5:]))

    def test_shorter_than_window(self):
        series = ind.sma(_ramp(3), 5)
        assert len(series) == 0
        assert ind.align(series, 3) == [None, None, None]


class TestEMA:
    def test_seeded_with_sma(self):
        close = _ramp(15)
        series = ind.ema(close, 12)

        assert series.start == 11
        assert series.values[0] == pytest.approx(np.mean(close[:12]))
        k = 2 / 13
        expected = (close[12] - series.values[0]) * k + series.values[0]
        assert series.values[1] == pytest.approx(expected)

    def test_constant_series(self):
        series = ind.ema(np.full(30, 50.0), 12)
        assert np.allclose(series.values, 50.0)


class TestATR:
    def test_constant_range(self):
        n = 20
        close = np.full(n, 100.0)
        series = ind.atr(close + 2, close - 2, close, 14)

        assert series.start == 14
        assert len(series) == n - 14
        assert np.allclose(series.values, 4.0)

    def test_gap_uses_previous_close(self):
        high = np.array([11.0, 21.0])
        low = np.array([9.0, 20.0])
        close = np.array([10.0, 20.5])
        tr = ind.true_range(high, low, close)

        assert tr.start == 1
        assert tr.values[0] == pytest.approx(11.0)

    def test_not_enough_bars(self):
        close = _ramp(14)
        series = ind.atr(close + 1, close - 1, close, 14)
        assert len(series) == 0
        assert series.start == 14


class TestRSI:
    def test_all_gains_is_100(self):
        series = ind.rsi(_ramp(30), 14)
        assert series.start == 14
        assert np.allclose(series.values, 100.0)

    def test_all_losses_is_0(self):
        series = ind.rsi(_ramp(30, start=100.0, step=-1.0), 14)
        assert np.allclose(series.values, 0.0)

    def test_flat_is_neutral(self):
        series = ind.rsi(np.full(20, 10.0), 14)
        assert np.allclose(series.values, 50.0)

    def test_bounded(self):
        rng = np.random.default_rng(7)
        close = 100 + np.cumsum(rng.normal(0, 2, 200))
        series = ind.rsi(close, 14)

        assert len(series) == 200 - 14
        assert np.all(series.values >= 0)
        assert np.all(series.values <= 100)

    def test_first_value_uses_simple_average(self):
        close = np.array([10, 11, 10, 11, 10, 11, 10, 11, 10, 11, 10, 11, 10, 11, 12], dtype=float)
        series = ind.rsi(close, 14)
        # 前 14 個變動：漲 7 次 +1、跌 6 次 -1、最後 +1 → 平均漲 8/14、平均跌 6/14
        assert series.values[0] == pytest.approx(100 - 100 / (1 + 8 / 6))


class TestMACD:
    def test_offsets(self):
        n = 60
        result = ind.macd(_ramp(n))

        assert result.diff.start == 25
        assert len(result.diff) == n - 25
        assert result.dea.start == 33
        assert len(result.dea) == n - 33
        assert len(ind.align(result.diff, n)) == n
        assert len(ind.align(result.dea, n)) == n

    def test_diff_is_fast_minus_slow(self):
        close = _ramp(40)
        result = ind.macd(close)
        fast = ind.ema(close, 12)
        slow = ind.ema(close, 26)

        assert result.diff.values[0] == pytest.approx(fast.values[14] - slow.values[0])

    def test_histogram(self):
        result = ind.macd(_ramp(50, step=0.5))
        hist = result.histogram

        assert hist.start == result.dea.start
        assert hist.values[0] == pytest.approx(result.diff.values[8] - result.dea.values[0])

    def test_short_history_is_empty(self):
        result = ind.macd(_ramp(20))
        assert len(result.diff) == 0
        assert ind.align(result.dea, 20) == [None] * 20

    def test_dea_needs_signal_window(self):
        n = 30
        result = ind.macd(_ramp(n))
        assert len(result.diff) == 5
        assert len(result.dea) == 0
        assert result.dea.start == n


class TestStochastic:
    def test_offsets_and_range(self):
        rng = np.random.default_rng(3)
        close = 50 + np.cumsum(rng.normal(0, 1, 40))
        result = ind.stochastic(close + 1, close - 1, close, 9, 3)

        assert result.k.start == 8
        assert result.d.start == 10
        assert np.all((result.k.values >= 0) & (result.k.values <= 100))

    def test_close_at_high_is_100(self):
        close = _ramp(12)
        result = ind.stochastic(close, close - 1, close, 9, 3)
        assert np.allclose(result.k.values, 100.0)
        assert np.allclose(result.d.values, 100.0)

    def test_zero_range_is_neutral(self):
        close = np.full(12, 20.0)
        result = ind.stochastic(close, close, close, 9, 3)
        assert np.allclose(result.k.values, 50.0)

    def test_d_is_sma_of_k(self):
        rng = np.random.default_rng(11)
        close = 30 + np.cumsum(rng.normal(0, 1, 20))
        result = ind.stochastic(close + 0.5, close - 0.5, close, 9, 3)
        assert result.d.values[0] == pytest.approx(np.mean(result.k.values[:3]))
