"""
技術指標計算

所有指標以 IndicatorSeries(values, start) 表示：values 為有效值，
start 為第一個有效值在原始 K 線中的索引。寫入前統一用 align() 補回原始長度。
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from feature_engine.shared.exceptions import AlignmentError


@dataclass
class IndicatorSeries:
    """指標序列（去除暖機期）"""

    values: np.ndarray
    start: int

    @classmethod
    def empty(cls, length: int) -> "IndicatorSeries":
        """資料不足，整段都在暖機期"""
        return cls(values=np.array([], dtype=float), start=length)

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class MacdResult:
    """MACD(12, 26, 9)"""

    diff: IndicatorSeries
    dea: IndicatorSeries

    @property
    def histogram(self) -> IndicatorSeries:
        """diff - dea，對齊 dea 的起點"""
        offset = self.dea.start - self.diff.start
        return IndicatorSeries(
            values=self.diff.values[offset:] - self.dea.values,
            start=self.dea.start,
        )


@dataclass
class StochasticResult:
    """KD(9, 3)"""

    k: IndicatorSeries
    d: IndicatorSeries


def align(series: IndicatorSeries, length: int, name: str = "indicator") -> list[float | None]:
    """左補 None 至原始 K 線長度，保持日期對齊"""
    if series.start + len(series.values) != length:
        raise AlignmentError(name, series.start, len(series.values), length)

    return [None] * series.start + [float(v) for v in series.values]


def round_or_none(value: float | None, digits: int) -> float | None:
    """四捨五入；None / NaN / inf 一律回傳 None"""
    if value is None or not np.isfinite(value):
        return None
    return round(float(value), digits)


# =============================================================================
# 平均
# =============================================================================


def sma(values: np.ndarray, period: int, start: int = 0) -> IndicatorSeries:
    """
    簡單移動平均

    Args:
        values: 輸入序列
        period: 窗口
        start: 輸入序列本身在原始 K 線中的起點（串接指標時使用）
    """
    n = len(values)
    if n < period:
        return IndicatorSeries.empty(start + n)

    rolled = pd.Series(values, dtype=float).rolling(window=period).mean().to_numpy()
    return IndicatorSeries(values=rolled[period - 1:], start=start + period - 1)


def ema(values: np.ndarray, period: int, start: int = 0) -> IndicatorSeries:
    """指數移動平均（以前 period 筆的 SMA 作為起始值）"""
    n = len(values)
    if n < period:
        return IndicatorSeries.empty(start + n)

    k = 2 / (period + 1)
    out = np.empty(n - period + 1)
    out[0] = np.mean(values[:period])
    for i, value in enumerate(values[period:], start=1):
        out[i] = (value - out[i - 1]) * k + out[i - 1]
    return IndicatorSeries(values=out, start=start + period - 1)


def wilder(values: np.ndarray, period: int, start: int = 0) -> IndicatorSeries:
    """Wilder 平滑：首值為前 period 筆平均，其後 (prev * (p-1) + x) / p"""
    n = len(values)
    if n < period:
        return IndicatorSeries.empty(start + n)

    out = np.empty(n - period + 1)
    out[0] = np.mean(values[:period])
    for i, value in enumerate(values[period:], start=1):
        out[i] = (out[i - 1] * (period - 1) + value) / period
    return IndicatorSeries(values=out, start=start + period - 1)


# =============================================================================
# 波動 / 動能
# =============================================================================


def true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> IndicatorSeries:
    """真實波幅，從第二根 K 線開始（需要前一日收盤）"""
    if len(close) < 2:
        return IndicatorSeries.empty(len(close))

    prev_close = close[:-1]
    tr = np.maximum.reduce(
        [
            high[1:] - low[1:],
            np.abs(high[1:] - prev_close),
            np.abs(low[1:] - prev_close),
        ]
    )
    return IndicatorSeries(values=tr, start=1)


def atr(
    high: np.ndarray,
    low: np.ndarray,
    close: np.ndarray,
    period: int = 14,
) -> IndicatorSeries:
    """Average True Range（Wilder）"""
    tr = true_range(high, low, close)
    if len(tr) < period:
        return IndicatorSeries.empty(len(close))
    return wilder(tr.values, period, start=tr.start)


def rsi(close: np.ndarray, period: int = 14) -> IndicatorSeries:
    """
    相對強弱指標（Wilder）

    平均跌幅為 0 時 RSI = 100；漲跌皆為 0 時視為中性 50。
    """
    n = len(close)
    if n <= period:
        return IndicatorSeries.empty(n)

    change = np.diff(close)
    avg_gain = wilder(np.clip(change, 0, None), period, start=1)
    avg_loss = wilder(np.clip(-change, 0, None), period, start=1)

    gain = avg_gain.values
    loss = avg_loss.values
    rs = np.divide(gain, loss, out=np.zeros_like(gain), where=loss > 0)
    values = np.where(
        loss > 0,
        100 - 100 / (1 + rs),
        np.where(gain > 0, 100.0, 50.0),
    )
    return IndicatorSeries(values=values, start=avg_gain.start)


def macd(
    close: np.ndarray,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MacdResult:
    """MACD：diff = EMA(fast) - EMA(slow)，dea = EMA(diff, signal)"""
    n = len(close)
    if n < slow:
        return MacdResult(diff=IndicatorSeries.empty(n), dea=IndicatorSeries.empty(n))

    fast_ema = ema(close, fast)
    slow_ema = ema(close, slow)
    offset = slow_ema.start - fast_ema.start
    diff = IndicatorSeries(
        values=fast_ema.values[offset:] - slow_ema.values,
        start=slow_ema.start,
    )
    return MacdResult(diff=diff, dea=ema(diff.values, signal, start=diff.start))


def stochastic(
    high: np.ndarray,
    low: np.ndarray,
    close: np.ndarray,
    period: int = 9,
    signal: int = 3,
) -> StochasticResult:
    """
    KD 隨機指標

    %K = (close - 最低價) / (最高價 - 最低價) * 100，%D = SMA(%K, signal)。
    區間寬度為 0 時 %K 取 50。
    """
    n = len(close)
    if n < period:
        empty = IndicatorSeries.empty(n)
        return StochasticResult(k=empty, d=empty)

    highest = pd.Series(high, dtype=float).rolling(window=period).max().to_numpy()[period - 1:]
    lowest = pd.Series(low, dtype=float).rolling(window=period).min().to_numpy()[period - 1:]
    spread = highest - lowest
    position = close[period - 1:] - lowest
    k_values = np.divide(
        position * 100,
        spread,
        out=np.full_like(spread, 50.0),
        where=spread > 0,
    )
    k = IndicatorSeries(values=k_values, start=period - 1)
    return StochasticResult(k=k, d=sma(k.values, signal, start=k.start))
