"""
個股技術指標 ETL

price_history → daily_indicators（每檔股票、每個交易日一列）
"""

import logging

import numpy as np
from sqlalchemy.orm import Session

from feature_engine.repositories.daily import PriceRepository, StockRepository
from feature_engine.repositories.features import IndicatorRepository
from feature_engine.services import indicators as ind
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.shared.constants import (
    ATR_PERIOD,
    DEFAULT_WORKERS,
    KD_PERIOD,
    KD_SIGNAL,
    MA_WINDOWS,
    MACD_FAST,
    MACD_PRECISION,
    MACD_SIGNAL,
    MACD_SLOW,
    MIN_HISTORY_BARS,
    PRICE_PRECISION,
    PROGRESS_EVERY,
    RSI_PERIOD,
)
from feature_engine.shared.types import IndicatorRow, PhaseResult, PriceBar

logger = logging.getLogger(__name__)


def compute_indicators(symbol: str, bars: list[PriceBar]) -> list[IndicatorRow]:
    """
    計算單一股票的每日技術指標

    Args:
        symbol: 股票代碼
        bars: 該股完整 K 線（依日期遞增）

    Returns:
        與 bars 等長、逐日對齊的指標列；K 線少於 2 根時回傳空列表
    """
    n = len(bars)
    if n < MIN_HISTORY_BARS:
        return []

    close = np.array([b.close for b in bars], dtype=float)
    high = np.array([b.high for b in bars], dtype=float)
    low = np.array([b.low for b in bars], dtype=float)

    macd = ind.macd(close, MACD_FAST, MACD_SLOW, MACD_SIGNAL)
    kd = ind.stochastic(high, low, close, KD_PERIOD, KD_SIGNAL)

    series: dict[str, tuple[ind.IndicatorSeries, int]] = {
        f"ma{w}": (ind.sma(close, w), PRICE_PRECISION) for w in MA_WINDOWS
    }
    series["atr14"] = (ind.atr(high, low, close, ATR_PERIOD), PRICE_PRECISION)
    series["rsi14"] = (ind.rsi(close, RSI_PERIOD), PRICE_PRECISION)
    series["macd_diff"] = (macd.diff, MACD_PRECISION)
    series["macd_dea"] = (macd.dea, MACD_PRECISION)
    series["kd_k"] = (kd.k, PRICE_PRECISION)
    series["kd_d"] = (kd.d, PRICE_PRECISION)

    columns = {
        name: [ind.round_or_none(v, digits) for v in ind.align(s, n, f"{symbol}.{name}")]
        for name, (s, digits) in series.items()
    }

    return [
        IndicatorRow(
            date=bar.date,
            symbol=symbol,
            **{name: values[i] for name, values in columns.items()},
        )
        for i, bar in enumerate(bars)
    ]


class TechnicalFeatureService(FeaturePhase):
    """個股技術指標階段"""

    phase = "daily_indicators"

    def __init__(self, session: Session, workers: int = DEFAULT_WORKERS, **kwargs):
        super().__init__(session, workers=workers, **kwargs)
        self._prices = PriceRepository(session)
        self._stocks = StockRepository(session)
        self._indicators = IndicatorRepository(session)

    def run(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase)

        symbols = self._stocks.get_universe()
        histories = self._prices.get_all_histories()
        logger.info(f"[{self.phase}] computing indicators for {len(symbols)} symbols")

        tasks = []
        for symbol in symbols:
            bars = histories.get(symbol, [])
            if len(bars) < MIN_HISTORY_BARS:
                result.skipped += 1
                continue
            tasks.append((symbol, bars))

        rows: list[IndicatorRow] = []
        for i, (symbol, computed) in enumerate(self._map(self._compute_one, tasks), start=1):
            if computed is None:
                result.failed += 1
                result.failed_symbols.append(symbol)
            else:
                result.processed += 1
                rows.extend(computed)

            if i % PROGRESS_EVERY == 0:
                logger.debug(f"[{self.phase}] progress: {i}/{len(tasks)} symbols")

        if result.skipped:
            logger.warning(
                f"[{self.phase}] skipped {result.skipped} symbols with fewer than "
                f"{MIN_HISTORY_BARS} bars"
            )

        self._rebuild(self._indicators, rows, result)
        logger.info(
            f"[{self.phase}] done: {result.processed} processed, {result.skipped} skipped, "
            f"{result.failed} failed, {result.rows_written} rows written"
        )
        return result

    def _compute_one(
        self, task: tuple[str, list[PriceBar]]
    ) -> tuple[str, list[IndicatorRow] | None]:
        """計算單一股票；例外只影響該股票"""
        symbol, bars = task
        try:
            return symbol, compute_indicators(symbol, bars)
        except Exception:
            logger.exception(f"[{self.phase}] failed to compute indicators for {symbol}")
            return symbol, None
