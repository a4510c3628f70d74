"""
大盤廣度聚合

price_history ⋈ daily_indicators → market_breadth_history（每個交易日一列）

單日統計（漲跌家數、TRIN、均線廣度）只依賴當日橫斷面，可以平行計算；
ADL 是跨日累加，必須由 fold_adl() 依日期遞增、從 0 開始完整重算。
"""

import logging
from collections.abc import Iterable
from datetime import date

from sqlalchemy.orm import Session

from feature_engine.repositories.daily import PriceRepository
from feature_engine.repositories.features import BreadthRepository
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.shared.constants import (
    BREADTH_MA_WINDOWS,
    DEFAULT_WORKERS,
    PCT_PRECISION,
    TRIN_EPSILON,
    TRIN_MAX,
    TRIN_MIN,
    TRIN_PRECISION,
)
from feature_engine.shared.exceptions import DateOrderError
from feature_engine.shared.types import BreadthInput, BreadthRow, DayBreadth, PhaseResult

logger = logging.getLogger(__name__)


def compute_trin(
    up_count: int,
    down_count: int,
    up_turnover: float,
    down_turnover: float,
) -> float:
    """
    Arms Index

    (上漲家數 / 下跌家數) / (上漲成交值 / 下跌成交值)，為 0 的項目以 0.1 代替，
    結果限制在 [0.1, 8]。
    """
    issues_ratio = (up_count or TRIN_EPSILON) / (down_count or TRIN_EPSILON)
    turnover_ratio = (up_turnover or TRIN_EPSILON) / (down_turnover or TRIN_EPSILON)
    trin = issues_ratio / turnover_ratio
    return round(min(max(trin, TRIN_MIN), TRIN_MAX), TRIN_PRECISION)


def _breadth_pct(above: int, count: int) -> float:
    return round(above / count * 100, PCT_PRECISION) if count > 0 else 0.0


def compute_day_breadth(day: date, rows: list[BreadthInput]) -> DayBreadth:
    """
    計算單日橫斷面統計

    Args:
        day: 交易日
        rows: 當日 close > 0 的個股資料（可為空，仍回傳一列預設值）
    """
    stats = DayBreadth(date=day, total_stocks=len(rows))
    above = {w: 0 for w in BREADTH_MA_WINDOWS}
    counted = {w: 0 for w in BREADTH_MA_WINDOWS}

    for row in rows:
        change = row.change_pct or 0
        turnover = row.turnover or row.close * row.volume
        if change > 0:
            stats.up_count += 1
            stats.up_turnover += turnover
            stats.up_volume += row.volume
        elif change < 0:
            stats.down_count += 1
            stats.down_turnover += turnover
            stats.down_volume += row.volume
        else:
            stats.flat_count += 1

        for w in BREADTH_MA_WINDOWS:
            ma = getattr(row, f"ma{w}")
            if ma is not None and ma > 0:
                counted[w] += 1
                if row.close > ma:
                    above[w] += 1

    stats.trin = compute_trin(
        stats.up_count, stats.down_count, stats.up_turnover, stats.down_turnover
    )
    for w in BREADTH_MA_WINDOWS:
        setattr(stats, f"ma{w}_breadth", _breadth_pct(above[w], counted[w]))
    return stats


def fold_adl(days: Iterable[DayBreadth], seed: int = 0) -> list[BreadthRow]:
    """
    依日期遞增累加 ADL（上漲家數 - 下跌家數）

    Args:
        days: 單日統計，必須嚴格依日期遞增
        seed: 起始值（完整重算時為 0）

    Raises:
        DateOrderError: 日期重複或倒序
    """
    adl = seed
    previous: date | None = None
    rows: list[BreadthRow] = []
    for stats in days:
        if previous is not None and stats.date <= previous:
            raise DateOrderError(previous, stats.date)
        previous = stats.date

        adl += stats.net_advances
        rows.append(BreadthRow(**{**vars(stats), "adl": adl}))
    return rows


class MarketBreadthService(FeaturePhase):
    """大盤廣度階段"""

    phase = "market_breadth_history"

    def __init__(self, session: Session, workers: int = DEFAULT_WORKERS, **kwargs):
        super().__init__(session, workers=workers, **kwargs)
        self._prices = PriceRepository(session)
        self._breadth = BreadthRepository(session)

    def run(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase)

        dates = self._prices.get_all_dates()
        inputs = self._prices.get_breadth_inputs()
        logger.info(f"[{self.phase}] aggregating {len(dates)} trading days")

        daily = self._map(lambda d: compute_day_breadth(d, inputs.get(d, [])), dates)
        rows = fold_adl(daily)

        result.processed = len(daily)
        empty_days = sum(1 for stats in daily if stats.total_stocks == 0)
        if empty_days:
            logger.warning(
                f"[{self.phase}] {empty_days} days had no valid closes, emitted default rows"
            )

        self._rebuild(self._breadth, rows, result)
        logger.info(
            f"[{self.phase}] done: {result.rows_written} days written, "
            f"final ADL {rows[-1].adl if rows else 0}"
        )
        return result
