"""
籌碼集中度 ETL

chips ⋈ price_history → chip_features（每檔股票一列，取最新日期）
"""

import logging

from sqlalchemy.orm import Session

from feature_engine.repositories.daily import ChipRepository, StockRepository
from feature_engine.repositories.features import ChipFeatureRepository
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.shared.constants import (
    CONCENTRATION_WINDOW,
    DEFAULT_WORKERS,
    MIN_TOTAL_VOLUME,
    PCT_PRECISION,
)
from feature_engine.shared.types import ChipFeatureRow, ChipVolume, PhaseResult

logger = logging.getLogger(__name__)


def compute_chip_feature(symbol: str, recent: list[ChipVolume]) -> ChipFeatureRow | None:
    """
    計算單一股票的籌碼特徵

    法人買賣超欄位只看最新一日；concentration_5d 看整個窗口：
    (窗口淨買超合計 / 窗口成交量合計) * 100。

    Args:
        symbol: 股票代碼
        recent: 最近幾筆籌碼 × 成交量資料，依日期遞減（第一筆為最新）

    Returns:
        ChipFeatureRow；沒有任何資料時回傳 None
    """
    if not recent:
        return None

    latest = max(recent, key=lambda r: r.date)
    net_flow = sum(r.total_net for r in recent)
    total_volume = max(sum(r.volume for r in recent), MIN_TOTAL_VOLUME)

    return ChipFeatureRow(
        date=latest.date,
        symbol=symbol,
        foreign_buy=latest.foreign_net,
        trust_buy=latest.trust_net,
        dealer_buy=latest.dealer_net,
        total_inst_buy=latest.total_net,
        concentration_5d=round(net_flow / total_volume * 100, PCT_PRECISION),
    )


class ChipFeatureService(FeaturePhase):
    """籌碼集中度階段"""

    phase = "chip_features"

    def __init__(
        self,
        session: Session,
        workers: int = DEFAULT_WORKERS,
        window: int = CONCENTRATION_WINDOW,
        **kwargs,
    ):
        super().__init__(session, workers=workers, **kwargs)
        self.window = window
        self._chips = ChipRepository(session)
        self._stocks = StockRepository(session)
        self._features = ChipFeatureRepository(session)

    def run(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase)

        symbols = self._stocks.get_universe()
        recent = self._chips.get_recent_with_volume(self.window)
        logger.info(
            f"[{self.phase}] computing {self.window}-day concentration for {len(symbols)} symbols"
        )

        tasks = [(symbol, recent.get(symbol, [])) for symbol in symbols]
        rows: list[ChipFeatureRow] = []
        for symbol, status, row in self._map(self._compute_one, tasks):
            if status == "skipped":
                result.skipped += 1
            elif status == "failed":
                result.failed += 1
                result.failed_symbols.append(symbol)
            else:
                result.processed += 1
                rows.append(row)

        self._rebuild(self._features, rows, result)
        logger.info(
            f"[{self.phase}] done: {result.processed} symbols with chip history, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    def _compute_one(
        self, task: tuple[str, list[ChipVolume]]
    ) -> tuple[str, str, ChipFeatureRow | None]:
        symbol, recent = task
        try:
            row = compute_chip_feature(symbol, recent)
        except Exception:
            logger.exception(f"[{self.phase}] failed to compute chip feature for {symbol}")
            return symbol, "failed", None
        return symbol, "skipped" if row is None else "ok", row
