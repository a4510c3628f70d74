"""
個股最新技術特徵

daily_indicators（各股最新一日）→ tech_features，供預測模型取用
"""

import logging

from sqlalchemy.orm import Session

from feature_engine.repositories.features import IndicatorRepository, TechFeatureRepository
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.shared.constants import DEFAULT_WORKERS
from feature_engine.shared.types import IndicatorRow, PhaseResult, TechFeatureRow

logger = logging.getLogger(__name__)


def to_tech_feature(row: IndicatorRow) -> TechFeatureRow:
    """從每日指標列取出模型使用的欄位"""
    return TechFeatureRow(
        date=row.date,
        symbol=row.symbol,
        ma5=row.ma5,
        ma20=row.ma20,
        rsi_14=row.rsi14,
        macd_diff=row.macd_diff,
        macd_dea=row.macd_dea,
        kd_k=row.kd_k,
        kd_d=row.kd_d,
    )


class TechFeatureService(FeaturePhase):
    """最新技術特徵階段（需先完成 daily_indicators）"""

    phase = "tech_features"

    def __init__(self, session: Session, workers: int = DEFAULT_WORKERS, **kwargs):
        super().__init__(session, workers=workers, **kwargs)
        self._indicators = IndicatorRepository(session)
        self._features = TechFeatureRepository(session)

    def run(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase)

        latest = self._indicators.get_latest_per_symbol()
        if not latest:
            logger.warning(f"[{self.phase}] daily_indicators is empty, nothing to snapshot")

        rows = [to_tech_feature(row) for row in latest]
        result.processed = len(rows)

        self._rebuild(self._features, rows, result)
        logger.info(f"[{self.phase}] done: {result.rows_written} symbols")
        return result
