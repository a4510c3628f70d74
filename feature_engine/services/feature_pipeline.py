"""
FeaturePipeline - 特徵批次作業統一入口

執行順序：
1. daily_indicators        個股技術指標
2. tech_features           各股最新技術特徵（讀取步驟 1 的結果）
3. chip_features           籌碼集中度
4. market_breadth_history  大盤廣度（讀取步驟 1 的結果，ADL 全量重算）
5. institutional_trend     法人每日趨勢
6. sector_daily            產業彙總

每個階段各自為一個交易；任何階段寫入失敗即中止整個作業。
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from feature_engine.repositories.daily import ChipRepository, PriceRepository, StockRepository
from feature_engine.repositories.database import Base
from feature_engine.repositories.models import (
    ChipFeature,
    DailyIndicator,
    InstitutionalTrend,
    MarketBreadthHistory,
    SectorDaily,
    TechFeature,
)
from feature_engine.services.chip_features import ChipFeatureService
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.services.institutional_trend import InstitutionalTrendService
from feature_engine.services.market_breadth import MarketBreadthService
from feature_engine.services.sector_daily import SectorDailyService
from feature_engine.services.tech_features import TechFeatureService
from feature_engine.services.technical_features import TechnicalFeatureService
from feature_engine.shared.constants import DEFAULT_WORKERS, TZ_TAIPEI
from feature_engine.shared.exceptions import FeatureEngineError
from feature_engine.shared.types import PipelineResult

logger = logging.getLogger(__name__)

PHASES: dict[str, type[FeaturePhase]] = {
    TechnicalFeatureService.phase: TechnicalFeatureService,
    TechFeatureService.phase: TechFeatureService,
    ChipFeatureService.phase: ChipFeatureService,
    MarketBreadthService.phase: MarketBreadthService,
    InstitutionalTrendService.phase: InstitutionalTrendService,
    SectorDailyService.phase: SectorDailyService,
}

FEATURE_TABLES = [
    DailyIndicator.__table__,
    TechFeature.__table__,
    ChipFeature.__table__,
    MarketBreadthHistory.__table__,
    InstitutionalTrend.__table__,
    SectorDaily.__table__,
]


class FeaturePipeline:
    """特徵批次作業"""

    def __init__(
        self,
        session: Session,
        workers: int = DEFAULT_WORKERS,
        phases: list[str] | None = None,
    ):
        self._session = session
        self.workers = workers
        self.phases = self._resolve_phases(phases)

    @staticmethod
    def _resolve_phases(phases: list[str] | None) -> list[str]:
        """驗證階段名稱，並依固定順序排列"""
        if not phases:
            return list(PHASES)

        unknown = [p for p in phases if p not in PHASES]
        if unknown:
            raise ValueError(f"Unknown phases: {unknown}, available: {list(PHASES)}")
        return [p for p in PHASES if p in phases]

    def verify_sources(self) -> None:
        """檢查來源資料表結構，缺欄位時立即拋出 SchemaDriftError"""
        for repo in (
            StockRepository(self._session),
            PriceRepository(self._session),
            ChipRepository(self._session),
        ):
            repo.verify_columns()

    def run(self) -> PipelineResult:
        """
        執行特徵作業

        Returns:
            各階段統計

        Raises:
            SchemaDriftError: 來源資料表結構不符
            StorageError: 寫入失敗（該階段已 rollback）
        """
        result = PipelineResult(started_at=datetime.now(TZ_TAIPEI))
        logger.info(f"Feature pipeline started: phases={self.phases}, workers={self.workers}")

        self.verify_sources()
        Base.metadata.create_all(bind=self._session.connection(), tables=FEATURE_TABLES)
        self._session.commit()

        for name in self.phases:
            service = PHASES[name](self._session, workers=self.workers)
            try:
                result.phases.append(service.run())
            except FeatureEngineError as e:
                logger.error(
                    f"Feature pipeline aborted at phase {name} "
                    f"(completed: {[p.phase for p in result.phases]}): {e.message}"
                )
                raise

        result.completed_at = datetime.now(TZ_TAIPEI)
        elapsed = (result.completed_at - result.started_at).total_seconds()
        logger.info(
            f"Feature pipeline complete: {result.total_rows} rows in {elapsed:.1f}s"
        )
        return result
