"""
法人每日趨勢

chips（依日期彙總）→ institutional_trend
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from feature_engine.repositories.daily import ChipRepository, PriceRepository
from feature_engine.repositories.features import InstitutionalTrendRepository
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.shared.constants import DEFAULT_WORKERS, PCT_PRECISION
from feature_engine.shared.types import ChipRecord, InstitutionalTrendRow, PhaseResult

logger = logging.getLogger(__name__)


def compute_institutional_trend(
    day: date,
    records: list[ChipRecord],
    avg_change_pct: float | None = None,
) -> InstitutionalTrendRow:
    """彙總單日全市場三大法人買賣超"""
    avg = round(avg_change_pct, PCT_PRECISION) if avg_change_pct is not None else None
    return InstitutionalTrendRow(
        date=day,
        total_foreign=sum(r.foreign_net for r in records),
        total_trust=sum(r.trust_net for r in records),
        total_dealer=sum(r.dealer_net for r in records),
        total_net=sum(r.total_net for r in records),
        avg_change_pct=avg,
        buy_count=sum(1 for r in records if r.total_net > 0),
        sell_count=sum(1 for r in records if r.total_net < 0),
    )


class InstitutionalTrendService(FeaturePhase):
    """法人每日趨勢階段"""

    phase = "institutional_trend"

    def __init__(self, session: Session, workers: int = DEFAULT_WORKERS, **kwargs):
        super().__init__(session, workers=workers, **kwargs)
        self._chips = ChipRepository(session)
        self._prices = PriceRepository(session)
        self._trend = InstitutionalTrendRepository(session)

    def run(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase)

        by_date = self._chips.get_by_date()
        avg_change = self._prices.get_avg_change_pct()
        logger.info(f"[{self.phase}] aggregating institutional flow for {len(by_date)} days")

        rows = [
            compute_institutional_trend(day, records, avg_change.get(day))
            for day, records in sorted(by_date.items())
        ]
        result.processed = len(rows)

        self._rebuild(self._trend, rows, result)
        logger.info(f"[{self.phase}] done: {result.rows_written} days written")
        return result
