"""
產業彙總

price_history（各股最新一日）⋈ stocks.sector → sector_daily
"""

import logging
from collections import defaultdict
from datetime import date

from sqlalchemy.orm import Session

from feature_engine.repositories.daily import PriceRepository
from feature_engine.repositories.features import SectorDailyRepository
from feature_engine.services.feature_phase import FeaturePhase
from feature_engine.shared.constants import DEFAULT_WORKERS, PCT_PRECISION
from feature_engine.shared.types import PhaseResult, SectorDailyRow, SectorInput

logger = logging.getLogger(__name__)


def compute_sector_daily(sector: str, day: date, rows: list[SectorInput]) -> SectorDailyRow:
    """
    彙總單一產業在單一日期的個股資料

    漲跌幅為 NULL 的股票計入家數與量額，不計入平均、漲跌家數與領漲股。
    領漲股同漲幅時取代碼較小者。
    """
    changes = [r.change_pct for r in rows if r.change_pct is not None]
    avg = round(sum(changes) / len(changes), PCT_PRECISION) if changes else None

    leader = min(
        (r for r in rows if r.change_pct is not None),
        key=lambda r: (-r.change_pct, r.symbol),
        default=None,
    )

    return SectorDailyRow(
        sector=sector,
        date=day,
        stock_count=len(rows),
        avg_change_pct=avg,
        total_volume=sum(r.volume for r in rows),
        total_turnover=sum((r.turnover for r in rows if r.turnover is not None), 0.0),
        up_count=sum(1 for c in changes if c > 0),
        down_count=sum(1 for c in changes if c < 0),
        top_gainer_symbol=leader.symbol if leader else None,
        top_gainer_pct=leader.change_pct if leader else None,
    )


class SectorDailyService(FeaturePhase):
    """產業彙總階段"""

    phase = "sector_daily"

    def __init__(self, session: Session, workers: int = DEFAULT_WORKERS, **kwargs):
        super().__init__(session, workers=workers, **kwargs)
        self._prices = PriceRepository(session)
        self._sectors = SectorDailyRepository(session)

    def run(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase)

        groups: dict[tuple[str, date], list[SectorInput]] = defaultdict(list)
        for row in self._prices.get_latest_with_sector():
            groups[(row.sector, row.date)].append(row)
        logger.info(f"[{self.phase}] aggregating {len(groups)} sector/date groups")

        rows = [
            compute_sector_daily(sector, day, members)
            for (sector, day), members in sorted(groups.items())
        ]
        result.processed = len(rows)

        self._rebuild(self._sectors, rows, result)
        logger.info(
            f"[{self.phase}] done: {len({r.sector for r in rows})} sectors, "
            f"{result.rows_written} rows"
        )
        return result
