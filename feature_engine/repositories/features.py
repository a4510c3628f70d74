"""
特徵資料表 Repository 實作

每次執行整表重建：clear() + insert()，交易由呼叫端（各階段 service）控制。
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from feature_engine.repositories.base import (
    BaseRepository,
    MarketDailyRepository,
    StockDailyRepository,
)
from feature_engine.repositories.models import (
    ChipFeature,
    DailyIndicator,
    InstitutionalTrend,
    MarketBreadthHistory,
    SectorDaily,
    TechFeature,
)
from feature_engine.shared.types import (
    BreadthRow,
    ChipFeatureRow,
    IndicatorRow,
    InstitutionalTrendRow,
    SectorDailyRow,
    TechFeatureRow,
)

INDICATOR_FIELDS = [
    "ma5",
    "ma10",
    "ma20",
    "ma60",
    "ma120",
    "atr14",
    "rsi14",
    "macd_diff",
    "macd_dea",
    "kd_k",
    "kd_d",
]

TECH_FEATURE_FIELDS = [
    "ma5",
    "ma20",
    "rsi_14",
    "macd_diff",
    "macd_dea",
    "kd_k",
    "kd_d",
]

BREADTH_FIELDS = [
    "up_count",
    "down_count",
    "flat_count",
    "up_turnover",
    "down_turnover",
    "up_volume",
    "down_volume",
    "trin",
    "ma5_breadth",
    "ma20_breadth",
    "ma60_breadth",
    "ma120_breadth",
    "adl",
    "total_stocks",
]


# =============================================================================
# 個股特徵
# =============================================================================


class IndicatorRepository(StockDailyRepository[IndicatorRow, DailyIndicator]):
    """每日技術指標 Repository"""

    def __init__(self, session: Session):
        super().__init__(session, DailyIndicator)

    def _to_dataclass(self, row: DailyIndicator) -> IndicatorRow:
        return IndicatorRow(
            date=row.date,
            symbol=row.symbol,
            **{name: getattr(row, name) for name in INDICATOR_FIELDS},
        )

    def _to_dict(self, data: IndicatorRow) -> dict:
        return {
            "symbol": data.symbol,
            "date": data.date,
            **{name: getattr(data, name) for name in INDICATOR_FIELDS},
        }

    def get_latest_per_symbol(self) -> list[IndicatorRow]:
        """各股最新一日的指標列（依代碼排序）"""
        rn = (
            func.row_number()
            .over(partition_by=DailyIndicator.symbol, order_by=DailyIndicator.date.desc())
            .label("rn")
        )
        ranked = select(DailyIndicator, rn).subquery()
        latest = aliased(DailyIndicator, ranked)
        stmt = select(latest).where(ranked.c.rn == 1).order_by(ranked.c.symbol)
        rows = self._session.execute(stmt).scalars().all()
        return [self._to_dataclass(row) for row in rows]


class TechFeatureRepository(StockDailyRepository[TechFeatureRow, TechFeature]):
    """最新技術特徵 Repository"""

    def __init__(self, session: Session):
        super().__init__(session, TechFeature)

    def _to_dataclass(self, row: TechFeature) -> TechFeatureRow:
        return TechFeatureRow(
            date=row.date,
            symbol=row.symbol,
            **{name: getattr(row, name) for name in TECH_FEATURE_FIELDS},
        )

    def _to_dict(self, data: TechFeatureRow) -> dict:
        return {
            "symbol": data.symbol,
            "date": data.date,
            **{name: getattr(data, name) for name in TECH_FEATURE_FIELDS},
        }


class ChipFeatureRepository(StockDailyRepository[ChipFeatureRow, ChipFeature]):
    """籌碼特徵 Repository"""

    def __init__(self, session: Session):
        super().__init__(session, ChipFeature)

    def _to_dataclass(self, row: ChipFeature) -> ChipFeatureRow:
        return ChipFeatureRow(
            date=row.date,
            symbol=row.symbol,
            foreign_buy=row.foreign_buy,
            trust_buy=row.trust_buy,
            dealer_buy=row.dealer_buy,
            total_inst_buy=row.total_inst_buy,
            concentration_5d=row.concentration_5d,
        )

    def _to_dict(self, data: ChipFeatureRow) -> dict:
        return {
            "symbol": data.symbol,
            "date": data.date,
            "foreign_buy": data.foreign_buy,
            "trust_buy": data.trust_buy,
            "dealer_buy": data.dealer_buy,
            "total_inst_buy": data.total_inst_buy,
            "concentration_5d": data.concentration_5d,
        }


# =============================================================================
# 市場特徵
# =============================================================================


class BreadthRepository(MarketDailyRepository[BreadthRow, MarketBreadthHistory]):
    """大盤廣度 Repository"""

    def __init__(self, session: Session):
        super().__init__(session, MarketBreadthHistory)

    def _to_dataclass(self, row: MarketBreadthHistory) -> BreadthRow:
        return BreadthRow(
            date=row.date,
            **{name: getattr(row, name) for name in BREADTH_FIELDS},
        )

    def _to_dict(self, data: BreadthRow) -> dict:
        return {
            "date": data.date,
            **{name: getattr(data, name) for name in BREADTH_FIELDS},
        }


class InstitutionalTrendRepository(MarketDailyRepository[InstitutionalTrendRow, InstitutionalTrend]):
    """法人每日趨勢 Repository"""

    def __init__(self, session: Session):
        super().__init__(session, InstitutionalTrend)

    def _to_dataclass(self, row: InstitutionalTrend) -> InstitutionalTrendRow:
        return InstitutionalTrendRow(
            date=row.date,
            total_foreign=row.total_foreign,
            total_trust=row.total_trust,
            total_dealer=row.total_dealer,
            total_net=row.total_net,
            avg_change_pct=row.avg_change_pct,
            buy_count=row.buy_count,
            sell_count=row.sell_count,
        )

    def _to_dict(self, data: InstitutionalTrendRow) -> dict:
        return {
            "date": data.date,
            "total_foreign": data.total_foreign,
            "total_trust": data.total_trust,
            "total_dealer": data.total_dealer,
            "total_net": data.total_net,
            "avg_change_pct": data.avg_change_pct,
            "buy_count": data.buy_count,
            "sell_count": data.sell_count,
        }


class SectorDailyRepository(BaseRepository[SectorDailyRow, SectorDaily]):
    """產業彙總 Repository（sector + date 為主鍵）"""

    def __init__(self, session: Session):
        super().__init__(session, SectorDaily)

    def _to_dataclass(self, row: SectorDaily) -> SectorDailyRow:
        return SectorDailyRow(
            sector=row.sector,
            date=row.date,
            stock_count=row.stock_count,
            avg_change_pct=row.avg_change_pct,
            total_volume=row.total_volume,
            total_turnover=row.total_turnover,
            up_count=row.up_count,
            down_count=row.down_count,
            top_gainer_symbol=row.top_gainer_symbol,
            top_gainer_pct=row.top_gainer_pct,
        )

    def _to_dict(self, data: SectorDailyRow) -> dict:
        return {
            "sector": data.sector,
            "date": data.date,
            "stock_count": data.stock_count,
            "avg_change_pct": data.avg_change_pct,
            "total_volume": data.total_volume,
            "total_turnover": data.total_turnover,
            "up_count": data.up_count,
            "down_count": data.down_count,
            "top_gainer_symbol": data.top_gainer_symbol,
            "top_gainer_pct": data.top_gainer_pct,
        }

    def get(self) -> list[SectorDailyRow]:
        """全部產業彙總（依產業、日期排序）"""
        stmt = select(SectorDaily).order_by(SectorDaily.sector, SectorDaily.date)
        rows = self._session.execute(stmt).scalars().all()
        return [self._to_dataclass(row) for row in rows]
