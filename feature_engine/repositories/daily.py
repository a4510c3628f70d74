"""
來源日頻資料 Repository 實作（price_history / chips / stocks）
"""

from collections import defaultdict
from datetime import date

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from feature_engine.repositories.base import BaseRepository, StockDailyRepository
from feature_engine.repositories.models import Chip, DailyIndicator, PriceHistory, Stock
from feature_engine.shared.types import (
    BreadthInput,
    ChipRecord,
    ChipVolume,
    PriceBar,
    SectorInput,
    StockInfo,
)


class PriceRepository(StockDailyRepository[PriceBar, PriceHistory]):
    """日K線 Repository"""

    required_fields = ("date", "open", "high", "low", "close")

    def __init__(self, session: Session):
        super().__init__(session, PriceHistory)

    def _to_dataclass(self, row: PriceHistory) -> PriceBar:
        self._check_required(row)
        return PriceBar(
            date=row.date,
            symbol=row.symbol,
            open=row.open,
            high=row.high,
            low=row.low,
            close=row.close,
            volume=row.volume or 0,
            turnover=row.turnover,
            change_pct=row.change_pct,
        )

    def _to_dict(self, data: PriceBar) -> dict:
        return {
            "symbol": data.symbol,
            "date": data.date,
            "open": data.open,
            "high": data.high,
            "low": data.low,
            "close": data.close,
            "volume": data.volume,
            "turnover": data.turnover,
            "change_pct": data.change_pct,
        }

    def _get_update_fields(self) -> list[str]:
        return ["open", "high", "low", "close", "volume", "turnover", "change_pct"]

    def get_all_histories(self) -> dict[str, list[PriceBar]]:
        """一次讀出全部股票的完整 K 線（各股依日期遞增）"""
        stmt = select(PriceHistory).order_by(PriceHistory.symbol, PriceHistory.date)
        histories: dict[str, list[PriceBar]] = defaultdict(list)
        for row in self._session.execute(stmt).scalars():
            histories[row.symbol].append(self._to_dataclass(row))
        return dict(histories)

    def get_breadth_inputs(self) -> dict[date, list[BreadthInput]]:
        """
        取得大盤聚合用資料

        price_history LEFT JOIN daily_indicators，只保留 close > 0，依日期分組。
        """
        stmt = (
            select(
                PriceHistory.date,
                PriceHistory.symbol,
                PriceHistory.close,
                PriceHistory.volume,
                PriceHistory.turnover,
                PriceHistory.change_pct,
                DailyIndicator.ma5,
                DailyIndicator.ma20,
                DailyIndicator.ma60,
                DailyIndicator.ma120,
            )
            .outerjoin(
                DailyIndicator,
                and_(
                    DailyIndicator.symbol == PriceHistory.symbol,
                    DailyIndicator.date == PriceHistory.date,
                ),
            )
            .where(PriceHistory.close > 0)
            .order_by(PriceHistory.date, PriceHistory.symbol)
        )

        by_date: dict[date, list[BreadthInput]] = defaultdict(list)
        for row in self._session.execute(stmt):
            by_date[row.date].append(
                BreadthInput(
                    date=row.date,
                    symbol=row.symbol,
                    close=row.close,
                    volume=row.volume or 0,
                    turnover=row.turnover,
                    change_pct=row.change_pct,
                    ma5=row.ma5,
                    ma20=row.ma20,
                    ma60=row.ma60,
                    ma120=row.ma120,
                )
            )
        return dict(by_date)

    def get_latest_with_sector(self) -> list[SectorInput]:
        """
        取得各股最新一日 K 線與所屬產業

        price_history JOIN stocks，排除未分類（sector 為 NULL 或空字串）的股票。
        """
        rn = (
            func.row_number()
            .over(partition_by=PriceHistory.symbol, order_by=PriceHistory.date.desc())
            .label("rn")
        )
        ranked = select(
            PriceHistory.symbol,
            PriceHistory.date,
            PriceHistory.volume,
            PriceHistory.turnover,
            PriceHistory.change_pct,
            rn,
        ).subquery()
        stmt = (
            select(ranked, Stock.sector)
            .join(Stock, Stock.symbol == ranked.c.symbol)
            .where(ranked.c.rn == 1, Stock.sector.is_not(None), Stock.sector != "")
            .order_by(Stock.sector, ranked.c.symbol)
        )
        return [
            SectorInput(
                date=row.date,
                symbol=row.symbol,
                sector=row.sector,
                volume=row.volume or 0,
                turnover=row.turnover,
                change_pct=row.change_pct,
            )
            for row in self._session.execute(stmt)
        ]

    def get_avg_change_pct(self) -> dict[date, float]:
        """各日期有效個股（close > 0）的平均漲跌幅"""
        stmt = (
            select(PriceHistory.date, func.avg(PriceHistory.change_pct))
            .where(PriceHistory.close > 0)
            .group_by(PriceHistory.date)
        )
        return {
            day: avg
            for day, avg in self._session.execute(stmt)
            if avg is not None
        }


class ChipRepository(StockDailyRepository[ChipRecord, Chip]):
    """三大法人 Repository"""

    required_fields = ("date",)

    def __init__(self, session: Session):
        super().__init__(session, Chip)

    def _to_dataclass(self, row: Chip) -> ChipRecord:
        self._check_required(row)
        return ChipRecord(
            date=row.date,
            symbol=row.symbol,
            foreign_net=row.foreign_net or 0,
            trust_net=row.trust_net or 0,
            dealer_net=row.dealer_net or 0,
        )

    def _to_dict(self, data: ChipRecord) -> dict:
        return {
            "symbol": data.symbol,
            "date": data.date,
            "foreign_net": data.foreign_net,
            "trust_net": data.trust_net,
            "dealer_net": data.dealer_net,
        }

    def _get_update_fields(self) -> list[str]:
        return ["foreign_net", "trust_net", "dealer_net"]

    def get_by_date(self) -> dict[date, list[ChipRecord]]:
        """全部籌碼資料依日期分組（遞增）"""
        stmt = select(Chip).order_by(Chip.date, Chip.symbol)
        by_date: dict[date, list[ChipRecord]] = defaultdict(list)
        for row in self._session.execute(stmt).scalars():
            by_date[row.date].append(self._to_dataclass(row))
        return dict(by_date)

    def get_recent_with_volume(self, window: int) -> dict[str, list[ChipVolume]]:
        """
        取得各股最近 window 筆籌碼 × 成交量資料

        chips JOIN price_history（symbol, date），只取 volume > 0，
        每檔股票依日期遞減排序。
        """
        rn = (
            func.row_number()
            .over(partition_by=Chip.symbol, order_by=Chip.date.desc())
            .label("rn")
        )
        joined = (
            select(
                Chip.symbol,
                Chip.date,
                Chip.foreign_net,
                Chip.trust_net,
                Chip.dealer_net,
                PriceHistory.volume,
                rn,
            )
            .join(
                PriceHistory,
                and_(
                    PriceHistory.symbol == Chip.symbol,
                    PriceHistory.date == Chip.date,
                ),
            )
            .where(PriceHistory.volume > 0)
            .subquery()
        )
        stmt = (
            select(joined)
            .where(joined.c.rn <= window)
            .order_by(joined.c.symbol, joined.c.date.desc())
        )

        result: dict[str, list[ChipVolume]] = defaultdict(list)
        for row in self._session.execute(stmt):
            result[row.symbol].append(
                ChipVolume(
                    date=row.date,
                    symbol=row.symbol,
                    foreign_net=row.foreign_net or 0,
                    trust_net=row.trust_net or 0,
                    dealer_net=row.dealer_net or 0,
                    volume=row.volume,
                )
            )
        return dict(result)


class StockRepository(BaseRepository[StockInfo, Stock]):
    """股票清單 Repository"""

    # name 僅供顯示，引擎不讀取
    read_columns = ("symbol", "sector")

    def __init__(self, session: Session):
        super().__init__(session, Stock)

    def _to_dict(self, data: StockInfo) -> dict:
        return {"symbol": data.symbol, "name": data.name, "sector": data.sector}

    def _get_conflict_keys(self) -> list[str]:
        return ["symbol"]

    def _get_update_fields(self) -> list[str]:
        return ["name", "sector"]

    def get_universe(self) -> list[str]:
        """所有已知股票：stocks 清單 ∪ price_history 中出現過的代碼"""
        listed = set(self._session.execute(select(Stock.symbol)).scalars())
        traded = set(
            self._session.execute(select(PriceHistory.symbol).distinct()).scalars()
        )
        return sorted(listed | traded)
