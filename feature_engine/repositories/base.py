"""
Repository 基礎類別
"""

from datetime import date
from typing import Generic, TypeVar

from sqlalchemy import delete, func, insert as sa_insert, inspect, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from feature_engine.repositories.database import Base
from feature_engine.shared.exceptions import SchemaDriftError

T = TypeVar("T")  # Dataclass type
M = TypeVar("M", bound=Base)  # Model type


class BaseRepository(Generic[T, M]):
    """泛型 Repository 基礎類別"""

    # 讀取時不可為 NULL 的欄位（來源表用來偵測上游結構異動）
    required_fields: tuple[str, ...] = ()
    # 引擎實際讀取的欄位；空值代表 Model 宣告的全部欄位
    read_columns: tuple[str, ...] = ()

    def __init__(self, session: Session, model: type[M]):
        self._session = session
        self._model = model

    def _to_dataclass(self, row: M) -> T:
        """將 Model 轉換為 Dataclass（子類別實作）"""
        raise NotImplementedError

    def _to_dict(self, data: T) -> dict:
        """將 Dataclass 轉換為 dict（子類別實作）"""
        raise NotImplementedError

    def _get_conflict_keys(self) -> list[str]:
        """取得 upsert 衝突鍵（子類別實作）"""
        raise NotImplementedError

    def _get_update_fields(self) -> list[str]:
        """取得 upsert 更新欄位（子類別實作）"""
        raise NotImplementedError

    def _check_required(self, row) -> None:
        """必要欄位為 NULL 時立即報錯，不往下游補預設值"""
        for name in self.required_fields:
            if getattr(row, name) is None:
                key = getattr(row, "symbol", "")
                raise SchemaDriftError(
                    self._model.__tablename__,
                    f"{name} 為 NULL（{key} {getattr(row, 'date', '')}）".strip(),
                )

    def verify_columns(self) -> None:
        """檢查實際資料表是否具備引擎會讀取的欄位"""
        table = self._model.__tablename__
        inspector = inspect(self._session.connection())
        if not inspector.has_table(table):
            raise SchemaDriftError(table, "資料表不存在")

        actual = {col["name"] for col in inspector.get_columns(table)}
        expected = set(self.read_columns) or {col.name for col in self._model.__table__.columns}
        missing = sorted(expected - actual)
        if missing:
            raise SchemaDriftError(table, f"缺少欄位 {missing}")

    def upsert(self, data: list[T]) -> int:
        """批次新增或更新，回傳影響筆數"""
        if not data:
            return 0

        values = [self._to_dict(d) for d in data]
        stmt = insert(self._model).values(values)

        update_dict = {field: getattr(stmt.excluded, field) for field in self._get_update_fields()}
        stmt = stmt.on_conflict_do_update(
            index_elements=self._get_conflict_keys(),
            set_=update_dict,
        )

        result = self._session.execute(stmt)
        self._session.commit()
        return result.rowcount

    def clear(self) -> int:
        """清空資料表（不 commit，由呼叫端控制交易）"""
        result = self._session.execute(delete(self._model))
        return result.rowcount

    def insert(self, data: list[T]) -> int:
        """批次新增（不 commit），回傳寫入筆數"""
        if not data:
            return 0

        self._session.execute(sa_insert(self._model), [self._to_dict(d) for d in data])
        return len(data)

    def count(self) -> int:
        """取得資料總筆數"""
        stmt = select(func.count()).select_from(self._model)
        return self._session.execute(stmt).scalar() or 0


class StockDailyRepository(BaseRepository[T, M]):
    """個股日頻資料 Repository（symbol + date 為主鍵）"""

    def _get_conflict_keys(self) -> list[str]:
        return ["symbol", "date"]

    def get(
        self,
        symbol: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[T]:
        """取得指定區間資料（依日期遞增）"""
        stmt = select(self._model).where(self._model.symbol == symbol)
        if start_date is not None:
            stmt = stmt.where(self._model.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(self._model.date <= end_date)
        rows = self._session.execute(stmt.order_by(self._model.date)).scalars().all()
        return [self._to_dataclass(row) for row in rows]

    def get_latest_date(self, symbol: str) -> date | None:
        """取得某股票最新資料日期"""
        stmt = (
            select(self._model.date)
            .where(self._model.symbol == symbol)
            .order_by(self._model.date.desc())
            .limit(1)
        )
        return self._session.execute(stmt).scalar()

    def count_symbol(self, symbol: str) -> int:
        """取得某股票總資料筆數"""
        stmt = select(func.count()).where(self._model.symbol == symbol)
        return self._session.execute(stmt).scalar() or 0

    def get_all_dates(self) -> list[date]:
        """取得所有出現過的日期（遞增）"""
        stmt = select(self._model.date).distinct().order_by(self._model.date)
        return list(self._session.execute(stmt).scalars().all())


class MarketDailyRepository(BaseRepository[T, M]):
    """市場日頻資料 Repository（date 為主鍵）"""

    def get(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[T]:
        """取得指定區間資料（依日期遞增）"""
        stmt = select(self._model)
        if start_date is not None:
            stmt = stmt.where(self._model.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(self._model.date <= end_date)
        rows = self._session.execute(stmt.order_by(self._model.date)).scalars().all()
        return [self._to_dataclass(row) for row in rows]

