"""特徵階段基礎類"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feature_engine.repositories.base import BaseRepository
from feature_engine.shared.constants import DEFAULT_WORKERS, INSERT_BATCH_SIZE
from feature_engine.shared.exceptions import StorageError
from feature_engine.shared.types import PhaseResult

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class FeaturePhase(ABC):
    """
    特徵階段抽象基類

    每個階段：讀取來源快照 → 計算（可平行）→ 在單一交易內清空並重寫目標表。
    寫入失敗時整個階段 rollback，不留下新舊混雜的資料。
    """

    phase: str = ""

    def __init__(
        self,
        session: Session,
        workers: int = DEFAULT_WORKERS,
        batch_size: int = INSERT_BATCH_SIZE,
    ):
        self._session = session
        self.workers = max(1, workers)
        self.batch_size = batch_size

    @abstractmethod
    def run(self) -> PhaseResult:
        """執行階段，回傳統計結果"""
        pass

    def _map(self, fn: Callable[[ItemT], ResultT], items: Iterable[ItemT]) -> list[ResultT]:
        """依序或以 thread pool 套用 fn，結果維持輸入順序"""
        if self.workers == 1:
            return [fn(item) for item in items]

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            return list(executor.map(fn, items))

    def _rebuild(
        self,
        repo: BaseRepository,
        rows: list[Any],
        result: PhaseResult,
    ) -> int:
        """
        清空並重寫目標表（單一交易）

        Args:
            repo: 目標表 Repository
            rows: 要寫入的資料（已排序）
            result: 階段結果，rows_written 會同步更新

        Returns:
            寫入筆數
        """
        written = 0
        batch: list[Any] = []
        try:
            cleared = repo.clear()
            logger.debug(f"[{self.phase}] cleared {cleared} rows")

            for start in range(0, len(rows), self.batch_size):
                batch = rows[start:start + self.batch_size]
                written += repo.insert(batch)

            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            first = batch[0] if batch else None
            logger.error(
                f"[{self.phase}] write failed after {written} rows, rolled back: {e}"
            )
            raise StorageError(
                phase=self.phase,
                rows_written=written,
                cause=e,
                symbol=getattr(first, "symbol", None),
                day=getattr(first, "date", None),
            ) from e

        result.rows_written = written
        return written
