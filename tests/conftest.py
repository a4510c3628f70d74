"""
測試共用 Fixtures
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from feature_engine.repositories.daily import ChipRepository, PriceRepository, StockRepository
from feature_engine.repositories.database import Base
from feature_engine.shared.types import ChipRecord, PriceBar, StockInfo

START_DATE = date(2024, 1, 2)


@pytest.fixture
def session():
    """建立測試用的記憶體資料庫"""
    engine = create_engine("sqlite:///:memory:")
    from feature_engine.repositories import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


def make_bars(
    symbol: str,
    closes: list[float],
    start: date = START_DATE,
    volume: int = 1000,
) -> list[PriceBar]:
    """以收盤價序列產生連續日 K 線（high/low 為收盤 ±1，漲跌幅依前一日收盤）"""
    bars = []
    prev = None
    for i, close in enumerate(closes):
        change_pct = None if prev is None else round((close - prev) / prev * 100, 2)
        bars.append(
            PriceBar(
                date=start + timedelta(days=i),
                symbol=symbol,
                open=close,
                high=close + 1,
                low=close - 1,
                close=close,
                volume=volume,
                turnover=close * volume,
                change_pct=change_pct,
            )
        )
        prev = close
    return bars


@pytest.fixture
def seed_prices(session):
    """寫入 K 線並登記股票清單"""

    def _seed(bars: list[PriceBar]) -> int:
        StockRepository(session).upsert(
            [StockInfo(symbol=s) for s in sorted({b.symbol for b in bars})]
        )
        return PriceRepository(session).upsert(bars)

    return _seed


@pytest.fixture
def seed_chips(session):
    """寫入三大法人買賣超"""

    def _seed(records: list[ChipRecord]) -> int:
        return ChipRepository(session).upsert(records)

    return _seed
