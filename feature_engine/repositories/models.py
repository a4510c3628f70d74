from datetime import date

from sqlalchemy import (
    BigInteger,
    Date,
    Float,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from feature_engine.repositories.database import Base


# =============================================================================
# 來源資料（爬蟲寫入，引擎唯讀）
# =============================================================================


class Stock(Base):
    """股票清單"""

    __tablename__ = "stocks"

    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sector: Mapped[str | None] = mapped_column(String(50), nullable=True)


class PriceHistory(Base):
    """日K線資料"""

    __tablename__ = "price_history"

    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)
    date: Mapped[date] = mapped_column(Date, primary_key=True, index=True)
    open: Mapped[float | None] = mapped_column(Float, nullable=True)
    high: Mapped[float | None] = mapped_column(Float, nullable=True)
    low: Mapped[float | None] = mapped_column(Float, nullable=True)
    close: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    turnover: Mapped[float | None] = mapped_column(Float, nullable=True)
    change_pct: Mapped[float | None] = mapped_column(Float, nullable=True)


class Chip(Base):
    """三大法人買賣超（股數，正數為買超）"""

    __tablename__ = "chips"

    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)
    date: Mapped[date] = mapped_column(Date, primary_key=True, index=True)
    foreign_net: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    trust_net: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    dealer_net: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


# =============================================================================
# 特徵資料（每次執行整表重建）
# =============================================================================


class DailyIndicator(Base):
    """個股每日技術指標"""

    __tablename__ = "daily_indicators"

    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)
    date: Mapped[date] = mapped_column(Date, primary_key=True, index=True)
    ma5: Mapped[float | None] = mapped_column(Float, nullable=True)
    ma10: Mapped[float | None] = mapped_column(Float, nullable=True)
    ma20: Mapped[float | None] = mapped_column(Float, nullable=True)
    ma60: Mapped[float | None] = mapped_column(Float, nullable=True)
    ma120: Mapped[float | None] = mapped_column(Float, nullable=True)
    atr14: Mapped[float | None] = mapped_column(Float, nullable=True)
    rsi14: Mapped[float | None] = mapped_column(Float, nullable=True)
    macd_diff: Mapped[float | None] = mapped_column(Float, nullable=True)
    macd_dea: Mapped[float | None] = mapped_column(Float, nullable=True)
    kd_k: Mapped[float | None] = mapped_column(Float, nullable=True)
    kd_d: Mapped[float | None] = mapped_column(Float, nullable=True)


class ChipFeature(Base):
    """個股最新籌碼特徵"""

    __tablename__ = "chip_features"

    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)
    date: Mapped[date] = mapped_column(Date, primary_key=True)
    foreign_buy: Mapped[int] = mapped_column(BigInteger)
    trust_buy: Mapped[int] = mapped_column(BigInteger)
    dealer_buy: Mapped[int] = mapped_column(BigInteger)
    total_inst_buy: Mapped[int] = mapped_column(BigInteger)
    concentration_5d: Mapped[float] = mapped_column(Float)


class MarketBreadthHistory(Base):
    """大盤每日廣度指標"""

    __tablename__ = "market_breadth_history"

    date: Mapped[date] = mapped_column(Date, primary_key=True)
    up_count: Mapped[int] = mapped_column(Integer)
    down_count: Mapped[int] = mapped_column(Integer)
    flat_count: Mapped[int] = mapped_column(Integer)
    up_turnover: Mapped[float] = mapped_column(Float)
    down_turnover: Mapped[float] = mapped_column(Float)
    up_volume: Mapped[int] = mapped_column(BigInteger)
    down_volume: Mapped[int] = mapped_column(BigInteger)
    trin: Mapped[float] = mapped_column(Float)
    ma5_breadth: Mapped[float] = mapped_column(Float)
    ma20_breadth: Mapped[float] = mapped_column(Float)
    ma60_breadth: Mapped[float] = mapped_column(Float)
    ma120_breadth: Mapped[float] = mapped_column(Float)
    adl: Mapped[int] = mapped_column(Integer)
    total_stocks: Mapped[int] = mapped_column(Integer)


class InstitutionalTrend(Base):
    """法人每日買賣超彙總"""

    __tablename__ = "institutional_trend"

    date: Mapped[date] = mapped_column(Date, primary_key=True)
    total_foreign: Mapped[int] = mapped_column(BigInteger)
    total_trust: Mapped[int] = mapped_column(BigInteger)
    total_dealer: Mapped[int] = mapped_column(BigInteger)
    total_net: Mapped[int] = mapped_column(BigInteger)
    avg_change_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    buy_count: Mapped[int] = mapped_column(Integer)
    sell_count: Mapped[int] = mapped_column(Integer)


class TechFeature(Base):
    """個股最新技術特徵（每檔一列，取 daily_indicators 最新日期）"""

    __tablename__ = "tech_features"

    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)
    date: Mapped[date] = mapped_column(Date, primary_key=True)
    ma5: Mapped[float | None] = mapped_column(Float, nullable=True)
    ma20: Mapped[float | None] = mapped_column(Float, nullable=True)
    rsi_14: Mapped[float | None] = mapped_column(Float, nullable=True)
    macd_diff: Mapped[float | None] = mapped_column(Float, nullable=True)
    macd_dea: Mapped[float | None] = mapped_column(Float, nullable=True)
    kd_k: Mapped[float | None] = mapped_column(Float, nullable=True)
    kd_d: Mapped[float | None] = mapped_column(Float, nullable=True)


class SectorDaily(Base):
    """產業彙總（各股最新一日 K 線依產業分組）"""

    __tablename__ = "sector_daily"

    sector: Mapped[str] = mapped_column(String(50), primary_key=True)
    date: Mapped[date] = mapped_column(Date, primary_key=True, index=True)
    stock_count: Mapped[int] = mapped_column(Integer)
    avg_change_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_volume: Mapped[int] = mapped_column(BigInteger)
    total_turnover: Mapped[float] = mapped_column(Float)
    up_count: Mapped[int] = mapped_column(Integer)
    down_count: Mapped[int] = mapped_column(Integer)
    top_gainer_symbol: Mapped[str | None] = mapped_column(String(10), nullable=True)
    top_gainer_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
