from dataclasses import dataclass, field
from datetime import date, datetime


# === 來源資料（由爬蟲寫入） ===

@dataclass
class StockInfo:
    """股票基本資料"""
    symbol: str
    name: str | None = None
    sector: str | None = None


@dataclass
class PriceBar:
    """日K線資料"""
    date: date
    symbol: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    turnover: float | None = None
    change_pct: float | None = None


@dataclass
class ChipRecord:
    """三大法人買賣超（正數為買超）"""
    date: date
    symbol: str
    foreign_net: int
    trust_net: int
    dealer_net: int

    @property
    def total_net(self) -> int:
        return self.foreign_net + self.trust_net + self.dealer_net


@dataclass
class ChipVolume:
    """籌碼 × 股價 join 後的單日資料"""
    date: date
    symbol: str
    foreign_net: int
    trust_net: int
    dealer_net: int
    volume: int

    @property
    def total_net(self) -> int:
        return self.foreign_net + self.trust_net + self.dealer_net


@dataclass
class BreadthInput:
    """大盤聚合用的單日個股資料（price_history ⋈ daily_indicators）"""
    date: date
    symbol: str
    close: float
    volume: int
    turnover: float | None
    change_pct: float | None
    ma5: float | None = None
    ma20: float | None = None
    ma60: float | None = None
    ma120: float | None = None


@dataclass
class SectorInput:
    """產業彙總用的個股最新一日資料（price_history ⋈ stocks）"""
    date: date
    symbol: str
    sector: str
    volume: int
    turnover: float | None
    change_pct: float | None


# === 特徵資料 ===

@dataclass
class IndicatorRow:
    """個股每日技術指標"""
    date: date
    symbol: str
    ma5: float | None = None
    ma10: float | None = None
    ma20: float | None = None
    ma60: float | None = None
    ma120: float | None = None
    atr14: float | None = None
    rsi14: float | None = None
    macd_diff: float | None = None
    macd_dea: float | None = None
    kd_k: float | None = None
    kd_d: float | None = None


@dataclass
class TechFeatureRow:
    """個股最新技術特徵"""
    date: date
    symbol: str
    ma5: float | None = None
    ma20: float | None = None
    rsi_14: float | None = None
    macd_diff: float | None = None
    macd_dea: float | None = None
    kd_k: float | None = None
    kd_d: float | None = None


@dataclass
class ChipFeatureRow:
    """個股最新籌碼特徵"""
    date: date
    symbol: str
    foreign_buy: int
    trust_buy: int
    dealer_buy: int
    total_inst_buy: int
    concentration_5d: float


@dataclass
class DayBreadth:
    """單日橫斷面統計（不含 ADL）"""
    date: date
    up_count: int = 0
    down_count: int = 0
    flat_count: int = 0
    up_turnover: float = 0.0
    down_turnover: float = 0.0
    up_volume: int = 0
    down_volume: int = 0
    trin: float = 1.0
    ma5_breadth: float = 0.0
    ma20_breadth: float = 0.0
    ma60_breadth: float = 0.0
    ma120_breadth: float = 0.0
    total_stocks: int = 0

    @property
    def net_advances(self) -> int:
        return self.up_count - self.down_count


@dataclass
class BreadthRow(DayBreadth):
    """大盤每日廣度指標"""
    adl: int = 0


@dataclass
class InstitutionalTrendRow:
    """法人每日買賣超彙總"""
    date: date
    total_foreign: int
    total_trust: int
    total_dealer: int
    total_net: int
    avg_change_pct: float | None
    buy_count: int
    sell_count: int


@dataclass
class SectorDailyRow:
    """產業彙總"""
    sector: str
    date: date
    stock_count: int
    avg_change_pct: float | None
    total_volume: int
    total_turnover: float
    up_count: int
    down_count: int
    top_gainer_symbol: str | None = None
    top_gainer_pct: float | None = None


# === 執行結果 ===

@dataclass
class PhaseResult:
    """單一階段執行結果"""
    phase: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    rows_written: int = 0
    failed_symbols: list[str] = field(default_factory=list)


@dataclass
class PipelineResult:
    """整體執行結果"""
    started_at: datetime
    completed_at: datetime | None = None
    phases: list[PhaseResult] = field(default_factory=list)

    def get(self, phase: str) -> PhaseResult | None:
        return next((p for p in self.phases if p.phase == phase), None)

    @property
    def total_rows(self) -> int:
        return sum(p.rows_written for p in self.phases)
