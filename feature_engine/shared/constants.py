"""特徵運算相關常數"""

from zoneinfo import ZoneInfo

# === 時區 ===

TZ_TAIPEI = ZoneInfo("Asia/Taipei")

# === 技術指標參數 ===

MA_WINDOWS = (5, 10, 20, 60, 120)
ATR_PERIOD = 14
RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
KD_PERIOD = 9
KD_SIGNAL = 3

MIN_HISTORY_BARS = 2  # 少於此筆數的股票直接跳過

# === 儲存精度 ===

PRICE_PRECISION = 2  # MA / ATR / RSI / KD
MACD_PRECISION = 4
TRIN_PRECISION = 3
PCT_PRECISION = 2

# === 籌碼集中度 ===

CONCENTRATION_WINDOW = 5  # 最近 5 筆籌碼 × 股價資料
MIN_TOTAL_VOLUME = 1  # 成交量下限，避免除以零

# === 市場廣度 ===

BREADTH_MA_WINDOWS = (5, 20, 60, 120)
TRIN_EPSILON = 0.1  # 上漲 / 下跌為 0 時的替代值
TRIN_MIN = 0.1
TRIN_MAX = 8.0

# === 執行 ===

INSERT_BATCH_SIZE = 1000
DEFAULT_WORKERS = 1
PROGRESS_EVERY = 100
