"""台股技術面 / 籌碼面 / 大盤廣度特徵批次引擎"""

__version__ = "0.1.0"
