"""
自訂例外
"""


class FeatureEngineError(Exception):
    """特徵引擎基礎例外"""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class SchemaDriftError(FeatureEngineError):
    """來源資料表缺少欄位或必要值"""

    def __init__(self, table: str, detail: str):
        super().__init__(
            code="SCHEMA_DRIFT",
            message=f"來源資料表 {table} 結構不符: {detail}",
        )
        self.table = table


class AlignmentError(FeatureEngineError):
    """指標序列無法對齊原始 K 線長度"""

    def __init__(self, name: str, start: int, size: int, length: int):
        super().__init__(
            code="ALIGNMENT",
            message=f"{name} 起始 {start} + 長度 {size} != K 線數 {length}",
        )


class DateOrderError(FeatureEngineError):
    """ADL 累加的日期不是嚴格遞增"""

    def __init__(self, previous, current):
        super().__init__(
            code="DATE_ORDER",
            message=f"日期必須嚴格遞增: {previous} -> {current}",
        )


class StorageError(FeatureEngineError):
    """特徵表寫入失敗，該階段已 rollback"""

    def __init__(
        self,
        phase: str,
        rows_written: int,
        cause: Exception,
        symbol: str | None = None,
        day=None,
    ):
        where = ", ".join(
            part
            for part in (
                f"symbol={symbol}" if symbol else "",
                f"date={day}" if day else "",
            )
            if part
        )
        super().__init__(
            code="STORAGE",
            message=(
                f"{phase} 寫入失敗（{where or '批次'}），"
                f"失敗前已寫入 {rows_written} 筆: {cause}"
            ),
        )
        self.phase = phase
        self.rows_written = rows_written
        self.symbol = symbol
        self.day = day
