"""核心端口的默认适配器实现。"""

from .trade_history import CsvTradeHistory_Impl, TradeHistoryError

__all__ = [
    "CsvTradeHistory_Impl",
    "TradeHistoryError",
]
