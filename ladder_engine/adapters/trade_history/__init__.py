"""TradeHistory 端口适配器。"""

from .CsvTradeHistory_Impl import CsvTradeHistory_Impl, TradeHistoryError

__all__ = ["CsvTradeHistory_Impl", "TradeHistoryError"]
