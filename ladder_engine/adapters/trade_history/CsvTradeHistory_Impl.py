"""CSV格式的成交历史数据源实现。"""

import csv
import logging
from typing import Dict, List, Optional

from ...core.interfaces import ITradeHistoryProvider
from ...core.types import Side, Trade
from ...utils.numeric import to_float

# 设置模块级logger
logger = logging.getLogger(__name__)


class TradeHistoryError(Exception):
    """Raised when the trade history file cannot be read."""

    def __init__(self, path: str, message: str = None):
        self.path = path
        if message is None:
            message = f"Cannot read trade history: {path}"
        super().__init__(message)


class CsvTradeHistory_Impl(ITradeHistoryProvider):
    """CSV格式的成交历史。

    列：plan_id, side, price, quantity, fee, trade_time
    - side 不区分大小写（buy / sell）
    - plan_id 为空的行属于任意计划
    - 数值无法解析时保留为None，由引擎按缺失处理
    """

    def __init__(self, file_path: str):
        """初始化CSV数据源。

        Args:
            file_path: CSV文件路径

        Raises:
            TradeHistoryError: 文件不存在或无法解析
        """
        self.file_path = file_path
        self.rows: List[Dict[str, str]] = []
        self._load_data()

    def _load_data(self):
        try:
            with open(self.file_path, "r", encoding="utf-8", newline="") as f:
                reader = csv.DictReader(f)
                self.rows = list(reader)
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise TradeHistoryError(self.file_path, f"Error loading {self.file_path}: {e}") from e
        logger.debug(f"Loaded {len(self.rows)} trade rows from {self.file_path}")

    def __len__(self) -> int:
        return len(self.rows)

    @staticmethod
    def _parse_side(raw: Optional[str]) -> Optional[Side]:
        text = (raw or "").strip().upper()
        if text in ("BUY", "SELL"):
            return Side(text)
        return None

    @staticmethod
    def _parse_row(row: Dict[str, str]) -> Trade:
        trade_time = (row.get("trade_time") or "").strip() or None
        return Trade(
            price=to_float(row.get("price")),
            quantity=to_float(row.get("quantity")),
            fee=to_float(row.get("fee")),
            trade_time=trade_time,
        )

    def get_trades(self, plan_id: Optional[str], side: Side) -> List[Trade]:
        """按计划与方向筛选成交，保持文件顺序。"""
        out: List[Trade] = []
        skipped = 0
        for row in self.rows:
            row_side = self._parse_side(row.get("side"))
            if row_side is None:
                skipped += 1
                continue
            if row_side is not side:
                continue
            row_plan = (row.get("plan_id") or "").strip()
            if plan_id is not None and row_plan and row_plan != str(plan_id):
                continue
            out.append(self._parse_row(row))
        if skipped:
            logger.warning(f"Skipped {skipped} row(s) with unknown side in {self.file_path}")
        return out
