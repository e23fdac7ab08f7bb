"""测试公共 fixtures 和辅助函数。

提供所有测试模块共享的：
- 日志配置 fixture（自动启用 DEBUG 日志）
- 成交/档位创建辅助函数
- InMemoryTradeHistory 内存成交数据源
"""

import logging
import sys
from typing import List

import pytest

from ladder_engine.core.interfaces import ITradeHistoryProvider
from ladder_engine.core.types import BuyLevel, SellPlanLevel, Side, Trade


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _setup_debug_logging():
    """自动启用 DEBUG 级别日志，用于验证逻辑正确性。"""
    log_level = logging.DEBUG
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S',
    ))
    logging.basicConfig(level=log_level, handlers=[handler], force=True)
    for name in (
        'ladder_engine.fills.buy_engine',
        'ladder_engine.fills.sell_engine',
        'ladder_engine.ladder.buy_builder',
        'ladder_engine.runner.recompute',
    ):
        logging.getLogger(name).setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# 辅助函数
# ---------------------------------------------------------------------------

def ts(minute: int) -> str:
    """生成固定日期上的ISO时间（按分钟递增）。"""
    return f"2024-01-01T{minute // 60:02d}:{minute % 60:02d}:00Z"


def buy(price: float, usd: float, minute: int = 0, fee: float = None) -> Trade:
    """按USD金额创建买入成交（不含手续费）。"""
    return Trade(price=price, quantity=usd / price, fee=fee, trade_time=ts(minute))


def sell(price: float, qty: float, minute: int = 0) -> Trade:
    return Trade(price=price, quantity=qty, trade_time=ts(minute))


def make_level(level: int, price: float, allocation: float) -> BuyLevel:
    """手工构造买入档位。"""
    return BuyLevel(
        level=level,
        drawdown_pct=0,
        price=price,
        allocation=allocation,
        est_tokens=allocation / price,
    )


def sell_levels(*pairs) -> List[SellPlanLevel]:
    return [SellPlanLevel(target_price=p, planned_tokens=q) for p, q in pairs]


# ---------------------------------------------------------------------------
# InMemoryTradeHistory（共享模拟数据源）
# ---------------------------------------------------------------------------

class InMemoryTradeHistory(ITradeHistoryProvider):
    """内存成交数据源，支持插入/删除以模拟持久化层的变更。"""

    def __init__(self):
        self.trades = {}

    def add(self, plan_id: str, side: Side, trade: Trade) -> None:
        self.trades.setdefault((plan_id, side), []).append(trade)

    def remove(self, plan_id: str, side: Side, trade: Trade) -> None:
        self.trades[(plan_id, side)].remove(trade)

    def get_trades(self, plan_id: str, side: Side) -> List[Trade]:
        return list(self.trades.get((plan_id, side), []))
