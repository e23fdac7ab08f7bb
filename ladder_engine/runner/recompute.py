"""计划级重算触发器。

引擎是无状态的纯函数；何时重算由调用方决定。FillTracker 把
“成交集合变化 → 重新计算 → 通知订阅者” 这条链路显式化：
持久化层在插入/删除成交后调用 on_trades_changed() 即可。
"""

import logging
from typing import Callable, List, Optional, Sequence, Union

from ..analysis.metrics import on_plan_average, pool_tokens
from ..core.dto import BuyFillResult, SellFillResult
from ..core.interfaces import ITradeHistoryProvider, IPlanConfigProvider
from ..core.types import (
    BuyLevel, SellPlanLevel, Side,
    DEFAULT_BUY_TOLERANCE, DEFAULT_SELL_TOLERANCE, DEFAULT_GROWTH_PCT_PER_LEVEL,
)
from ..fills.buy_engine import compute_buy_fills
from ..fills.sell_engine import compute_sell_fills
from ..ladder import build_buy_levels, plan_sell_levels

# 设置模块级logger
logger = logging.getLogger(__name__)

FillResult = Union[BuyFillResult, SellFillResult]


class FillTracker:
    """单个计划的填充结果跟踪器。

    职责：
    - 持有该计划已构建好的梯子
    - 在成交变化时从数据源重新读取全部成交并完整重算
    - 把新结果推送给订阅者

    Attributes:
        plan_id: 计划ID
        side: 买入/卖出
        levels: 梯子档位
        latest: 最近一次计算结果
    """

    def __init__(
        self,
        plan_id: str,
        side: Side,
        levels: Sequence[Union[BuyLevel, SellPlanLevel]],
        provider: ITradeHistoryProvider,
        tolerance: Optional[float] = None,
    ):
        self.plan_id = plan_id
        self.side = side
        self.levels = list(levels)
        self.provider = provider
        if tolerance is None:
            tolerance = DEFAULT_BUY_TOLERANCE if side is Side.BUY else DEFAULT_SELL_TOLERANCE
        self.tolerance = tolerance
        self.latest: Optional[FillResult] = None
        self.result_cb: List[Callable[[str, FillResult], None]] = []

    @classmethod
    def from_plan(
        cls,
        plan_id: str,
        side: Side,
        plans: IPlanConfigProvider,
        provider: ITradeHistoryProvider,
    ) -> "FillTracker":
        """按计划参数构建梯子并创建跟踪器。

        卖出梯子的代币池取该计划的买入成交总量；计划未给出 baseline_price
        时使用买入梯子的计划内平均成本。计划不存在时梯子为空。
        """
        buy_plan = plans.get_buy_plan(plan_id) or {}
        buy_levels = build_buy_levels(
            buy_plan.get("top_price"),
            buy_plan.get("budget"),
            buy_plan.get("depth_profile", 70),
            buy_plan.get("growth_pct_per_level", DEFAULT_GROWTH_PCT_PER_LEVEL),
        )
        if side is Side.BUY:
            return cls(plan_id, side, buy_levels, provider, buy_plan.get("tolerance"))

        sell_plan = plans.get_sell_plan(plan_id) or {}
        buys = provider.get_trades(plan_id, Side.BUY)
        baseline = sell_plan.get("baseline_price") or on_plan_average(
            buy_levels, buys, buy_plan.get("tolerance") or DEFAULT_BUY_TOLERANCE,
        )
        levels = plan_sell_levels(
            baseline,
            sell_plan.get("step_pct", 50),
            sell_plan.get("levels_count", 10),
            sell_plan.get("sell_pct_of_remaining", 10.0),
            pool_tokens(buys, []),
        )
        return cls(plan_id, side, levels, provider, sell_plan.get("tolerance"))

    def subscribe(self, cb: Callable[[str, FillResult], None]) -> None:
        """订阅结果更新事件。"""
        self.result_cb.append(cb)

    def set_levels(self, levels: Sequence[Union[BuyLevel, SellPlanLevel]]) -> FillResult:
        """计划参数变化后替换梯子并重算。"""
        self.levels = list(levels)
        return self.on_trades_changed()

    def recompute(self) -> FillResult:
        """读取当前全部成交并计算，不通知订阅者。"""
        trades = self.provider.get_trades(self.plan_id, self.side)
        if self.side is Side.BUY:
            return compute_buy_fills(self.levels, trades, self.tolerance)
        return compute_sell_fills(self.levels, trades, self.tolerance)

    def on_trades_changed(self) -> FillResult:
        """成交插入/删除后调用：重算并通知订阅者。"""
        result = self.recompute()
        self.latest = result
        logger.debug(f"Recomputed {self.side.value} fills for plan {self.plan_id}")
        for cb in self.result_cb:
            cb(self.plan_id, result)
        return result
